# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Listing rules derived from the approval ledger.

A course is listed iff its most recent approval request is approved.
Content with no request at all is listed only when legacy content is
configured as bookable. A session additionally needs its own most
recent request, if any, to be approved.
"""

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from livetrain.domains.approval.service import latest_request_stmt
from livetrain.infrastructure.database.models import ApprovalRequest, Course, TrainingSession
from livetrain.models.common import ApprovalStatus, SubjectType


async def latest_request(
    db: AsyncSession,
    subject_type: SubjectType,
    subject_id: str,
) -> ApprovalRequest | None:
    """Get the most recent approval request for a subject, if any."""
    result = await db.execute(latest_request_stmt(subject_type, subject_id))
    return result.scalar_one_or_none()


def _is_listed(request: ApprovalRequest | None, legacy_bookable: bool) -> bool:
    if request is None:
        return legacy_bookable
    return request.status == ApprovalStatus.APPROVED.value


async def is_course_listed(db: AsyncSession, course_id: str, legacy_bookable: bool = False) -> bool:
    """Check whether a course is publicly listed and schedulable."""
    request = await latest_request(db, SubjectType.COURSE, course_id)
    return _is_listed(request, legacy_bookable)


async def is_session_bookable(
    db: AsyncSession,
    session: TrainingSession,
    legacy_bookable: bool = False,
) -> bool:
    """Check whether learners may enroll in a session.

    A session without its own request inherits its course's listing.
    """
    if not await is_course_listed(db, session.course_id, legacy_bookable):
        return False

    request = await latest_request(db, SubjectType.SESSION, session.id)
    if request is None:
        return True
    return request.status == ApprovalStatus.APPROVED.value


def listed_courses_stmt(legacy_bookable: bool = False) -> Select:
    """Select every listed course using one ranked subquery."""
    ranked = (
        select(
            ApprovalRequest.subject_id.label("subject_id"),
            ApprovalRequest.status.label("status"),
            func.row_number()
            .over(
                partition_by=ApprovalRequest.subject_id,
                order_by=ApprovalRequest.revision.desc(),
            )
            .label("position"),
        )
        .where(ApprovalRequest.subject_type == SubjectType.COURSE.value)
        .subquery()
    )
    latest = select(ranked.c.subject_id, ranked.c.status).where(ranked.c.position == 1).subquery()

    condition = latest.c.status == ApprovalStatus.APPROVED.value
    if legacy_bookable:
        condition = or_(condition, latest.c.subject_id.is_(None))

    return (
        select(Course)
        .outerjoin(latest, latest.c.subject_id == Course.id)
        .where(condition)
        .order_by(Course.created_at.desc())
    )
