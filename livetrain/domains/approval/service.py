# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Approval ledger service.

This module provides the ApprovalService class for:
- Submitting courses and sessions for moderation
- Approving or rejecting pending requests (terminal transitions)
- Listing the moderation queue and the audit history

Each subject has at most one pending request, enforced by a partial
unique index. Resolution is a conditional update on status = 'pending'
so two reviewers can never both resolve the same request.
"""

from __future__ import annotations

import logging

from sqlalchemy import Select, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from livetrain.core.errors import (
    AlreadyResolvedError,
    DuplicatePendingRequestError,
    ForbiddenError,
    MissingReasonError,
    NotFoundError,
)
from livetrain.infrastructure.database.models import (
    ApprovalRequest,
    Course,
    TrainingSession,
    User,
    new_uuid,
)
from livetrain.infrastructure.notifications import NotificationDispatcher
from livetrain.models.common import ApprovalStatus, NotificationType, SubjectType, UserRole
from livetrain.utils.datetime import format_session_date, utc_now

logger = logging.getLogger(__name__)


def latest_request_stmt(subject_type: SubjectType | str, subject_id: str) -> Select:
    """Select the most recent approval request for a subject."""
    return (
        select(ApprovalRequest)
        .where(
            ApprovalRequest.subject_type == SubjectType(subject_type).value,
            ApprovalRequest.subject_id == subject_id,
        )
        .order_by(ApprovalRequest.revision.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )


class ApprovalService:
    """Service for the moderation state machine.

    pending --approve--> approved, pending --reject--> rejected. Both
    targets are terminal.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession, dispatcher: NotificationDispatcher | None = None) -> None:
        """Initialize approval service.

        Args:
            db: Async database session.
            dispatcher: Notification dispatcher used to inform submitters.
        """
        self.db = db
        self.dispatcher = dispatcher or NotificationDispatcher(db)

    async def submit(
        self,
        subject_type: SubjectType | str,
        subject_id: str,
        submitter_id: str,
    ) -> ApprovalRequest:
        """Submit a course or session for review.

        Args:
            subject_type: "course" or "session".
            subject_id: ID of the subject.
            submitter_id: Trainer submitting the subject.

        Returns:
            The new pending request.

        Raises:
            NotFoundError: If the subject or submitter does not exist.
            ForbiddenError: If the submitter does not own the subject.
            DuplicatePendingRequestError: If a request is already pending.
        """
        subject_type = SubjectType(subject_type)
        owner_id, _ = await self._get_subject(subject_type, subject_id)

        submitter = await self.db.get(User, submitter_id)
        if submitter is None:
            raise NotFoundError(f"User {submitter_id} not found")
        if submitter.id != owner_id and not submitter.is_admin:
            raise ForbiddenError("Only the content owner can submit it for review")

        latest = await self.latest_for_subject(subject_type, subject_id)
        if latest is not None and latest.is_pending:
            raise DuplicatePendingRequestError(
                f"A review is already pending for {subject_type.value} {subject_id}",
                details={"subject_type": subject_type.value, "subject_id": subject_id},
            )

        request = ApprovalRequest(
            id=new_uuid(),
            subject_type=subject_type.value,
            subject_id=subject_id,
            revision=1 if latest is None else latest.revision + 1,
            submitter_id=submitter_id,
            status=ApprovalStatus.PENDING.value,
            requested_at=utc_now(),
        )
        self.db.add(request)

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            # Lost a race against a concurrent submission (pending index or revision)
            raise DuplicatePendingRequestError(
                f"A review is already pending for {subject_type.value} {subject_id}",
                details={"subject_type": subject_type.value, "subject_id": subject_id},
            ) from e

        await self.db.refresh(request)

        logger.info(
            "Approval requested: request=%s, %s=%s, by=%s",
            request.id,
            subject_type.value,
            subject_id,
            submitter_id,
        )
        return request

    async def approve(self, request_id: str, reviewer_id: str) -> ApprovalRequest:
        """Approve a pending request and notify the submitter.

        Raises:
            NotFoundError: If the request or reviewer does not exist.
            ForbiddenError: If the reviewer is not an admin.
            AlreadyResolvedError: If the request is no longer pending.
        """
        return await self._resolve(request_id, reviewer_id, ApprovalStatus.APPROVED, None)

    async def reject(self, request_id: str, reviewer_id: str, notes: str | None) -> ApprovalRequest:
        """Reject a pending request with a reason and notify the submitter.

        The reason is validated before anything else is read or written.

        Raises:
            MissingReasonError: If notes are empty.
            NotFoundError: If the request or reviewer does not exist.
            ForbiddenError: If the reviewer is not an admin.
            AlreadyResolvedError: If the request is no longer pending.
        """
        if notes is None or not notes.strip():
            raise MissingReasonError("A reason is required to reject a request")

        return await self._resolve(request_id, reviewer_id, ApprovalStatus.REJECTED, notes.strip())

    async def get(self, request_id: str) -> ApprovalRequest:
        """Get an approval request by ID.

        Raises:
            NotFoundError: If the request does not exist.
        """
        request = await self.db.get(ApprovalRequest, request_id)
        if request is None:
            raise NotFoundError(f"Approval request {request_id} not found")
        return request

    async def list_pending(
        self,
        subject_type: SubjectType | str | None = None,
    ) -> list[ApprovalRequest]:
        """List pending requests, oldest first (FIFO moderation queue)."""
        stmt = select(ApprovalRequest).where(
            ApprovalRequest.status == ApprovalStatus.PENDING.value
        )
        if subject_type is not None:
            stmt = stmt.where(ApprovalRequest.subject_type == SubjectType(subject_type).value)
        stmt = stmt.order_by(ApprovalRequest.requested_at.asc(), ApprovalRequest.id)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def history(
        self,
        subject_type: SubjectType | str | None = None,
        status: ApprovalStatus | str | None = None,
        limit: int = 100,
    ) -> list[ApprovalRequest]:
        """List requests of any status, newest first."""
        stmt = select(ApprovalRequest)
        if subject_type is not None:
            stmt = stmt.where(ApprovalRequest.subject_type == SubjectType(subject_type).value)
        if status is not None:
            stmt = stmt.where(ApprovalRequest.status == ApprovalStatus(status).value)
        stmt = stmt.order_by(ApprovalRequest.requested_at.desc(), ApprovalRequest.id).limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def latest_for_subject(
        self,
        subject_type: SubjectType | str,
        subject_id: str,
    ) -> ApprovalRequest | None:
        """Get the most recent request for a subject, if any."""
        result = await self.db.execute(latest_request_stmt(subject_type, subject_id))
        return result.scalar_one_or_none()

    async def subject_titles(self, requests: list[ApprovalRequest]) -> dict[str, str]:
        """Map subject IDs to a display title for queue listings."""
        course_ids = {r.subject_id for r in requests if r.subject_type == SubjectType.COURSE.value}
        session_ids = {r.subject_id for r in requests if r.subject_type == SubjectType.SESSION.value}
        titles: dict[str, str] = {}

        if course_ids:
            result = await self.db.execute(
                select(Course.id, Course.title).where(Course.id.in_(course_ids))
            )
            titles.update({row.id: row.title for row in result})

        if session_ids:
            result = await self.db.execute(
                select(TrainingSession.id, TrainingSession.scheduled_at, Course.title)
                .join(Course, Course.id == TrainingSession.course_id)
                .where(TrainingSession.id.in_(session_ids))
            )
            titles.update(
                {
                    row.id: f"{row.title} ({format_session_date(row.scheduled_at)})"
                    for row in result
                }
            )

        return titles

    async def _resolve(
        self,
        request_id: str,
        reviewer_id: str,
        status: ApprovalStatus,
        notes: str | None,
    ) -> ApprovalRequest:
        """Apply a terminal transition and notify the submitter atomically."""
        reviewer = await self.db.get(User, reviewer_id)
        if reviewer is None:
            raise NotFoundError(f"Reviewer {reviewer_id} not found")
        if reviewer.role != UserRole.ADMIN.value:
            raise ForbiddenError("Only administrators can review requests")

        now = utc_now()
        result = await self.db.execute(
            update(ApprovalRequest)
            .where(
                ApprovalRequest.id == request_id,
                ApprovalRequest.status == ApprovalStatus.PENDING.value,
            )
            .values(
                status=status.value,
                reviewer_id=reviewer_id,
                review_notes=notes,
                resolved_at=now,
                updated_at=now,
            )
            .returning(
                ApprovalRequest.submitter_id,
                ApprovalRequest.subject_type,
                ApprovalRequest.subject_id,
            )
            .execution_options(synchronize_session=False)
        )
        row = result.first()

        if row is None:
            await self.db.rollback()
            existing = await self.db.get(ApprovalRequest, request_id, populate_existing=True)
            if existing is None:
                raise NotFoundError(f"Approval request {request_id} not found")
            raise AlreadyResolvedError(
                f"Approval request {request_id} is already {existing.status}",
                details={"status": existing.status},
            )

        subject_type = SubjectType(row.subject_type)
        message = await self._outcome_message(subject_type, row.subject_id, status, notes)

        # The outcome and its notification commit together
        try:
            await self.dispatcher.send(
                row.submitter_id, NotificationType.SYSTEM, message, commit=False
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        request = await self.db.get(ApprovalRequest, request_id, populate_existing=True)

        logger.info(
            "Approval %s: request=%s, %s=%s, reviewer=%s",
            status.value,
            request_id,
            subject_type.value,
            row.subject_id,
            reviewer_id,
        )
        return request

    async def _get_subject(self, subject_type: SubjectType, subject_id: str) -> tuple[str, str]:
        """Return (owner_id, title) of a subject.

        Raises:
            NotFoundError: If the subject does not exist.
        """
        if subject_type == SubjectType.COURSE:
            result = await self.db.execute(
                select(Course.trainer_id, Course.title).where(Course.id == subject_id)
            )
        else:
            result = await self.db.execute(
                select(Course.trainer_id, Course.title)
                .join(TrainingSession, TrainingSession.course_id == Course.id)
                .where(TrainingSession.id == subject_id)
            )

        row = result.first()
        if row is None:
            raise NotFoundError(f"{subject_type.value.capitalize()} {subject_id} not found")
        return row.trainer_id, row.title

    async def _outcome_message(
        self,
        subject_type: SubjectType,
        subject_id: str,
        status: ApprovalStatus,
        notes: str | None,
    ) -> str:
        try:
            _, title = await self._get_subject(subject_type, subject_id)
            subject = f'Your {subject_type.value} "{title}"'
        except NotFoundError:
            subject = f"Your {subject_type.value} submission"

        if status == ApprovalStatus.APPROVED:
            return f"{subject} has been approved."
        return f"{subject} has been rejected. Reason: {notes}"
