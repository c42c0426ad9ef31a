# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment ledger service.

This module provides the EnrollmentService class for:
- Learner enrollment in scheduled sessions (capacity and uniqueness safe)
- Trainer/admin-initiated adds
- Withdrawal, which frees the seat immediately
- Seat accounting and consistency checks

The seat check and the insert are a single conditional INSERT ... SELECT
executed while the session row is locked (FOR UPDATE where supported).
UNIQUE (session_id, learner_id) backs the duplicate check.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import DateTime, String, delete, func, insert, literal, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from livetrain.core.config.settings import Settings, get_settings
from livetrain.core.errors import (
    AlreadyEnrolledError,
    ForbiddenError,
    LivetrainError,
    NotFoundError,
    SessionFullError,
    SessionNotBookableError,
)
from livetrain.domains.catalog import visibility
from livetrain.infrastructure.database.models import (
    Course,
    Enrollment,
    TrainingSession,
    User,
    new_uuid,
)
from livetrain.infrastructure.notifications import NotificationDispatcher
from livetrain.infrastructure.notifications.channels import NotificationPayload
from livetrain.models.common import NotificationType
from livetrain.models.enrollment import OverbookedSession
from livetrain.utils.datetime import format_session_date, utc_now

logger = logging.getLogger(__name__)


@dataclass
class _Booking:
    """Plain values captured before side effects run.

    Side effects may roll the session back, which expires ORM instances.
    """

    enrollment_id: str
    session_id: str
    learner_id: str
    learner_name: str
    learner_email: str
    trainer_id: str
    course_title: str
    session_date: str
    meeting_link: str


class EnrollmentService:
    """Service for binding learners to session seats.

    Attributes:
        db: Async database session.
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        """Initialize enrollment service.

        Args:
            db: Async database session.
            settings: Application settings. Defaults to the cached settings.
            dispatcher: Notification dispatcher for enrollment side effects.
        """
        self.db = db
        self._settings = settings or get_settings()
        self.dispatcher = dispatcher or NotificationDispatcher(db, self._settings)

    async def enroll(self, session_id: str, learner_id: str) -> Enrollment:
        """Enroll a learner in a session.

        Args:
            session_id: Session to join.
            learner_id: Learner taking the seat.

        Returns:
            The created enrollment.

        Raises:
            NotFoundError: If the session or learner does not exist.
            SessionNotBookableError: If the session or its course is not listed.
            AlreadyEnrolledError: If the learner already holds a seat.
            SessionFullError: If no seat is left.
        """
        return await self._book(session_id, learner_id, actor_id=learner_id)

    async def add_learner(self, session_id: str, learner_id: str, actor_id: str) -> Enrollment:
        """Add a learner on their behalf (session trainer or admin).

        Goes through the same atomic path as enroll().

        Raises:
            ForbiddenError: If the actor is neither the trainer nor an admin.
            NotFoundError, SessionNotBookableError, AlreadyEnrolledError,
            SessionFullError: As for enroll().
        """
        session = await self._get_session(session_id)
        course = await self.db.get(Course, session.course_id)
        if not await self._is_trainer_or_admin(actor_id, course):
            raise ForbiddenError("Only the session trainer or an admin can add learners")

        return await self._book(session_id, learner_id, actor_id=actor_id)

    async def withdraw(self, enrollment_id: str, actor_id: str) -> None:
        """Remove an enrollment, freeing its seat.

        Args:
            enrollment_id: Enrollment to remove.
            actor_id: The enrolled learner, the session trainer or an admin.

        Raises:
            NotFoundError: If the enrollment does not exist.
            ForbiddenError: If the actor may not remove it.
        """
        enrollment = await self.get_enrollment(enrollment_id)
        session = await self._get_session(enrollment.session_id)
        course = await self.db.get(Course, session.course_id)

        if actor_id != enrollment.learner_id and not await self._is_trainer_or_admin(
            actor_id, course
        ):
            raise ForbiddenError("Only the learner, the trainer or an admin can withdraw")

        learner_id = enrollment.learner_id
        title = course.title
        session_date = format_session_date(session.scheduled_at)

        await self.db.execute(
            delete(Enrollment)
            .where(Enrollment.id == enrollment_id)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        self.db.expunge(enrollment)

        logger.info(
            "Enrollment withdrawn: enrollment=%s, session=%s, learner=%s, by=%s",
            enrollment_id,
            session.id,
            learner_id,
            actor_id,
        )

        if actor_id == learner_id:
            message = f'You have cancelled your enrollment in "{title}" on {session_date}'
        else:
            message = f'You have been removed from "{title}" on {session_date}'
        await self._notify(learner_id, message)

    async def get_enrollment(self, enrollment_id: str) -> Enrollment:
        """Get an enrollment by ID.

        Raises:
            NotFoundError: If the enrollment does not exist.
        """
        enrollment = await self.db.get(Enrollment, enrollment_id)
        if enrollment is None:
            raise NotFoundError(f"Enrollment {enrollment_id} not found")
        return enrollment

    async def list_for_session(self, session_id: str) -> list[Enrollment]:
        """List a session's enrollments with learners, in booking order."""
        result = await self.db.execute(
            select(Enrollment)
            .options(selectinload(Enrollment.learner))
            .where(Enrollment.session_id == session_id)
            .order_by(Enrollment.enrolled_at, Enrollment.id)
        )
        return list(result.scalars().all())

    async def list_for_learner(self, learner_id: str) -> list[Enrollment]:
        """List a learner's enrollments, most recent first."""
        result = await self.db.execute(
            select(Enrollment)
            .where(Enrollment.learner_id == learner_id)
            .order_by(Enrollment.enrolled_at.desc())
        )
        return list(result.scalars().all())

    async def list_for_course(self, course_id: str) -> list[Enrollment]:
        """List enrollments across every session of a course, with learners."""
        result = await self.db.execute(
            select(Enrollment)
            .options(selectinload(Enrollment.learner))
            .join(TrainingSession, TrainingSession.id == Enrollment.session_id)
            .where(TrainingSession.course_id == course_id)
            .order_by(TrainingSession.scheduled_at, Enrollment.enrolled_at)
        )
        return list(result.scalars().all())

    async def remaining_capacity(self, session_id: str) -> int:
        """Seats left in a session, never negative.

        For display only; enroll() performs its own atomic check.

        Raises:
            NotFoundError: If the session does not exist.
        """
        session = await self._get_session(session_id)
        taken = await self._count(session_id)
        return max(session.capacity - taken, 0)

    async def find_overbooked_sessions(self) -> list[OverbookedSession]:
        """Report sessions holding more enrollments than their capacity.

        Such rows can only appear through out-of-band data changes.
        """
        enrolled = func.count(Enrollment.id)
        result = await self.db.execute(
            select(TrainingSession.id, TrainingSession.capacity, enrolled.label("enrolled"))
            .join(Enrollment, Enrollment.session_id == TrainingSession.id)
            .group_by(TrainingSession.id, TrainingSession.capacity)
            .having(enrolled > TrainingSession.capacity)
        )
        overbooked = [
            OverbookedSession(
                session_id=row.id,
                capacity=row.capacity,
                enrollment_count=row.enrolled,
            )
            for row in result
        ]

        for item in overbooked:
            logger.error(
                "Session %s is overbooked: %d enrollments for %d seats",
                item.session_id,
                item.enrollment_count,
                item.capacity,
            )
        return overbooked

    async def _book(self, session_id: str, learner_id: str, actor_id: str) -> Enrollment:
        """Check bookability, uniqueness and capacity, then insert atomically.

        The returned row is detached so later failures on this session
        cannot expire it.
        """
        try:
            booking = await self._insert_seat(session_id, learner_id)
        except LivetrainError:
            # No row was written; committing releases the lock without
            # expiring instances the caller still holds
            await self.db.commit()
            raise
        except Exception:
            await self.db.rollback()
            raise

        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Enrolled: enrollment=%s, session=%s, learner=%s, by=%s",
            booking.enrollment_id,
            session_id,
            learner_id,
            actor_id,
        )

        await self._after_enroll(booking)
        enrollment = await self.get_enrollment(booking.enrollment_id)
        self.db.expunge(enrollment)
        return enrollment

    async def _insert_seat(self, session_id: str, learner_id: str) -> _Booking:
        result = await self.db.execute(
            select(TrainingSession).where(TrainingSession.id == session_id).with_for_update()
        )
        session = result.scalar_one_or_none()
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")

        learner = await self.db.get(User, learner_id)
        if learner is None:
            raise NotFoundError(f"User {learner_id} not found")

        legacy = self._settings.marketplace.legacy_courses_bookable
        if not await visibility.is_session_bookable(self.db, session, legacy):
            raise SessionNotBookableError(
                "This session is not open for enrollment",
                details={"session_id": session_id},
            )

        if await self._exists(session_id, learner_id):
            raise self._already_enrolled(session_id, learner_id)

        enrollment_id = new_uuid()
        seats_taken = (
            select(func.count(Enrollment.id))
            .where(Enrollment.session_id == session_id)
            .scalar_subquery()
        )
        stmt = insert(Enrollment.__table__).from_select(
            ["id", "session_id", "learner_id", "enrolled_at"],
            select(
                literal(enrollment_id, String(36)),
                literal(session_id, String(36)),
                literal(learner_id, String(36)),
                literal(utc_now(), DateTime(timezone=True)),
            ).where(seats_taken < session.capacity),
        )

        try:
            inserted = await self.db.execute(stmt)
        except IntegrityError as e:
            # Concurrent duplicate caught by the unique constraint
            await self.db.rollback()
            raise self._already_enrolled(session_id, learner_id) from e

        if inserted.rowcount == 0:
            if await self._exists(session_id, learner_id):
                raise self._already_enrolled(session_id, learner_id)
            raise SessionFullError(
                "This session is full",
                details={"session_id": session_id, "capacity": session.capacity},
            )

        course = await self.db.get(Course, session.course_id)
        return _Booking(
            enrollment_id=enrollment_id,
            session_id=session_id,
            learner_id=learner_id,
            learner_name=learner.display_name,
            learner_email=learner.email,
            trainer_id=course.trainer_id,
            course_title=course.title,
            session_date=format_session_date(session.scheduled_at),
            meeting_link=session.meeting_link,
        )

    async def _after_enroll(self, booking: _Booking) -> None:
        """Run best-effort side effects; none of them undo the enrollment."""
        marketplace = self._settings.marketplace

        await self._notify(
            booking.learner_id,
            f'You have successfully enrolled in "{booking.course_title}" on {booking.session_date}',
        )

        if marketplace.notify_trainer_on_enrollment and booking.trainer_id != booking.learner_id:
            await self._notify(
                booking.trainer_id,
                f'{booking.learner_name} enrolled in "{booking.course_title}" on {booking.session_date}',
            )

        if marketplace.email_enrollment_confirmations:
            await self.dispatcher.send_email(
                NotificationPayload(
                    notification_type=NotificationType.ENROLLMENT.value,
                    title="Enrollment confirmed",
                    message=(
                        f'You have successfully enrolled in "{booking.course_title}" '
                        f"on {booking.session_date}."
                    ),
                    recipient_id=booking.learner_id,
                    recipient_email=booking.learner_email,
                    data={"meeting_link": booking.meeting_link},
                )
            )

    async def _notify(self, recipient_id: str, message: str) -> None:
        try:
            await self.dispatcher.send(recipient_id, NotificationType.ENROLLMENT, message)
        except LivetrainError as e:
            logger.warning("Enrollment notification to %s failed: %s", recipient_id, e)

    async def _get_session(self, session_id: str) -> TrainingSession:
        session = await self.db.get(TrainingSession, session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")
        return session

    async def _count(self, session_id: str) -> int:
        result = await self.db.execute(
            select(func.count(Enrollment.id)).where(Enrollment.session_id == session_id)
        )
        return result.scalar_one()

    async def _exists(self, session_id: str, learner_id: str) -> bool:
        result = await self.db.execute(
            select(Enrollment.id).where(
                Enrollment.session_id == session_id,
                Enrollment.learner_id == learner_id,
            )
        )
        return result.first() is not None

    async def _is_trainer_or_admin(self, actor_id: str, course: Course | None) -> bool:
        if course is not None and course.trainer_id == actor_id:
            return True
        actor = await self.db.get(User, actor_id)
        return actor is not None and actor.is_admin

    @staticmethod
    def _already_enrolled(session_id: str, learner_id: str) -> AlreadyEnrolledError:
        return AlreadyEnrolledError(
            "You are already enrolled in this session",
            details={"session_id": session_id, "learner_id": learner_id},
        )
