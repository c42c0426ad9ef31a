# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Catalog service for trainer-authored courses and scheduled sessions.

This module provides the CatalogService class for:
- Course creation (automatically submitted for review) and updates
- Session scheduling for listed courses
- Public listing derived from the approval ledger
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from livetrain.core.config.settings import Settings, get_settings
from livetrain.core.errors import (
    ForbiddenError,
    NotFoundError,
    SessionNotBookableError,
    ValidationError,
)
from livetrain.domains.approval.service import ApprovalService
from livetrain.domains.catalog import visibility
from livetrain.infrastructure.database.models import (
    ApprovalRequest,
    Course,
    Enrollment,
    TrainingSession,
    User,
    new_uuid,
)
from livetrain.models.catalog import (
    CourseCreateRequest,
    CourseResponse,
    CourseUpdateRequest,
    SessionDetailResponse,
    SessionResponse,
)
from livetrain.models.common import SubjectType, UserRole

logger = logging.getLogger(__name__)

AUTHOR_ROLES = {UserRole.TRAINER.value, UserRole.ADMIN.value}


class CatalogService:
    """Service for courses and sessions.

    Attributes:
        db: Async database session.
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings | None = None,
        approvals: ApprovalService | None = None,
    ) -> None:
        """Initialize catalog service.

        Args:
            db: Async database session.
            settings: Application settings. Defaults to the cached settings.
            approvals: Approval service used for automatic submission.
        """
        self.db = db
        self._settings = settings or get_settings()
        self.approvals = approvals or ApprovalService(db)

    @property
    def legacy_bookable(self) -> bool:
        """Whether content without any approval request is listed."""
        return self._settings.marketplace.legacy_courses_bookable

    async def create_course(self, trainer_id: str, data: CourseCreateRequest) -> Course:
        """Create a course and submit it for review.

        Args:
            trainer_id: Authoring trainer (or admin).
            data: Course fields.

        Returns:
            The created course. It stays unlisted until approved.

        Raises:
            ValidationError: If max_students is below 1.
            NotFoundError: If the trainer does not exist.
            ForbiddenError: If the user may not author courses.
        """
        if data.max_students < 1:
            raise ValidationError("max_students must be at least 1")

        author = await self._get_user(trainer_id)
        if author.role not in AUTHOR_ROLES:
            raise ForbiddenError("Only trainers can create courses")

        course = Course(
            id=new_uuid(),
            trainer_id=trainer_id,
            title=data.title,
            description=data.description,
            level=data.level.value,
            duration_minutes=data.duration_minutes,
            max_students=data.max_students,
        )
        self.db.add(course)
        await self.db.commit()
        await self.db.refresh(course)

        logger.info("Course created: course=%s, trainer=%s", course.id, trainer_id)

        await self.approvals.submit(SubjectType.COURSE, course.id, trainer_id)
        return course

    async def update_course(
        self,
        course_id: str,
        actor_id: str,
        data: CourseUpdateRequest,
    ) -> Course:
        """Update course fields.

        Editing does not change the course's listing; resubmit to have the
        changes reviewed.

        Raises:
            NotFoundError: If the course does not exist.
            ForbiddenError: If the actor is neither the owner nor an admin.
            ValidationError: If max_students is below 1.
        """
        course = await self.get_course(course_id)
        await self._check_owner(course, actor_id)

        changes = data.model_dump(exclude_unset=True)
        if changes.get("max_students") is not None and changes["max_students"] < 1:
            raise ValidationError("max_students must be at least 1")

        for field_name, value in changes.items():
            if value is None:
                continue
            setattr(course, field_name, value.value if field_name == "level" else value)

        await self.db.commit()
        await self.db.refresh(course)

        logger.info("Course updated: course=%s, by=%s, fields=%s", course_id, actor_id, list(changes))
        return course

    async def submit_course(self, course_id: str, actor_id: str) -> ApprovalRequest:
        """Submit an existing course for review again."""
        course = await self.get_course(course_id)
        await self._check_owner(course, actor_id)
        return await self.approvals.submit(SubjectType.COURSE, course_id, actor_id)

    async def schedule_session(
        self,
        course_id: str,
        actor_id: str,
        scheduled_at: datetime,
        meeting_link: str = "",
        capacity: int | None = None,
    ) -> TrainingSession:
        """Schedule a session of a listed course.

        Args:
            course_id: Course to schedule.
            actor_id: Owner trainer or admin.
            scheduled_at: Session start.
            meeting_link: Opaque conferencing link.
            capacity: Seat limit; defaults to the course's max_students.

        Raises:
            NotFoundError: If the course does not exist.
            ForbiddenError: If the actor is neither the owner nor an admin.
            SessionNotBookableError: If the course is not listed.
            ValidationError: If capacity is below 1.
        """
        course = await self.get_course(course_id)
        await self._check_owner(course, actor_id)

        if not await visibility.is_course_listed(self.db, course_id, self.legacy_bookable):
            raise SessionNotBookableError(
                "Sessions can only be scheduled for approved courses",
                details={"course_id": course_id},
            )

        seats = course.max_students if capacity is None else capacity
        if seats < 1:
            raise ValidationError("capacity must be at least 1")

        session = TrainingSession(
            id=new_uuid(),
            course_id=course_id,
            scheduled_at=scheduled_at,
            capacity=seats,
            meeting_link=meeting_link,
        )
        self.db.add(session)
        await self.db.commit()
        await self.db.refresh(session)

        logger.info(
            "Session scheduled: session=%s, course=%s, capacity=%d, by=%s",
            session.id,
            course_id,
            seats,
            actor_id,
        )
        return session

    async def get_course(self, course_id: str) -> Course:
        """Get a course by ID.

        Raises:
            NotFoundError: If the course does not exist.
        """
        course = await self.db.get(Course, course_id)
        if course is None:
            raise NotFoundError(f"Course {course_id} not found")
        return course

    async def get_session(self, session_id: str) -> TrainingSession:
        """Get a session by ID.

        Raises:
            NotFoundError: If the session does not exist.
        """
        session = await self.db.get(TrainingSession, session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")
        return session

    async def list_public_courses(self) -> list[Course]:
        """List courses visible in the public catalog, newest first."""
        result = await self.db.execute(visibility.listed_courses_stmt(self.legacy_bookable))
        return list(result.scalars().all())

    async def list_sessions(self, course_id: str) -> list[TrainingSession]:
        """List a course's sessions in schedule order."""
        result = await self.db.execute(
            select(TrainingSession)
            .where(TrainingSession.course_id == course_id)
            .order_by(TrainingSession.scheduled_at)
        )
        return list(result.scalars().all())

    async def is_course_listed(self, course_id: str) -> bool:
        """Check whether a course is publicly listed."""
        return await visibility.is_course_listed(self.db, course_id, self.legacy_bookable)

    async def is_session_bookable(self, session_id: str) -> bool:
        """Check whether a session accepts enrollments.

        Raises:
            NotFoundError: If the session does not exist.
        """
        session = await self.get_session(session_id)
        return await visibility.is_session_bookable(self.db, session, self.legacy_bookable)

    async def get_session_detail(self, session_id: str) -> SessionDetailResponse:
        """Get a session with its course and seat counts.

        Raises:
            NotFoundError: If the session does not exist.
        """
        session = await self.get_session(session_id)
        course = await self.get_course(session.course_id)

        count_result = await self.db.execute(
            select(func.count(Enrollment.id)).where(Enrollment.session_id == session_id)
        )
        enrolled = count_result.scalar_one()

        return SessionDetailResponse(
            session=SessionResponse.model_validate(session),
            course=CourseResponse.model_validate(course),
            enrollment_count=enrolled,
            remaining_capacity=max(session.capacity - enrolled, 0),
            bookable=await visibility.is_session_bookable(self.db, session, self.legacy_bookable),
        )

    async def _get_user(self, user_id: str) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    async def _check_owner(self, course: Course, actor_id: str) -> None:
        if course.trainer_id == actor_id:
            return
        actor = await self._get_user(actor_id)
        if not actor.is_admin:
            raise ForbiddenError("Only the course owner can manage this course")
