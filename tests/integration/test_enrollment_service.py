# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the enrollment ledger."""

import asyncio

import pytest
import pytest_asyncio
from sqlalchemy import func, insert, select

from livetrain.core.errors import (
    AlreadyEnrolledError,
    ForbiddenError,
    NotFoundError,
    SessionFullError,
    SessionNotBookableError,
)
from livetrain.domains.approval.service import ApprovalService
from livetrain.domains.enrollment.service import EnrollmentService
from livetrain.infrastructure.database.models import Enrollment, Notification, new_uuid
from livetrain.models.common import SubjectType, UserRole
from livetrain.utils.datetime import utc_now

pytestmark = pytest.mark.integration


@pytest.fixture
def enrollment_service(db_session, settings):
    """Create enrollment service on the test session."""
    return EnrollmentService(db_session, settings)


@pytest_asyncio.fixture
async def marketplace(make_user, make_course):
    """Create a trainer, an admin and an approved course."""
    trainer = await make_user(UserRole.TRAINER, display_name="Tess Trainer")
    admin = await make_user(UserRole.ADMIN)
    course = await make_course(trainer, admin=admin, title="Python Basics")
    return trainer, admin, course


class TestEnroll:
    """Tests for single enrollments."""

    @pytest.mark.asyncio
    async def test_enroll_and_notify(
        self, enrollment_service, db_session, make_user, make_session, marketplace
    ):
        """Test a successful enrollment and its notifications."""
        trainer, _, course = marketplace
        session = await make_session(course, trainer, capacity=2)
        learner = await make_user(UserRole.STUDENT, display_name="Lee Learner")

        enrollment = await enrollment_service.enroll(session.id, learner.id)

        assert enrollment.session_id == session.id
        assert enrollment.learner_id == learner.id
        assert await enrollment_service.remaining_capacity(session.id) == 1

        result = await db_session.execute(
            select(Notification.recipient_id, Notification.message).where(
                Notification.type == "enrollment"
            )
        )
        messages = {row.recipient_id: row.message for row in result}
        date = session.scheduled_at.strftime("%Y-%m-%d")
        assert messages[learner.id] == f'You have successfully enrolled in "Python Basics" on {date}'
        assert messages[trainer.id] == f'Lee Learner enrolled in "Python Basics" on {date}'

    @pytest.mark.asyncio
    async def test_trainer_notification_can_be_disabled(
        self, db_session, settings, make_user, make_session, marketplace
    ):
        """Test the trainer notification switch."""
        trainer, _, course = marketplace
        session = await make_session(course, trainer)
        learner = await make_user()
        settings.marketplace.notify_trainer_on_enrollment = False

        await EnrollmentService(db_session, settings).enroll(session.id, learner.id)

        result = await db_session.execute(
            select(func.count(Notification.id)).where(Notification.recipient_id == trainer.id)
        )
        # Only the course approval notice
        assert result.scalar_one() == 1

    @pytest.mark.asyncio
    async def test_duplicate_enrollment(
        self, enrollment_service, make_user, make_session, marketplace
    ):
        """Test that the same learner cannot enroll twice."""
        trainer, _, course = marketplace
        session = await make_session(course, trainer)
        learner = await make_user()

        await enrollment_service.enroll(session.id, learner.id)

        with pytest.raises(AlreadyEnrolledError):
            await enrollment_service.enroll(session.id, learner.id)

    @pytest.mark.asyncio
    async def test_full_session(self, enrollment_service, make_user, make_session, marketplace):
        """Test that enrollments stop at capacity."""
        trainer, _, course = marketplace
        session = await make_session(course, trainer, capacity=1)
        first = await make_user()
        second = await make_user()

        await enrollment_service.enroll(session.id, first.id)

        with pytest.raises(SessionFullError):
            await enrollment_service.enroll(session.id, second.id)
        assert await enrollment_service.remaining_capacity(session.id) == 0

    @pytest.mark.asyncio
    async def test_duplicate_reported_before_full(
        self, enrollment_service, make_user, make_session, marketplace
    ):
        """Test that an enrolled learner hitting a full session is told they are enrolled."""
        trainer, _, course = marketplace
        session = await make_session(course, trainer, capacity=1)
        learner = await make_user()

        await enrollment_service.enroll(session.id, learner.id)

        with pytest.raises(AlreadyEnrolledError):
            await enrollment_service.enroll(session.id, learner.id)

    @pytest.mark.asyncio
    async def test_unknown_session_and_learner(
        self, enrollment_service, make_user, make_session, marketplace
    ):
        """Test NotFound for missing references."""
        trainer, _, course = marketplace
        session = await make_session(course, trainer)
        learner = await make_user()

        with pytest.raises(NotFoundError):
            await enrollment_service.enroll(new_uuid(), learner.id)
        with pytest.raises(NotFoundError):
            await enrollment_service.enroll(session.id, new_uuid())

    @pytest.mark.asyncio
    async def test_session_of_resubmitted_course_not_bookable(
        self, db_session, enrollment_service, make_user, make_session, marketplace
    ):
        """Test that a course pending re-review stops accepting enrollments."""
        trainer, _, course = marketplace
        session = await make_session(course, trainer)
        learner = await make_user()

        await ApprovalService(db_session).submit(SubjectType.COURSE, course.id, trainer.id)

        with pytest.raises(SessionNotBookableError):
            await enrollment_service.enroll(session.id, learner.id)

    @pytest.mark.asyncio
    async def test_session_with_own_pending_request_not_bookable(
        self, db_session, enrollment_service, make_user, make_session, marketplace
    ):
        """Test that a session awaiting its own review is not bookable."""
        trainer, _, course = marketplace
        session = await make_session(course, trainer)
        learner = await make_user()

        await ApprovalService(db_session).submit(SubjectType.SESSION, session.id, trainer.id)

        with pytest.raises(SessionNotBookableError):
            await enrollment_service.enroll(session.id, learner.id)


class TestConcurrency:
    """Tests for racing enrollments on separate connections."""

    @pytest.mark.asyncio
    @pytest.mark.slow
    async def test_concurrent_enrollments_never_exceed_capacity(
        self, session_factory, db_session, settings, make_user, make_session, marketplace
    ):
        """Test that exactly capacity learners win a race for seats."""
        trainer, _, course = marketplace
        session = await make_session(course, trainer, capacity=3)
        learners = [await make_user() for _ in range(8)]

        async def attempt(learner_id: str) -> str:
            async with session_factory() as db:
                try:
                    await EnrollmentService(db, settings).enroll(session.id, learner_id)
                except SessionFullError:
                    return "full"
                return "enrolled"

        outcomes = await asyncio.gather(*(attempt(learner.id) for learner in learners))

        assert outcomes.count("enrolled") == 3
        assert outcomes.count("full") == 5
        count = await db_session.execute(
            select(func.count(Enrollment.id)).where(Enrollment.session_id == session.id)
        )
        assert count.scalar_one() == 3

    @pytest.mark.asyncio
    @pytest.mark.slow
    async def test_concurrent_duplicates_create_one_row(
        self, session_factory, db_session, settings, make_user, make_session, marketplace
    ):
        """Test that a learner racing themself gets exactly one seat."""
        trainer, _, course = marketplace
        session = await make_session(course, trainer, capacity=10)
        learner = await make_user()

        async def attempt() -> str:
            async with session_factory() as db:
                try:
                    await EnrollmentService(db, settings).enroll(session.id, learner.id)
                except AlreadyEnrolledError:
                    return "duplicate"
                return "enrolled"

        outcomes = await asyncio.gather(*(attempt() for _ in range(5)))

        assert outcomes.count("enrolled") == 1
        assert outcomes.count("duplicate") == 4
        count = await db_session.execute(
            select(func.count(Enrollment.id)).where(Enrollment.learner_id == learner.id)
        )
        assert count.scalar_one() == 1


class TestAddAndWithdraw:
    """Tests for trainer adds and withdrawals."""

    @pytest.mark.asyncio
    async def test_trainer_adds_learner(
        self, enrollment_service, make_user, make_session, marketplace
    ):
        """Test that the session trainer can add a learner."""
        trainer, _, course = marketplace
        session = await make_session(course, trainer)
        learner = await make_user()

        enrollment = await enrollment_service.add_learner(session.id, learner.id, trainer.id)

        assert enrollment.learner_id == learner.id

    @pytest.mark.asyncio
    async def test_student_cannot_add_others(
        self, enrollment_service, make_user, make_session, marketplace
    ):
        """Test that learners cannot enroll other people."""
        trainer, _, course = marketplace
        session = await make_session(course, trainer)
        learner = await make_user()
        other = await make_user()

        with pytest.raises(ForbiddenError):
            await enrollment_service.add_learner(session.id, other.id, learner.id)

    @pytest.mark.asyncio
    async def test_withdraw_frees_seat(
        self, enrollment_service, db_session, make_user, make_session, marketplace
    ):
        """Test that withdrawing makes the seat available immediately."""
        trainer, _, course = marketplace
        session = await make_session(course, trainer, capacity=1)
        first = await make_user()
        second = await make_user()

        enrollment = await enrollment_service.enroll(session.id, first.id)
        with pytest.raises(SessionFullError):
            await enrollment_service.enroll(session.id, second.id)

        await enrollment_service.withdraw(enrollment.id, first.id)
        replacement = await enrollment_service.enroll(session.id, second.id)

        assert replacement.learner_id == second.id
        result = await db_session.execute(
            select(Notification.message).where(Notification.recipient_id == first.id)
        )
        assert any("cancelled your enrollment" in m for m in result.scalars())

    @pytest.mark.asyncio
    async def test_withdraw_by_stranger_forbidden(
        self, enrollment_service, make_user, make_session, marketplace
    ):
        """Test that unrelated users cannot withdraw an enrollment."""
        trainer, _, course = marketplace
        session = await make_session(course, trainer)
        learner = await make_user()
        stranger = await make_user()

        enrollment = await enrollment_service.enroll(session.id, learner.id)

        with pytest.raises(ForbiddenError):
            await enrollment_service.withdraw(enrollment.id, stranger.id)

    @pytest.mark.asyncio
    async def test_withdraw_missing(self, enrollment_service, make_user):
        """Test that withdrawing an unknown enrollment is NotFound."""
        learner = await make_user()

        with pytest.raises(NotFoundError):
            await enrollment_service.withdraw(new_uuid(), learner.id)


class TestListingsAndChecks:
    """Tests for enrollment listings and consistency checks."""

    @pytest.mark.asyncio
    async def test_list_for_session_and_course(
        self, enrollment_service, make_user, make_session, marketplace
    ):
        """Test listings include learner details."""
        trainer, _, course = marketplace
        morning = await make_session(course, trainer)
        evening = await make_session(course, trainer)
        ana = await make_user(display_name="Ana")
        ben = await make_user(display_name="Ben")

        await enrollment_service.enroll(morning.id, ana.id)
        await enrollment_service.enroll(evening.id, ben.id)

        session_rows = await enrollment_service.list_for_session(morning.id)
        course_rows = await enrollment_service.list_for_course(course.id)

        assert [e.learner.display_name for e in session_rows] == ["Ana"]
        assert {e.learner.display_name for e in course_rows} == {"Ana", "Ben"}
        assert [e.session_id for e in await enrollment_service.list_for_learner(ben.id)] == [
            evening.id
        ]

    @pytest.mark.asyncio
    async def test_overbooked_sessions_are_reported(
        self, enrollment_service, db_session, make_user, make_session, marketplace
    ):
        """Test detection of capacity violations written out of band."""
        trainer, _, course = marketplace
        session = await make_session(course, trainer, capacity=1)
        learners = [await make_user() for _ in range(2)]

        await db_session.execute(
            insert(Enrollment),
            [
                {
                    "id": new_uuid(),
                    "session_id": session.id,
                    "learner_id": learner.id,
                    "enrolled_at": utc_now(),
                }
                for learner in learners
            ],
        )
        await db_session.commit()

        overbooked = await enrollment_service.find_overbooked_sessions()

        assert len(overbooked) == 1
        assert overbooked[0].session_id == session.id
        assert overbooked[0].enrollment_count == 2
        assert overbooked[0].capacity == 1
        assert await enrollment_service.remaining_capacity(session.id) == 0
