# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the HTTP API.

Requests go through the full application (auth middleware, routers,
error translation) against the per-test SQLite database.
"""

from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from livetrain.api.app import create_app
from livetrain.api.dependencies import get_db
from livetrain.domains.auth.jwt import JWTManager
from livetrain.infrastructure.database.models import User
from livetrain.models.common import UserRole

pytestmark = pytest.mark.integration


@pytest.fixture
def app(settings, session_factory) -> FastAPI:
    """Create the application bound to the test database."""
    app = create_app(settings)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Create an async HTTP client for the application."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def auth_headers(jwt_settings):
    """Build Authorization headers for a user."""
    manager = JWTManager(jwt_settings)

    def _headers(user: User) -> dict[str, str]:
        token = manager.create_access_token(user.id, user.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


class TestHealth:
    """Tests for health endpoints."""

    @pytest.mark.asyncio
    async def test_liveness(self, client):
        """Test that liveness needs no token and echoes a request id."""
        response = await client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.headers["X-Request-ID"] == "req-123"


class TestAuthentication:
    """Tests for authentication and role checks."""

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        """Test that protected routes require a token."""
        response = await client.get("/api/v1/notifications")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        """Test that a bad token is treated as anonymous."""
        response = await client.get(
            "/api/v1/notifications",
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_student_cannot_create_course(self, client, make_user, auth_headers):
        """Test role enforcement on course creation."""
        student = await make_user(UserRole.STUDENT)

        response = await client.post(
            "/api/v1/courses",
            json={"title": "Nope", "max_students": 5},
            headers=auth_headers(student),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_trainer_cannot_review(self, client, make_user, auth_headers):
        """Test that the moderation queue is admin only."""
        trainer = await make_user(UserRole.TRAINER)

        response = await client.get(
            "/api/v1/admin/approvals/pending", headers=auth_headers(trainer)
        )

        assert response.status_code == 403


class TestMarketplaceFlow:
    """End-to-end flow: author, moderate, schedule, enroll, notify."""

    @pytest.mark.asyncio
    async def test_full_flow(self, client, make_user, auth_headers):
        """Test the main marketplace scenario over HTTP."""
        trainer = await make_user(UserRole.TRAINER, display_name="Tess Trainer")
        admin = await make_user(UserRole.ADMIN)
        ana = await make_user(UserRole.STUDENT, display_name="Ana")
        ben = await make_user(UserRole.STUDENT, display_name="Ben")

        # Trainer creates a course; it is not listed yet
        response = await client.post(
            "/api/v1/courses",
            json={"title": "Python Basics", "max_students": 1},
            headers=auth_headers(trainer),
        )
        assert response.status_code == 201
        course_id = response.json()["id"]

        response = await client.get("/api/v1/courses", headers=auth_headers(ana))
        assert response.json() == []

        # Admin approves from the queue
        response = await client.get(
            "/api/v1/admin/approvals/pending", headers=auth_headers(admin)
        )
        assert response.status_code == 200
        [pending] = response.json()
        assert pending["subject_id"] == course_id
        assert pending["subject_title"] == "Python Basics"

        response = await client.post(
            f"/api/v1/admin/approvals/{pending['id']}/approve",
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        assert response.json()["status"] == "approved"

        response = await client.post(
            f"/api/v1/admin/approvals/{pending['id']}/approve",
            headers=auth_headers(admin),
        )
        assert response.status_code == 409

        response = await client.get("/api/v1/courses", headers=auth_headers(ana))
        assert [c["id"] for c in response.json()] == [course_id]

        # Trainer schedules a one-seat session
        response = await client.post(
            f"/api/v1/courses/{course_id}/sessions",
            json={"scheduled_at": "2030-05-01T09:00:00Z", "meeting_link": "https://meet.example.com/x"},
            headers=auth_headers(trainer),
        )
        assert response.status_code == 201
        session_id = response.json()["id"]
        assert response.json()["capacity"] == 1

        # Ana takes the seat, Ben finds it full, Ana cannot book twice
        response = await client.post(
            "/api/v1/enrollments", json={"sessionId": session_id}, headers=auth_headers(ana)
        )
        assert response.status_code == 201
        enrollment_id = response.json()["id"]

        response = await client.post(
            "/api/v1/enrollments", json={"sessionId": session_id}, headers=auth_headers(ben)
        )
        assert response.status_code == 409
        assert response.json()["detail"] == "Session is full"

        response = await client.post(
            "/api/v1/enrollments", json={"sessionId": session_id}, headers=auth_headers(ana)
        )
        assert response.status_code == 409
        assert response.json()["detail"] == "Already enrolled in this session"

        response = await client.get(f"/api/v1/sessions/{session_id}", headers=auth_headers(ben))
        detail = response.json()
        assert detail["enrollment_count"] == 1
        assert detail["remaining_capacity"] == 0
        assert detail["bookable"] is True

        # Trainer sees the roster
        response = await client.get(
            f"/api/v1/courses/{course_id}/enrollments", headers=auth_headers(trainer)
        )
        assert [e["learner"]["display_name"] for e in response.json()] == ["Ana"]

        response = await client.get(
            f"/api/v1/sessions/{session_id}/enrollments", headers=auth_headers(ben)
        )
        assert response.status_code == 403

        # Notifications reached learner and trainer
        response = await client.get(
            "/api/v1/notifications?filter=enrollment", headers=auth_headers(ana)
        )
        [notice] = response.json()
        assert notice["message"] == 'You have successfully enrolled in "Python Basics" on 2030-05-01'

        response = await client.get("/api/v1/notifications", headers=auth_headers(trainer))
        messages = [n["message"] for n in response.json()]
        assert 'Ana enrolled in "Python Basics" on 2030-05-01' in messages
        assert 'Your course "Python Basics" has been approved.' in messages

        # Ana withdraws and Ben gets the seat
        response = await client.delete(
            f"/api/v1/enrollments/{enrollment_id}", headers=auth_headers(ana)
        )
        assert response.status_code == 204

        response = await client.post(
            "/api/v1/enrollments", json={"session_id": session_id}, headers=auth_headers(ben)
        )
        assert response.status_code == 201

        response = await client.get("/api/v1/enrollments/me", headers=auth_headers(ben))
        assert [e["session_id"] for e in response.json()] == [session_id]

    @pytest.mark.asyncio
    async def test_reject_requires_notes(self, client, make_user, make_course, auth_headers):
        """Test that rejection without notes is a validation error."""
        trainer = await make_user(UserRole.TRAINER)
        admin = await make_user(UserRole.ADMIN)
        await make_course(trainer)

        response = await client.get(
            "/api/v1/admin/approvals/pending", headers=auth_headers(admin)
        )
        request_id = response.json()[0]["id"]

        response = await client.post(
            f"/api/v1/admin/approvals/{request_id}/reject",
            json={"notes": ""},
            headers=auth_headers(admin),
        )
        assert response.status_code == 422

        response = await client.post(
            f"/api/v1/admin/approvals/{request_id}/reject",
            json={"notes": "Needs exercises"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        assert response.json()["review_notes"] == "Needs exercises"

    @pytest.mark.asyncio
    async def test_enroll_unknown_session(self, client, make_user, auth_headers):
        """Test 404 for an unknown session."""
        learner = await make_user()

        response = await client.post(
            "/api/v1/enrollments",
            json={"sessionId": "00000000-0000-0000-0000-000000000000"},
            headers=auth_headers(learner),
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_student_cannot_enroll_someone_else(self, client, make_user, auth_headers):
        """Test that only admins may name another learner."""
        learner = await make_user()
        other = await make_user()

        response = await client.post(
            "/api/v1/enrollments",
            json={"sessionId": "any", "userId": other.id},
            headers=auth_headers(learner),
        )

        assert response.status_code == 403


class TestNotificationsAPI:
    """Tests for notification endpoints."""

    @pytest.mark.asyncio
    async def test_admin_send_and_recipient_mailbox(self, client, make_user, auth_headers):
        """Test broadcast by role, then read and delete by the recipient."""
        admin = await make_user(UserRole.ADMIN)
        trainer = await make_user(UserRole.TRAINER)
        student = await make_user(UserRole.STUDENT)

        response = await client.post(
            "/api/v1/admin/notifications/send",
            json={"message": "Trainer meetup on Friday", "role": "trainer"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "1 notification(s) sent"
        assert body["recipient_count"] == 1
        notification_id = body["notifications"][0]["id"]

        response = await client.get(
            "/api/v1/notifications/unread-count", headers=auth_headers(trainer)
        )
        assert response.json() == {"count": 1}

        response = await client.patch(
            f"/api/v1/notifications/{notification_id}/read", headers=auth_headers(student)
        )
        assert response.status_code == 403

        response = await client.patch(
            f"/api/v1/notifications/{notification_id}/read", headers=auth_headers(trainer)
        )
        assert response.status_code == 200
        assert response.json()["is_read"] is True

        response = await client.delete(
            f"/api/v1/notifications/{notification_id}", headers=auth_headers(trainer)
        )
        assert response.status_code == 204
        response = await client.delete(
            f"/api/v1/notifications/{notification_id}", headers=auth_headers(trainer)
        )
        assert response.status_code == 204

        response = await client.get("/api/v1/notifications", headers=auth_headers(trainer))
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_send_to_explicit_users_reports_failures(self, client, make_user, auth_headers):
        """Test per-recipient failures in the send response."""
        admin = await make_user(UserRole.ADMIN)
        student = await make_user()

        response = await client.post(
            "/api/v1/admin/notifications/send",
            json={"message": "Welcome", "userIds": [student.id, "missing-user"]},
            headers=auth_headers(admin),
        )

        body = response.json()
        assert body["message"] == "1 notification(s) sent"
        assert [f["recipient_id"] for f in body["failed"]] == ["missing-user"]

    @pytest.mark.asyncio
    async def test_read_all_and_invalid_filter(self, client, make_user, auth_headers):
        """Test bulk read and filter validation."""
        admin = await make_user(UserRole.ADMIN)
        student = await make_user()
        for _ in range(2):
            await client.post(
                "/api/v1/admin/notifications/send",
                json={"message": "Hello", "userIds": [student.id]},
                headers=auth_headers(admin),
            )

        response = await client.post(
            "/api/v1/notifications/read-all", headers=auth_headers(student)
        )
        assert response.json() == {"updated": 2}

        response = await client.get(
            "/api/v1/notifications?filter=starred", headers=auth_headers(student)
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_send_requires_admin(self, client, make_user, auth_headers):
        """Test that broadcasting is admin only."""
        trainer = await make_user(UserRole.TRAINER)

        response = await client.post(
            "/api/v1/admin/notifications/send",
            json={"message": "Hi"},
            headers=auth_headers(trainer),
        )

        assert response.status_code == 403
