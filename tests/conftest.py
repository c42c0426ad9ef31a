# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests (mocked sessions)
- Integration tests (file-backed SQLite database per test)
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import timedelta
from uuid import uuid4

import pytest
import pytest_asyncio
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from livetrain.core.config.settings import (
    JWTSettings,
    MarketplaceSettings,
    Settings,
    SMTPSettings,
)
from livetrain.domains.approval.service import ApprovalService
from livetrain.domains.catalog.service import CatalogService
from livetrain.infrastructure.database.connection import (
    build_engine,
    build_sessionmaker,
    create_schema,
)
from livetrain.infrastructure.database.models import Course, TrainingSession, User, new_uuid
from livetrain.models.catalog import CourseCreateRequest
from livetrain.models.common import SubjectType, UserRole
from livetrain.utils.datetime import utc_now

# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (uses a SQLite database)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def jwt_settings() -> JWTSettings:
    """Provide JWT settings with a test secret."""
    return JWTSettings(
        secret_key=SecretStr("test-secret-key-for-jwt-testing"),
        algorithm="HS256",
    )


@pytest.fixture
def settings(jwt_settings: JWTSettings) -> Settings:
    """Provide application settings for tests (email disabled)."""
    return Settings(
        environment="development",
        debug=False,
        jwt=jwt_settings,
        smtp=SMTPSettings(host=None),
        marketplace=MarketplaceSettings(
            notify_trainer_on_enrollment=True,
            email_enrollment_confirmations=False,
            legacy_courses_bookable=False,
            notification_page_size=50,
        ),
    )


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a file-backed SQLite engine with the full schema.

    A file database (rather than :memory:) lets concurrent sessions use
    separate connections, like a real deployment.
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'livetrain.db'}")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the sessionmaker bound to the test engine."""
    return build_sessionmaker(db_engine)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create an async session for a test."""
    async with session_factory() as session:
        yield session


# =============================================================================
# Data Factories
# =============================================================================


@pytest.fixture
def make_user(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[User]]:
    """Factory creating a committed user."""

    async def _make(role: UserRole = UserRole.STUDENT, display_name: str | None = None) -> User:
        async with session_factory() as session:
            user = User(
                id=new_uuid(),
                email=f"{uuid4().hex[:12]}@example.com",
                display_name=display_name or f"{role.value.title()} {uuid4().hex[:4]}",
                role=role.value,
            )
            session.add(user)
            await session.commit()
            return user

    return _make


@pytest.fixture
def make_course(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
) -> Callable[..., Awaitable[Course]]:
    """Factory creating a course, approved when an admin is given."""

    async def _make(
        trainer: User,
        admin: User | None = None,
        title: str = "Python Basics",
        max_students: int = 10,
    ) -> Course:
        async with session_factory() as session:
            catalog = CatalogService(session, settings)
            course = await catalog.create_course(
                trainer.id,
                CourseCreateRequest(title=title, max_students=max_students),
            )
            if admin is not None:
                approvals = ApprovalService(session)
                pending = await approvals.latest_for_subject(SubjectType.COURSE, course.id)
                await approvals.approve(pending.id, admin.id)
            return course

    return _make


@pytest.fixture
def make_session(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
) -> Callable[..., Awaitable[TrainingSession]]:
    """Factory scheduling a session of a listed course."""

    async def _make(course: Course, actor: User, capacity: int | None = None) -> TrainingSession:
        async with session_factory() as session:
            catalog = CatalogService(session, settings)
            return await catalog.schedule_session(
                course.id,
                actor.id,
                scheduled_at=utc_now() + timedelta(days=7),
                meeting_link="https://meet.example.com/abc",
                capacity=capacity,
            )

    return _make
