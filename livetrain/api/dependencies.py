# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints:
- Database sessions
- Authenticated users and role checks

Example:
    @router.get("/notifications")
    async def list_notifications(
        db: AsyncSession = Depends(get_db),
        current_user: CurrentUser = Depends(require_auth),
    ):
        ...
"""

import logging
from typing import AsyncGenerator

from fastapi import HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from livetrain.api.middleware.auth import CurrentUser, get_current_user
from livetrain.core.config import Settings
from livetrain.infrastructure.database.connection import (
    close_database,
    create_schema,
    get_session,
    init_database,
)

logger = logging.getLogger(__name__)


async def init_db(settings: Settings) -> None:
    """Initialize the database connection pool.

    SQLite databases (local runs) get their tables created directly;
    PostgreSQL schemas are managed with Alembic.
    """
    await init_database(settings)
    if settings.db.is_sqlite:
        await create_schema()
        logger.info("SQLite schema created")


async def close_db() -> None:
    """Close the database connection pool."""
    await close_database()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session for the request.

    Yields:
        AsyncSession committed on success and rolled back on error.
    """
    async with get_session() as session:
        yield session


# =========================================================================
# Authentication Dependencies
# =========================================================================


def require_auth(request: Request) -> CurrentUser:
    """Require authenticated user.

    Raises:
        HTTPException: If not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_admin(request: Request) -> CurrentUser:
    """Require admin user.

    Raises:
        HTTPException: If not authenticated or not admin.
    """
    user = require_auth(request)
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


def require_trainer_or_admin(request: Request) -> CurrentUser:
    """Require trainer or admin user.

    Raises:
        HTTPException: If not trainer or admin.
    """
    user = require_auth(request)
    if not (user.is_trainer or user.is_admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Trainer or admin access required",
        )
    return user
