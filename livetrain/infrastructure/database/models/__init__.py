# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models for the marketplace database."""

from livetrain.infrastructure.database.models.approval import ApprovalRequest
from livetrain.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    new_uuid,
)
from livetrain.infrastructure.database.models.catalog import Course, TrainingSession
from livetrain.infrastructure.database.models.enrollment import Enrollment
from livetrain.infrastructure.database.models.notification import Notification
from livetrain.infrastructure.database.models.user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "new_uuid",
    "User",
    "Course",
    "TrainingSession",
    "ApprovalRequest",
    "Enrollment",
    "Notification",
]
