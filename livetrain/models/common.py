# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared enumerations used by ORM models and API DTOs."""

from enum import Enum


class UserRole(str, Enum):
    """Marketplace user roles."""

    STUDENT = "student"
    TRAINER = "trainer"
    ADMIN = "admin"
    ENTERPRISE = "enterprise"


class CourseLevel(str, Enum):
    """Course difficulty levels."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class SubjectType(str, Enum):
    """Entity kinds that go through moderation."""

    COURSE = "course"
    SESSION = "session"


class ApprovalStatus(str, Enum):
    """Approval request lifecycle states."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        """Check whether no further transition is allowed."""
        return self is not ApprovalStatus.PENDING


class NotificationType(str, Enum):
    """Notification categories."""

    SYSTEM = "system"
    ADMIN = "admin"
    ENROLLMENT = "enrollment"
    COMMENT = "comment"
