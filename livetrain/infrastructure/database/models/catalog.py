# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course and scheduled session models."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from livetrain.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    enum_check,
)
from livetrain.infrastructure.database.models.user import User
from livetrain.models.common import CourseLevel
from livetrain.utils.datetime import utc_now


class Course(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Trainer-authored course.

    Whether a course is publicly listed is derived from its approval
    requests, not stored here.
    """

    __tablename__ = "courses"
    __table_args__ = (
        CheckConstraint("max_students >= 1", name="max_students_positive"),
        CheckConstraint(enum_check("level", [lvl.value for lvl in CourseLevel]), name="level"),
    )

    trainer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    level: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CourseLevel.BEGINNER.value
    )
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    max_students: Mapped[int] = mapped_column(Integer, nullable=False)

    trainer: Mapped[User] = relationship(lazy="raise")
    sessions: Mapped[list["TrainingSession"]] = relationship(
        back_populates="course", lazy="raise", passive_deletes=True
    )


class TrainingSession(UUIDPrimaryKeyMixin, Base):
    """A scheduled live occurrence of a course.

    capacity is copied from the course at scheduling time and is the
    hard ceiling enforced by the enrollment ledger.
    """

    __tablename__ = "sessions"
    __table_args__ = (CheckConstraint("capacity >= 1", name="capacity_positive"),)

    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    meeting_link: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    course: Mapped[Course] = relationship(back_populates="sessions", lazy="raise")
