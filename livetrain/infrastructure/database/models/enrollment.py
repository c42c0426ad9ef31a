# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment model binding a learner to a session seat."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from livetrain.infrastructure.database.models.base import Base, UUIDPrimaryKeyMixin
from livetrain.infrastructure.database.models.catalog import TrainingSession
from livetrain.infrastructure.database.models.user import User
from livetrain.utils.datetime import utc_now


class Enrollment(UUIDPrimaryKeyMixin, Base):
    """One seat held by one learner in one session.

    Removal is a hard delete so the seat is freed immediately.
    """

    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("session_id", "learner_id", name="uq_enrollments_session_learner"),
    )

    session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    learner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    session: Mapped[TrainingSession] = relationship(lazy="raise")
    learner: Mapped[User] = relationship(lazy="raise")
