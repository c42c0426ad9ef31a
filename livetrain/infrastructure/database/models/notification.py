# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-app notification model."""

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from livetrain.infrastructure.database.models.base import Base, UUIDPrimaryKeyMixin, enum_check
from livetrain.models.common import NotificationType
from livetrain.utils.datetime import utc_now


class Notification(UUIDPrimaryKeyMixin, Base):
    """A message owned solely by its recipient.

    is_read only moves from false to true.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        CheckConstraint(
            enum_check("type", [t.value for t in NotificationType]), name="type"
        ),
        Index("ix_notifications_recipient_created", "recipient_id", "created_at"),
    )

    recipient_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
