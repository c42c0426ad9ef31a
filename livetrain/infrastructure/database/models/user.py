# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User model.

Users are owned by the surrounding application (registration, login,
billing). The core reads them to resolve roles, ownership and broadcast
audiences.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from livetrain.infrastructure.database.models.base import Base, UUIDPrimaryKeyMixin, enum_check
from livetrain.models.common import UserRole
from livetrain.utils.datetime import utc_now


class User(UUIDPrimaryKeyMixin, Base):
    """Marketplace account."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(enum_check("role", [r.value for r in UserRole]), name="role"),
    )

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.STUDENT.value, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    @property
    def is_admin(self) -> bool:
        """Check if user is an administrator."""
        return self.role == UserRole.ADMIN.value

    @property
    def is_trainer(self) -> bool:
        """Check if user is a trainer."""
        return self.role == UserRole.TRAINER.value

    def __repr__(self) -> str:
        return f"<User {self.id} {self.role}>"
