# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Approval request model (moderation audit trail)."""

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from livetrain.infrastructure.database.models.base import Base, UUIDPrimaryKeyMixin, enum_check
from livetrain.models.common import ApprovalStatus, SubjectType
from livetrain.utils.datetime import utc_now

PENDING_PREDICATE = text("status = 'pending'")


class ApprovalRequest(UUIDPrimaryKeyMixin, Base):
    """Moderation request for a course or session.

    Rows are never deleted, so users referenced by a request cannot be
    deleted either. At most one row per subject may be pending, enforced
    by a partial unique index. revision numbers a subject's requests from 1
    and orders them without relying on timestamps.
    """

    __tablename__ = "approval_requests"
    __table_args__ = (
        CheckConstraint(
            enum_check("status", [s.value for s in ApprovalStatus]), name="status"
        ),
        CheckConstraint(
            enum_check("subject_type", [s.value for s in SubjectType]), name="subject_type"
        ),
        Index(
            "uq_approval_requests_pending_subject",
            "subject_type",
            "subject_id",
            unique=True,
            postgresql_where=PENDING_PREDICATE,
            sqlite_where=PENDING_PREDICATE,
        ),
        UniqueConstraint(
            "subject_type",
            "subject_id",
            "revision",
            name="uq_approval_requests_subject_revision",
        ),
        Index("ix_approval_requests_status_requested_at", "status", "requested_at"),
    )

    subject_type: Mapped[str] = mapped_column(String(20), nullable=False)
    subject_id: Mapped[str] = mapped_column(String(36), nullable=False)
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    submitter_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ApprovalStatus.PENDING.value
    )
    reviewer_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=True
    )
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    @property
    def is_pending(self) -> bool:
        """Check if the request still awaits review."""
        return self.status == ApprovalStatus.PENDING.value
