# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial marketplace schema.

Revision ID: 001_initial
Revises: None
Create Date: 2025-06-02

Creates users, courses, sessions, approval_requests, enrollments and
notifications.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PENDING_ONLY = sa.text("status = 'pending'")


def upgrade() -> None:
    """Create marketplace tables."""
    # ==========================================================================
    # 1. users table
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="student"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "role IN ('student', 'trainer', 'admin', 'enterprise')",
            name="ck_users_role",
        ),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_role", "users", ["role"])

    # ==========================================================================
    # 2. courses table
    # ==========================================================================
    op.create_table(
        "courses",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "trainer_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("level", sa.String(20), nullable=False, server_default="beginner"),
        sa.Column("duration_minutes", sa.Integer, nullable=False, server_default="60"),
        sa.Column("max_students", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("max_students >= 1", name="ck_courses_max_students_positive"),
        sa.CheckConstraint(
            "level IN ('beginner', 'intermediate', 'advanced')",
            name="ck_courses_level",
        ),
    )
    op.create_index("ix_courses_trainer_id", "courses", ["trainer_id"])

    # ==========================================================================
    # 3. sessions table
    # ==========================================================================
    op.create_table(
        "sessions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "course_id",
            sa.String(36),
            sa.ForeignKey("courses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("capacity", sa.Integer, nullable=False),
        sa.Column("meeting_link", sa.Text, nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("capacity >= 1", name="ck_sessions_capacity_positive"),
    )
    op.create_index("ix_sessions_course_id", "sessions", ["course_id"])

    # ==========================================================================
    # 4. approval_requests table
    # ==========================================================================
    op.create_table(
        "approval_requests",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("subject_type", sa.String(20), nullable=False),
        sa.Column("subject_id", sa.String(36), nullable=False),
        sa.Column("revision", sa.Integer, nullable=False, server_default="1"),
        sa.Column(
            "submitter_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column(
            "reviewer_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("review_notes", sa.Text, nullable=True),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_approval_requests_status",
        ),
        sa.CheckConstraint(
            "subject_type IN ('course', 'session')",
            name="ck_approval_requests_subject_type",
        ),
        sa.UniqueConstraint(
            "subject_type",
            "subject_id",
            "revision",
            name="uq_approval_requests_subject_revision",
        ),
    )
    op.create_index(
        "uq_approval_requests_pending_subject",
        "approval_requests",
        ["subject_type", "subject_id"],
        unique=True,
        postgresql_where=PENDING_ONLY,
        sqlite_where=PENDING_ONLY,
    )
    op.create_index(
        "ix_approval_requests_status_requested_at",
        "approval_requests",
        ["status", "requested_at"],
    )

    # ==========================================================================
    # 5. enrollments table
    # ==========================================================================
    op.create_table(
        "enrollments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "session_id",
            sa.String(36),
            sa.ForeignKey("sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "learner_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("session_id", "learner_id", name="uq_enrollments_session_learner"),
    )
    op.create_index("ix_enrollments_session_id", "enrollments", ["session_id"])
    op.create_index("ix_enrollments_learner_id", "enrollments", ["learner_id"])

    # ==========================================================================
    # 6. notifications table
    # ==========================================================================
    op.create_table(
        "notifications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "recipient_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "type IN ('system', 'admin', 'enrollment', 'comment')",
            name="ck_notifications_type",
        ),
    )
    op.create_index(
        "ix_notifications_recipient_created",
        "notifications",
        ["recipient_id", "created_at"],
    )


def downgrade() -> None:
    """Drop marketplace tables."""
    op.drop_table("notifications")
    op.drop_table("enrollments")
    op.drop_table("approval_requests")
    op.drop_table("sessions")
    op.drop_table("courses")
    op.drop_table("users")
