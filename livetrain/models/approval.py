# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Approval request and response models."""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from livetrain.models.common import ApprovalStatus, SubjectType


class ApproveRequest(BaseModel):
    """Request to approve a pending approval request.

    reviewer_id defaults to the authenticated admin.
    """

    reviewer_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("reviewer_id", "reviewerId"),
    )


class RejectRequest(BaseModel):
    """Request to reject a pending approval request."""

    reviewer_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("reviewer_id", "reviewerId"),
    )
    notes: str = Field(default="", description="Reason shown to the submitter")


class ApprovalRequestResponse(BaseModel):
    """Approval request as stored in the audit trail."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    subject_type: SubjectType
    subject_id: str
    revision: int
    submitter_id: str
    status: ApprovalStatus
    reviewer_id: str | None = None
    review_notes: str | None = None
    requested_at: datetime
    resolved_at: datetime | None = None


class PendingApprovalResponse(ApprovalRequestResponse):
    """Pending request joined with a short summary of its subject."""

    subject_title: str | None = None
