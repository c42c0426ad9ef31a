# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification request and response models."""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from livetrain.models.common import NotificationType, UserRole


class NotificationResponse(BaseModel):
    """Notification as seen by its recipient."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    recipient_id: str
    type: NotificationType
    message: str
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime


class SendNotificationRequest(BaseModel):
    """Admin request to send or broadcast a notification.

    Explicit user_ids win over role; neither targets every user.
    """

    message: str = Field(..., min_length=1)
    type: NotificationType = NotificationType.ADMIN
    role: UserRole | None = None
    user_ids: list[str] | None = Field(
        default=None,
        validation_alias=AliasChoices("user_ids", "userIds"),
    )


class FailedDeliveryResponse(BaseModel):
    """Recipient that was not notified."""

    model_config = ConfigDict(from_attributes=True)

    recipient_id: str
    reason: str


class SendNotificationResponse(BaseModel):
    """Summary of a send or broadcast."""

    message: str
    recipient_count: int
    notifications: list[NotificationResponse]
    failed: list[FailedDeliveryResponse] = Field(default_factory=list)


class UnreadCountResponse(BaseModel):
    """Unread notification count."""

    count: int


class MarkAllReadResponse(BaseModel):
    """Result of marking every notification read."""

    updated: int
