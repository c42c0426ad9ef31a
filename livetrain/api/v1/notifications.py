# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification API endpoints.

Recipient endpoints (mounted at /notifications):
- GET / - List own notifications (filter: all, unread or a type)
- GET /unread-count - Count unread notifications
- POST /read-all - Mark all as read
- PATCH /{notification_id}/read - Mark one as read
- DELETE /{notification_id} - Delete one (idempotent)

Admin endpoints (mounted at /admin/notifications):
- POST /send - Send to explicit users, a role, or everyone
- GET / - List all notifications
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from livetrain.api.dependencies import get_db, require_admin, require_auth
from livetrain.api.errors import to_http_exception
from livetrain.api.middleware.auth import CurrentUser
from livetrain.core.errors import ForbiddenError, NotFoundError, ValidationError
from livetrain.infrastructure.notifications import NotificationDispatcher, build_audience
from livetrain.models.notification import (
    FailedDeliveryResponse,
    MarkAllReadResponse,
    NotificationResponse,
    SendNotificationRequest,
    SendNotificationResponse,
    UnreadCountResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter()


def _get_dispatcher(db: AsyncSession) -> NotificationDispatcher:
    """Get notification dispatcher instance."""
    return NotificationDispatcher(db=db)


@router.get(
    "",
    response_model=list[NotificationResponse],
    summary="List my notifications",
)
async def list_notifications(
    notification_filter: Annotated[
        str | None, Query(alias="filter", description="all, unread or a notification type")
    ] = None,
    limit: Annotated[int | None, Query(ge=1)] = None,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> list[NotificationResponse]:
    """List the caller's notifications, newest first."""
    try:
        notifications = await _get_dispatcher(db).list_for_recipient(
            current_user.id, notification_filter, limit
        )
    except ValidationError as e:
        raise to_http_exception(e)
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.get(
    "/unread-count",
    response_model=UnreadCountResponse,
    summary="Unread count",
)
async def unread_count(
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> UnreadCountResponse:
    """Count the caller's unread notifications."""
    count = await _get_dispatcher(db).unread_count(current_user.id)
    return UnreadCountResponse(count=count)


@router.post(
    "/read-all",
    response_model=MarkAllReadResponse,
    summary="Mark all read",
)
async def mark_all_read(
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> MarkAllReadResponse:
    """Mark every unread notification of the caller as read."""
    updated = await _get_dispatcher(db).mark_all_read(current_user.id)
    return MarkAllReadResponse(updated=updated)


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark read",
)
async def mark_read(
    notification_id: str,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> NotificationResponse:
    """Mark a notification as read. Repeating the call is harmless."""
    try:
        notification = await _get_dispatcher(db).mark_read(notification_id, current_user.id)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found",
        )
    except ForbiddenError as e:
        raise to_http_exception(e)
    return NotificationResponse.model_validate(notification)


@router.delete(
    "/{notification_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete notification",
)
async def delete_notification(
    notification_id: str,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Delete a notification. Unknown ids succeed without effect."""
    try:
        await _get_dispatcher(db).delete(notification_id, current_user.id)
    except ForbiddenError as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@admin_router.post(
    "/send",
    response_model=SendNotificationResponse,
    summary="Send notifications",
)
async def send_notifications(
    data: SendNotificationRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> SendNotificationResponse:
    """Send a notification to explicit users, every user with a role, or everyone."""
    audience = build_audience(role=data.role, user_ids=data.user_ids)

    try:
        result = await _get_dispatcher(db).broadcast(audience, data.type, data.message)
    except ValidationError as e:
        raise to_http_exception(e)

    logger.info(
        "Admin %s sent %d notifications (%d failed)",
        current_user.id,
        result.sent_count,
        len(result.failed),
    )

    return SendNotificationResponse(
        message=f"{result.sent_count} notification(s) sent",
        recipient_count=result.recipient_count,
        notifications=[NotificationResponse.model_validate(n) for n in result.notifications],
        failed=[FailedDeliveryResponse.model_validate(f) for f in result.failed],
    )


@admin_router.get(
    "",
    response_model=list[NotificationResponse],
    summary="List all notifications",
)
async def list_all_notifications(
    notification_filter: Annotated[str | None, Query(alias="filter")] = None,
    limit: Annotated[int | None, Query(ge=1)] = None,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> list[NotificationResponse]:
    """List notifications across all recipients, newest first."""
    try:
        notifications = await _get_dispatcher(db).list_all(notification_filter, limit)
    except ValidationError as e:
        raise to_http_exception(e)
    return [NotificationResponse.model_validate(n) for n in notifications]
