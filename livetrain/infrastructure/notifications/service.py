# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification dispatcher.

A per-recipient mailbox written by the approval and enrollment services
and by admin broadcasts, and drained by each recipient:

1. send() creates exactly one in-app row for a known recipient
2. broadcast() resolves an audience once and sends per recipient,
   reporting successes and failures separately
3. mark_read() / delete() enforce recipient ownership and are idempotent

Email is an optional, best-effort side channel used for enrollment
confirmations; it never affects the in-app rows.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from livetrain.core.config.settings import Settings, get_settings
from livetrain.core.errors import ForbiddenError, NotFoundError, ValidationError
from livetrain.infrastructure.database.connection import DatabaseError
from livetrain.infrastructure.database.models import Notification, User
from livetrain.infrastructure.notifications.audience import Audience, resolve_audience
from livetrain.infrastructure.notifications.channels import (
    ChannelResult,
    EmailChannel,
    InAppChannel,
    NotificationPayload,
)
from livetrain.models.common import NotificationType
from livetrain.utils.datetime import utc_now

logger = logging.getLogger(__name__)

FILTER_ALL = "all"
FILTER_UNREAD = "unread"


@dataclass
class FailedDelivery:
    """A broadcast recipient that did not receive a notification.

    Attributes:
        recipient_id: Intended recipient.
        reason: Why the send failed.
    """

    recipient_id: str
    reason: str


@dataclass
class BroadcastResult:
    """Outcome of a broadcast.

    Attributes:
        notifications: Rows created, one per successful recipient.
        failed: Recipients that were not notified, so callers can retry them.
        recipient_count: Size of the resolved audience.
    """

    notifications: list[Notification] = field(default_factory=list)
    failed: list[FailedDelivery] = field(default_factory=list)
    recipient_count: int = 0

    @property
    def sent_count(self) -> int:
        """Number of notifications created."""
        return len(self.notifications)


def parse_filter(value: str | None) -> str:
    """Validate a listing filter.

    Args:
        value: "all", "unread" or a notification type. None means "all".

    Returns:
        The normalized filter value.

    Raises:
        ValidationError: If the filter is not recognized.
    """
    if value is None:
        return FILTER_ALL
    if value in (FILTER_ALL, FILTER_UNREAD):
        return value
    try:
        return NotificationType(value).value
    except ValueError:
        raise ValidationError(
            f"Unknown notification filter: {value}",
            details={"allowed": [FILTER_ALL, FILTER_UNREAD] + [t.value for t in NotificationType]},
        ) from None


def _validate_content(notification_type: NotificationType | str, message: str) -> str:
    try:
        type_value = NotificationType(notification_type).value
    except ValueError:
        raise ValidationError(f"Unknown notification type: {notification_type}") from None
    if not message or not message.strip():
        raise ValidationError("Notification message must not be empty")
    return type_value


class NotificationDispatcher:
    """Service for creating and managing notifications.

    Attributes:
        db: Database session for this unit of work.
    """

    def __init__(self, db: AsyncSession, settings: Settings | None = None) -> None:
        """Initialize the dispatcher.

        Args:
            db: Database session.
            settings: Application settings. Defaults to the cached settings.
        """
        self.db = db
        self._settings = settings or get_settings()
        self._in_app = InAppChannel(db)
        self._email = EmailChannel(self._settings.smtp)

    @property
    def page_size(self) -> int:
        """Maximum number of notifications returned by a listing."""
        return self._settings.marketplace.notification_page_size

    async def send(
        self,
        recipient_id: str,
        notification_type: NotificationType | str,
        message: str,
        *,
        commit: bool = True,
    ) -> Notification:
        """Create exactly one notification for a recipient.

        Args:
            recipient_id: Recipient user ID.
            notification_type: Notification category.
            message: Message text.
            commit: Commit immediately. Pass False to join the caller's
                transaction (the caller commits or rolls back).

        Returns:
            The created notification.

        Raises:
            ValidationError: If the type is unknown or the message is empty.
            NotFoundError: If the recipient does not exist.
            DatabaseError: If the row could not be stored.
        """
        type_value = _validate_content(notification_type, message)

        recipient = await self.db.get(User, recipient_id)
        if recipient is None:
            raise NotFoundError(
                f"Recipient {recipient_id} not found",
                details={"recipient_id": recipient_id},
            )

        result = await self._in_app.send(
            NotificationPayload(
                notification_type=type_value,
                message=message,
                recipient_id=recipient_id,
            )
        )
        if not result.succeeded:
            if commit:
                await self.db.rollback()
            raise DatabaseError(
                f"Failed to create notification for {recipient_id}",
                result.metadata.get("error"),
            )

        notification: Notification = result.metadata["notification"]

        if commit:
            try:
                await self.db.commit()
            except SQLAlchemyError as e:
                await self.db.rollback()
                raise DatabaseError(f"Failed to create notification for {recipient_id}", e) from e
            await self.db.refresh(notification)

        logger.info(
            "Notification %s (%s) created for user %s",
            notification.id,
            type_value,
            recipient_id,
        )
        return notification

    async def broadcast(
        self,
        audience: Audience,
        notification_type: NotificationType | str,
        message: str,
    ) -> BroadcastResult:
        """Send one notification to every member of an audience.

        The audience is resolved once, up front. Each recipient is
        committed independently, so a failure for one recipient does not
        undo earlier deliveries.

        Args:
            audience: Audience variant.
            notification_type: Notification category.
            message: Message text.

        Returns:
            BroadcastResult with created rows and per-recipient failures.

        Raises:
            ValidationError: If the type is unknown or the message is empty.
        """
        type_value = _validate_content(notification_type, message)

        recipient_ids = await resolve_audience(self.db, audience)
        result = BroadcastResult(recipient_count=len(recipient_ids))

        for recipient_id in recipient_ids:
            try:
                notification = await self.send(recipient_id, type_value, message)
            except (NotFoundError, DatabaseError) as e:
                logger.warning("Broadcast to %s failed: %s", recipient_id, e.message)
                result.failed.append(FailedDelivery(recipient_id=recipient_id, reason=e.message))
                continue
            # Detach so a later rollback cannot expire rows already delivered
            self.db.expunge(notification)
            result.notifications.append(notification)

        logger.info(
            "Broadcast %s: %d sent, %d failed, audience=%s",
            type_value,
            result.sent_count,
            len(result.failed),
            type(audience).__name__,
        )
        return result

    async def get(self, notification_id: str) -> Notification | None:
        """Get a notification by ID."""
        return await self.db.get(Notification, notification_id)

    async def mark_read(self, notification_id: str, actor_id: str) -> Notification:
        """Mark a notification as read.

        Idempotent: an already-read notification is returned unchanged.

        Args:
            notification_id: Notification ID.
            actor_id: User performing the action.

        Returns:
            The read notification.

        Raises:
            NotFoundError: If the notification does not exist.
            ForbiddenError: If the actor is not the recipient.
        """
        notification = await self.get(notification_id)
        if notification is None:
            raise NotFoundError(f"Notification {notification_id} not found")
        if notification.recipient_id != actor_id:
            raise ForbiddenError("Only the recipient can mark a notification as read")
        if notification.is_read:
            return notification

        await self.db.execute(
            update(Notification)
            .where(Notification.id == notification_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=utc_now())
        )
        await self.db.commit()
        await self.db.refresh(notification)

        logger.info("Notification %s marked read by %s", notification_id, actor_id)
        return notification

    async def mark_all_read(self, recipient_id: str) -> int:
        """Mark every unread notification of a recipient as read.

        Returns:
            Number of notifications that changed state.
        """
        result = await self.db.execute(
            update(Notification)
            .where(Notification.recipient_id == recipient_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        count = result.rowcount or 0
        logger.info("Marked %d notifications read for %s", count, recipient_id)
        return count

    async def delete(self, notification_id: str, actor_id: str) -> None:
        """Delete a notification.

        Deleting a missing notification succeeds without effect.

        Raises:
            ForbiddenError: If the notification belongs to someone else.
        """
        notification = await self.get(notification_id)
        if notification is None:
            return
        if notification.recipient_id != actor_id:
            raise ForbiddenError("Only the recipient can delete a notification")

        await self.db.execute(
            delete(Notification)
            .where(Notification.id == notification_id, Notification.recipient_id == actor_id)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        self.db.expunge(notification)

        logger.info("Notification %s deleted by %s", notification_id, actor_id)

    async def list_for_recipient(
        self,
        recipient_id: str,
        notification_filter: str | None = None,
        limit: int | None = None,
    ) -> list[Notification]:
        """List a recipient's notifications, newest first.

        Args:
            recipient_id: Recipient user ID.
            notification_filter: "all", "unread" or a notification type.
            limit: Maximum rows; capped at the configured page size.
        """
        stmt = select(Notification).where(Notification.recipient_id == recipient_id)
        stmt = self._apply_filter(stmt, parse_filter(notification_filter))
        stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc())
        stmt = stmt.limit(self._limit(limit))

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_all(
        self,
        notification_filter: str | None = None,
        limit: int | None = None,
    ) -> list[Notification]:
        """List notifications across all recipients, newest first (admin view)."""
        stmt = self._apply_filter(select(Notification), parse_filter(notification_filter))
        stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc())
        stmt = stmt.limit(self._limit(limit))

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def unread_count(self, recipient_id: str) -> int:
        """Count a recipient's unread notifications."""
        result = await self.db.execute(
            select(func.count(Notification.id)).where(
                Notification.recipient_id == recipient_id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar_one()

    async def send_email(self, payload: NotificationPayload) -> ChannelResult:
        """Send a best-effort email.

        Never raises for delivery problems; inspect the returned result.
        """
        result = await self._email.send(payload)
        if not result.succeeded:
            logger.warning(
                "Email to %s not delivered (%s): %s",
                payload.recipient_id,
                result.status.value,
                result.error_message,
            )
        return result

    def _apply_filter(self, stmt, notification_filter: str):
        if notification_filter == FILTER_UNREAD:
            return stmt.where(Notification.is_read.is_(False))
        if notification_filter != FILTER_ALL:
            return stmt.where(Notification.type == notification_filter)
        return stmt

    def _limit(self, limit: int | None) -> int:
        if limit is None or limit <= 0:
            return self.page_size
        return min(limit, self.page_size)
