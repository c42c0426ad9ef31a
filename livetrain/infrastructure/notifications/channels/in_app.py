# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-app notification channel.

This channel creates notification rows in the database that are shown
in the recipient's notification center. It is the primary channel and
the only one whose failures are reported to callers.
"""

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from livetrain.infrastructure.database.models import Notification, new_uuid
from livetrain.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    NotificationPayload,
)


class InAppChannel(BaseChannel):
    """In-app notification channel.

    Adds one Notification row per payload and flushes it. Committing is
    left to the caller so the row can join a larger unit of work.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the in-app channel.

        Args:
            session: Async database session the rows are added to.
        """
        super().__init__()
        self._session = session

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.IN_APP

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Create an in-app notification row.

        Args:
            payload: The notification payload.

        Returns:
            ChannelResult whose message_id is the new notification id. On
            failure the original exception is kept in metadata["error"].
        """
        notification = Notification(
            id=new_uuid(),
            recipient_id=payload.recipient_id,
            type=payload.notification_type,
            message=payload.message,
            is_read=False,
        )

        try:
            self._session.add(notification)
            await self._session.flush()
        except SQLAlchemyError as e:
            self.logger.error(
                "Failed to create in-app notification for user %s: %s",
                payload.recipient_id,
                str(e),
            )
            return self.create_failure_result(
                f"Database error: {str(e)}",
                metadata={"error": e},
            )

        self.logger.debug(
            "Created in-app notification %s for user %s",
            notification.id,
            payload.recipient_id,
        )
        return self.create_success_result(
            message_id=notification.id,
            metadata={"notification": notification},
        )
