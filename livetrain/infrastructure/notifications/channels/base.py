# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Delivery channel contract.

A channel takes one NotificationPayload and reports a ChannelResult.
The in-app channel is the system of record; every other channel is
best-effort and reports SKIPPED when it cannot run.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ChannelType(str, Enum):
    """Delivery media."""

    IN_APP = "in_app"
    EMAIL = "email"


class DeliveryStatus(str, Enum):
    """Outcome of one delivery attempt."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class NotificationPayload:
    """What to deliver and to whom.

    Attributes:
        notification_type: system, admin, enrollment or comment.
        message: Body shown to the recipient.
        recipient_id: Receiving user.
        title: Subject line for channels that have one.
        recipient_email: Address for the email channel.
        data: Template values such as the session meeting link.
    """

    notification_type: str
    message: str
    recipient_id: str
    title: str = ""
    recipient_email: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class ChannelResult:
    """Outcome reported by a channel.

    `metadata` carries channel-specific values: the stored Notification
    row for in-app delivery, the raised exception under "error" on failure.
    """

    channel: ChannelType
    status: DeliveryStatus
    message_id: str | None = None
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == DeliveryStatus.SENT


class BaseChannel(ABC):
    """A delivery medium for notifications."""

    def __init__(self) -> None:
        self.logger = logging.getLogger(f"{__name__}.{type(self).__name__}")

    @property
    @abstractmethod
    def channel_type(self) -> ChannelType:
        """Medium this channel delivers through."""

    @abstractmethod
    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Deliver one payload.

        Implementations report delivery problems in the result rather
        than raising.
        """

    def _result(self, status: DeliveryStatus, **kwargs: Any) -> ChannelResult:
        return ChannelResult(channel=self.channel_type, status=status, **kwargs)

    def create_success_result(
        self,
        message_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ChannelResult:
        return self._result(DeliveryStatus.SENT, message_id=message_id, metadata=metadata or {})

    def create_failure_result(
        self,
        error_message: str,
        metadata: dict[str, Any] | None = None,
    ) -> ChannelResult:
        return self._result(
            DeliveryStatus.FAILED, error_message=error_message, metadata=metadata or {}
        )

    def create_skipped_result(self, reason: str) -> ChannelResult:
        return self._result(DeliveryStatus.SKIPPED, error_message=reason)
