# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification delivery channels."""

from livetrain.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryStatus,
    NotificationPayload,
)
from livetrain.infrastructure.notifications.channels.email import EmailChannel
from livetrain.infrastructure.notifications.channels.in_app import InAppChannel

__all__ = [
    "BaseChannel",
    "ChannelResult",
    "ChannelType",
    "DeliveryStatus",
    "EmailChannel",
    "InAppChannel",
    "NotificationPayload",
]
