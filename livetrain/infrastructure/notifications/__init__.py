# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification infrastructure.

Example:
    from livetrain.infrastructure.notifications import NotificationDispatcher

    dispatcher = NotificationDispatcher(db)
    await dispatcher.send(user_id, "system", "Your course was approved")
"""

from livetrain.infrastructure.notifications.audience import (
    AllUsers,
    Audience,
    ExplicitAudience,
    RoleAudience,
    build_audience,
    resolve_audience,
)
from livetrain.infrastructure.notifications.service import (
    BroadcastResult,
    FailedDelivery,
    NotificationDispatcher,
    parse_filter,
)

__all__ = [
    "AllUsers",
    "Audience",
    "BroadcastResult",
    "ExplicitAudience",
    "FailedDelivery",
    "NotificationDispatcher",
    "RoleAudience",
    "build_audience",
    "parse_filter",
    "resolve_audience",
]
