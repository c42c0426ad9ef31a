# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for Livetrain.

All timestamps are stored in UTC and all Python datetimes created by the
application are timezone-aware.

Usage:
    from livetrain.utils.datetime import utc_now

    created_at = mapped_column(DateTime(timezone=True), default=utc_now)
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def format_session_date(value: datetime) -> str:
    """Format a session date for notification messages.

    Args:
        value: Session start time.

    Returns:
        Date formatted as YYYY-MM-DD.
    """
    return value.strftime("%Y-%m-%d")
