# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared utilities for Livetrain."""

from livetrain.utils.datetime import utc_now
from livetrain.utils.logging import bind_context, clear_context, get_logger, setup_logging

__all__ = [
    "utc_now",
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
