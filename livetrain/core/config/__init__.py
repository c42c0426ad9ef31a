# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for Livetrain.

Example:
    >>> from livetrain.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.marketplace.legacy_courses_bookable
    False
"""

from livetrain.core.config.settings import (
    APISettings,
    CORSSettings,
    DatabaseSettings,
    JWTSettings,
    MarketplaceSettings,
    Settings,
    SMTPSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "APISettings",
    "CORSSettings",
    "DatabaseSettings",
    "JWTSettings",
    "MarketplaceSettings",
    "SMTPSettings",
]
