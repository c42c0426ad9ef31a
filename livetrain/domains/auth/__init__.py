# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication helpers (bearer JWT)."""

from livetrain.domains.auth.jwt import (
    InvalidTokenError,
    JWTError,
    JWTManager,
    TokenExpiredError,
    TokenPayload,
)

__all__ = [
    "InvalidTokenError",
    "JWTError",
    "JWTManager",
    "TokenExpiredError",
    "TokenPayload",
]
