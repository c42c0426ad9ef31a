# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment ledger domain."""

from livetrain.core.errors import (
    AlreadyEnrolledError,
    SessionFullError,
    SessionNotBookableError,
)
from livetrain.domains.enrollment.service import EnrollmentService

__all__ = [
    "AlreadyEnrolledError",
    "EnrollmentService",
    "SessionFullError",
    "SessionNotBookableError",
]
