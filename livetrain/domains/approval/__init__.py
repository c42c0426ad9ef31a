# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Approval ledger domain."""

from livetrain.core.errors import (
    AlreadyResolvedError,
    DuplicatePendingRequestError,
    MissingReasonError,
)
from livetrain.domains.approval.service import ApprovalService

__all__ = [
    "AlreadyResolvedError",
    "ApprovalService",
    "DuplicatePendingRequestError",
    "MissingReasonError",
]
