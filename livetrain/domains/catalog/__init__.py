# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Catalog domain: courses, sessions and their listing rules."""

from livetrain.domains.catalog.service import CatalogService
from livetrain.domains.catalog.visibility import (
    is_course_listed,
    is_session_bookable,
    latest_request,
)

__all__ = [
    "CatalogService",
    "is_course_listed",
    "is_session_bookable",
    "latest_request",
]
