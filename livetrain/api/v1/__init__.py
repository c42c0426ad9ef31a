# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

Modules:
    approvals: Moderation queue (admin).
    courses: Course authoring, scheduling and listings.
    sessions: Session details and trainer-side enrollment.
    enrollments: Learner enrollment and withdrawal.
    notifications: Recipient mailbox and admin broadcast.
"""

from fastapi import APIRouter

from livetrain.api.v1 import approvals, courses, enrollments, notifications, sessions

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

router.include_router(approvals.router, prefix="/admin/approvals", tags=["Approvals"])
router.include_router(courses.router, prefix="/courses", tags=["Courses"])
router.include_router(sessions.router, prefix="/sessions", tags=["Sessions"])
router.include_router(enrollments.router, prefix="/enrollments", tags=["Enrollments"])
router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
router.include_router(
    notifications.admin_router,
    prefix="/admin/notifications",
    tags=["Admin Notifications"],
)
