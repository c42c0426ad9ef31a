# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course and session request and response models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from livetrain.models.common import CourseLevel


class CourseCreateRequest(BaseModel):
    """Request to create a course."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    level: CourseLevel = CourseLevel.BEGINNER
    duration_minutes: int = Field(default=60, ge=1)
    max_students: int = Field(..., description="Seat limit copied to scheduled sessions")


class CourseUpdateRequest(BaseModel):
    """Request to update a course. Unset fields are left unchanged."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    level: CourseLevel | None = None
    duration_minutes: int | None = Field(default=None, ge=1)
    max_students: int | None = None


class SessionCreateRequest(BaseModel):
    """Request to schedule a session of a course."""

    scheduled_at: datetime
    meeting_link: str = ""
    capacity: int | None = Field(
        default=None,
        description="Seat limit; defaults to the course's max_students",
    )


class CourseResponse(BaseModel):
    """Course details."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    trainer_id: str
    title: str
    description: str
    level: CourseLevel
    duration_minutes: int
    max_students: int
    created_at: datetime
    updated_at: datetime


class SessionResponse(BaseModel):
    """Scheduled session."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    course_id: str
    scheduled_at: datetime
    capacity: int
    meeting_link: str
    created_at: datetime


class SessionDetailResponse(BaseModel):
    """Session with its course and live seat counts."""

    session: SessionResponse
    course: CourseResponse
    enrollment_count: int
    remaining_capacity: int
    bookable: bool
