# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment request and response models."""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class EnrollRequest(BaseModel):
    """Request to enroll in a session.

    user_id may be omitted, in which case the caller enrolls themselves.
    """

    session_id: str = Field(..., validation_alias=AliasChoices("session_id", "sessionId"))
    user_id: str | None = Field(default=None, validation_alias=AliasChoices("user_id", "userId"))


class AddLearnerRequest(BaseModel):
    """Trainer/admin request to add a learner to a session."""

    learner_id: str = Field(..., validation_alias=AliasChoices("learner_id", "learnerId"))


class EnrollmentResponse(BaseModel):
    """Enrollment details."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    session_id: str
    learner_id: str
    enrolled_at: datetime


class LearnerSummary(BaseModel):
    """Learner fields shown in enrollment listings."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    display_name: str


class EnrollmentWithLearnerResponse(EnrollmentResponse):
    """Enrollment joined with its learner."""

    learner: LearnerSummary | None = None


class OverbookedSession(BaseModel):
    """A session whose enrollment count exceeds its capacity."""

    session_id: str
    capacity: int
    enrollment_count: int
