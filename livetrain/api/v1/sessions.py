# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Session API endpoints.

- GET /{session_id} - Session details with seat counts
- GET /{session_id}/enrollments - Enrolled learners (trainer or admin)
- POST /{session_id}/learners - Add a learner (trainer or admin)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from livetrain.api.dependencies import get_db, require_auth, require_trainer_or_admin
from livetrain.api.errors import to_http_exception
from livetrain.api.middleware.auth import CurrentUser
from livetrain.core.errors import (
    AlreadyEnrolledError,
    ForbiddenError,
    NotFoundError,
    SessionFullError,
    SessionNotBookableError,
)
from livetrain.domains.catalog.service import CatalogService
from livetrain.domains.enrollment.service import EnrollmentService
from livetrain.models.catalog import SessionDetailResponse
from livetrain.models.enrollment import (
    AddLearnerRequest,
    EnrollmentResponse,
    EnrollmentWithLearnerResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> CatalogService:
    """Get catalog service instance."""
    return CatalogService(db=db)


def _get_enrollment_service(db: AsyncSession) -> EnrollmentService:
    """Get enrollment service instance."""
    return EnrollmentService(db=db)


@router.get(
    "/{session_id}",
    response_model=SessionDetailResponse,
    summary="Get session",
)
async def get_session_detail(
    session_id: str,
    db: AsyncSession = Depends(get_db),
) -> SessionDetailResponse:
    """Get a session with its course, enrollment count and remaining seats."""
    try:
        return await _get_service(db).get_session_detail(session_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")


@router.get(
    "/{session_id}/enrollments",
    response_model=list[EnrollmentWithLearnerResponse],
    summary="List session enrollments",
)
async def list_session_enrollments(
    session_id: str,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> list[EnrollmentWithLearnerResponse]:
    """List a session's enrollments with learners (trainer or admin)."""
    catalog = _get_service(db)
    try:
        session = await catalog.get_session(session_id)
        course = await catalog.get_course(session.course_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")

    if course.trainer_id != current_user.id and not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the session trainer or an admin can view enrollments",
        )

    enrollments = await _get_enrollment_service(db).list_for_session(session_id)
    return [EnrollmentWithLearnerResponse.model_validate(e) for e in enrollments]


@router.post(
    "/{session_id}/learners",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add learner",
)
async def add_learner(
    session_id: str,
    data: AddLearnerRequest,
    current_user: CurrentUser = Depends(require_trainer_or_admin),
    db: AsyncSession = Depends(get_db),
) -> EnrollmentResponse:
    """Add a learner to a session on their behalf."""
    try:
        enrollment = await _get_enrollment_service(db).add_learner(
            session_id, data.learner_id, current_user.id
        )
    except (NotFoundError, ForbiddenError) as e:
        raise to_http_exception(e)
    except SessionFullError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Session is full")
    except AlreadyEnrolledError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Learner is already enrolled in this session",
        )
    except SessionNotBookableError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Session is not open for enrollment",
        )
    return EnrollmentResponse.model_validate(enrollment)
