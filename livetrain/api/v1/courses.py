# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course API endpoints.

- POST / - Create a course (submitted for review automatically)
- GET / - List publicly listed courses
- GET /{course_id} - Get course details
- PATCH /{course_id} - Update a course
- POST /{course_id}/submit - Resubmit a course for review
- POST /{course_id}/sessions - Schedule a session
- GET /{course_id}/sessions - List a course's sessions
- GET /{course_id}/enrollments - List enrollments across the course's sessions
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from livetrain.api.dependencies import get_db, require_auth, require_trainer_or_admin
from livetrain.api.errors import to_http_exception
from livetrain.api.middleware.auth import CurrentUser
from livetrain.core.errors import (
    DuplicatePendingRequestError,
    ForbiddenError,
    NotFoundError,
    SessionNotBookableError,
    ValidationError,
)
from livetrain.domains.catalog.service import CatalogService
from livetrain.domains.enrollment.service import EnrollmentService
from livetrain.models.approval import ApprovalRequestResponse
from livetrain.models.catalog import (
    CourseCreateRequest,
    CourseResponse,
    CourseUpdateRequest,
    SessionCreateRequest,
    SessionResponse,
)
from livetrain.models.enrollment import EnrollmentWithLearnerResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> CatalogService:
    """Get catalog service instance."""
    return CatalogService(db=db)


def _get_enrollment_service(db: AsyncSession) -> EnrollmentService:
    """Get enrollment service instance."""
    return EnrollmentService(db=db)


@router.post(
    "",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create course",
)
async def create_course(
    data: CourseCreateRequest,
    current_user: CurrentUser = Depends(require_trainer_or_admin),
    db: AsyncSession = Depends(get_db),
) -> CourseResponse:
    """Create a course owned by the caller and submit it for review."""
    try:
        course = await _get_service(db).create_course(current_user.id, data)
    except (ValidationError, ForbiddenError, NotFoundError) as e:
        raise to_http_exception(e)
    return CourseResponse.model_validate(course)


@router.get(
    "",
    response_model=list[CourseResponse],
    summary="List public courses",
)
async def list_courses(
    db: AsyncSession = Depends(get_db),
) -> list[CourseResponse]:
    """List approved courses, newest first."""
    courses = await _get_service(db).list_public_courses()
    return [CourseResponse.model_validate(c) for c in courses]


@router.get(
    "/{course_id}",
    response_model=CourseResponse,
    summary="Get course",
)
async def get_course(
    course_id: str,
    db: AsyncSession = Depends(get_db),
) -> CourseResponse:
    """Get course details."""
    try:
        course = await _get_service(db).get_course(course_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
    return CourseResponse.model_validate(course)


@router.patch(
    "/{course_id}",
    response_model=CourseResponse,
    summary="Update course",
)
async def update_course(
    course_id: str,
    data: CourseUpdateRequest,
    current_user: CurrentUser = Depends(require_trainer_or_admin),
    db: AsyncSession = Depends(get_db),
) -> CourseResponse:
    """Update a course. Only the owner or an admin may edit it."""
    try:
        course = await _get_service(db).update_course(course_id, current_user.id, data)
    except (NotFoundError, ForbiddenError, ValidationError) as e:
        raise to_http_exception(e)
    return CourseResponse.model_validate(course)


@router.post(
    "/{course_id}/submit",
    response_model=ApprovalRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit course for review",
)
async def submit_course(
    course_id: str,
    current_user: CurrentUser = Depends(require_trainer_or_admin),
    db: AsyncSession = Depends(get_db),
) -> ApprovalRequestResponse:
    """Create a new pending approval request for the course."""
    try:
        request = await _get_service(db).submit_course(course_id, current_user.id)
    except (NotFoundError, ForbiddenError) as e:
        raise to_http_exception(e)
    except DuplicatePendingRequestError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A review is already pending for this course",
        )
    return ApprovalRequestResponse.model_validate(request)


@router.post(
    "/{course_id}/sessions",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Schedule session",
)
async def schedule_session(
    course_id: str,
    data: SessionCreateRequest,
    current_user: CurrentUser = Depends(require_trainer_or_admin),
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    """Schedule a session of an approved course."""
    try:
        session = await _get_service(db).schedule_session(
            course_id,
            current_user.id,
            scheduled_at=data.scheduled_at,
            meeting_link=data.meeting_link,
            capacity=data.capacity,
        )
    except (NotFoundError, ForbiddenError, ValidationError) as e:
        raise to_http_exception(e)
    except SessionNotBookableError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Course is not approved",
        )
    return SessionResponse.model_validate(session)


@router.get(
    "/{course_id}/sessions",
    response_model=list[SessionResponse],
    summary="List course sessions",
)
async def list_sessions(
    course_id: str,
    db: AsyncSession = Depends(get_db),
) -> list[SessionResponse]:
    """List a course's sessions in schedule order."""
    service = _get_service(db)
    try:
        await service.get_course(course_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")

    sessions = await service.list_sessions(course_id)
    return [SessionResponse.model_validate(s) for s in sessions]


@router.get(
    "/{course_id}/enrollments",
    response_model=list[EnrollmentWithLearnerResponse],
    summary="List course enrollments",
)
async def list_course_enrollments(
    course_id: str,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> list[EnrollmentWithLearnerResponse]:
    """List enrollments of every session of a course, with learners.

    Restricted to the course owner and admins.
    """
    try:
        course = await _get_service(db).get_course(course_id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")

    if course.trainer_id != current_user.id and not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the course trainer or an admin can view enrollments",
        )

    enrollments = await _get_enrollment_service(db).list_for_course(course_id)
    return [EnrollmentWithLearnerResponse.model_validate(e) for e in enrollments]
