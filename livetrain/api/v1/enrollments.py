# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment API endpoints.

- POST / - Enroll in a session
- GET /me - The caller's enrollments
- GET /overbooked - Sessions holding more enrollments than seats (admin)
- DELETE /{enrollment_id} - Withdraw an enrollment

Capacity and duplicate conflicts carry distinct messages because the
remedy differs (pick another session vs. nothing to do).
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from livetrain.api.dependencies import get_db, require_admin, require_auth
from livetrain.api.errors import to_http_exception
from livetrain.api.middleware.auth import CurrentUser
from livetrain.core.errors import (
    AlreadyEnrolledError,
    ForbiddenError,
    NotFoundError,
    SessionFullError,
    SessionNotBookableError,
)
from livetrain.domains.enrollment.service import EnrollmentService
from livetrain.models.enrollment import EnrollmentResponse, EnrollRequest, OverbookedSession

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> EnrollmentService:
    """Get enrollment service instance."""
    return EnrollmentService(db=db)


@router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in session",
)
async def enroll(
    data: EnrollRequest,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> EnrollmentResponse:
    """Enroll the caller (or, for admins, any user) in a session.

    Raises:
        HTTPException: 404 unknown session, 409 full / already enrolled /
            not bookable, 403 when enrolling someone else.
    """
    learner_id = data.user_id or current_user.id
    service = _get_service(db)

    try:
        if learner_id == current_user.id:
            enrollment = await service.enroll(data.session_id, learner_id)
        elif current_user.is_admin:
            enrollment = await service.add_learner(data.session_id, learner_id, current_user.id)
        else:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only enroll yourself",
            )
    except NotFoundError as e:
        raise to_http_exception(e)
    except SessionFullError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Session is full")
    except AlreadyEnrolledError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Already enrolled in this session",
        )
    except SessionNotBookableError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Session is not open for enrollment",
        )

    return EnrollmentResponse.model_validate(enrollment)


@router.get(
    "/me",
    response_model=list[EnrollmentResponse],
    summary="My enrollments",
)
async def my_enrollments(
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> list[EnrollmentResponse]:
    """List the caller's enrollments, most recent first."""
    enrollments = await _get_service(db).list_for_learner(current_user.id)
    return [EnrollmentResponse.model_validate(e) for e in enrollments]


@router.get(
    "/overbooked",
    response_model=list[OverbookedSession],
    summary="Overbooked sessions",
)
async def overbooked_sessions(
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> list[OverbookedSession]:
    """Report capacity violations caused by out-of-band data changes."""
    return await _get_service(db).find_overbooked_sessions()


@router.delete(
    "/{enrollment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Withdraw enrollment",
)
async def withdraw(
    enrollment_id: str,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Withdraw an enrollment (learner, session trainer or admin)."""
    try:
        await _get_service(db).withdraw(enrollment_id, current_user.id)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Enrollment not found")
    except ForbiddenError as e:
        raise to_http_exception(e)

    return Response(status_code=status.HTTP_204_NO_CONTENT)
