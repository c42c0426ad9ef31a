# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Moderation queue API endpoints.

- GET /pending - Pending requests, oldest first
- GET /history - Requests of any status, newest first
- GET /{request_id} - Request details
- POST /{request_id}/approve - Approve a pending request
- POST /{request_id}/reject - Reject a pending request with a reason

All endpoints require admin access.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from livetrain.api.dependencies import get_db, require_admin
from livetrain.api.errors import to_http_exception
from livetrain.api.middleware.auth import CurrentUser
from livetrain.core.errors import (
    AlreadyResolvedError,
    ForbiddenError,
    MissingReasonError,
    NotFoundError,
)
from livetrain.domains.approval.service import ApprovalService
from livetrain.models.approval import (
    ApprovalRequestResponse,
    ApproveRequest,
    PendingApprovalResponse,
    RejectRequest,
)
from livetrain.models.common import ApprovalStatus, SubjectType

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> ApprovalService:
    """Get approval service instance."""
    return ApprovalService(db=db)


@router.get(
    "/pending",
    response_model=list[PendingApprovalResponse],
    summary="List pending approvals",
)
async def list_pending(
    subject_type: Annotated[SubjectType | None, Query(description="Filter by subject type")] = None,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> list[PendingApprovalResponse]:
    """List the moderation queue, oldest first, with subject titles."""
    service = _get_service(db)
    requests = await service.list_pending(subject_type)
    titles = await service.subject_titles(requests)

    return [
        PendingApprovalResponse.model_validate(r).model_copy(
            update={"subject_title": titles.get(r.subject_id)}
        )
        for r in requests
    ]


@router.get(
    "/history",
    response_model=list[ApprovalRequestResponse],
    summary="Approval history",
)
async def list_history(
    subject_type: Annotated[SubjectType | None, Query()] = None,
    status_filter: Annotated[ApprovalStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> list[ApprovalRequestResponse]:
    """List approval requests of any status, newest first."""
    service = _get_service(db)
    requests = await service.history(subject_type, status_filter, limit)
    return [ApprovalRequestResponse.model_validate(r) for r in requests]


@router.get(
    "/{request_id}",
    response_model=ApprovalRequestResponse,
    summary="Get approval request",
)
async def get_request(
    request_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ApprovalRequestResponse:
    """Get an approval request by ID."""
    try:
        request = await _get_service(db).get(request_id)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Approval request not found",
        )
    return ApprovalRequestResponse.model_validate(request)


@router.post(
    "/{request_id}/approve",
    response_model=ApprovalRequestResponse,
    summary="Approve request",
)
async def approve_request(
    request_id: str,
    data: ApproveRequest | None = None,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ApprovalRequestResponse:
    """Approve a pending request. The reviewer defaults to the caller.

    Raises:
        HTTPException: 404 if unknown, 409 if already resolved.
    """
    reviewer_id = (data.reviewer_id if data else None) or current_user.id

    try:
        request = await _get_service(db).approve(request_id, reviewer_id)
    except (NotFoundError, ForbiddenError) as e:
        raise to_http_exception(e)
    except AlreadyResolvedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)

    return ApprovalRequestResponse.model_validate(request)


@router.post(
    "/{request_id}/reject",
    response_model=ApprovalRequestResponse,
    summary="Reject request",
)
async def reject_request(
    request_id: str,
    data: RejectRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ApprovalRequestResponse:
    """Reject a pending request. Notes are required.

    Raises:
        HTTPException: 422 without notes, 404 if unknown, 409 if already resolved.
    """
    reviewer_id = data.reviewer_id or current_user.id

    try:
        request = await _get_service(db).reject(request_id, reviewer_id, data.notes)
    except MissingReasonError as e:
        raise HTTPException(status_code=422, detail=e.message)
    except (NotFoundError, ForbiddenError) as e:
        raise to_http_exception(e)
    except AlreadyResolvedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)

    return ApprovalRequestResponse.model_validate(request)
