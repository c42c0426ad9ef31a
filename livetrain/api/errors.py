# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Translation of domain errors into HTTP responses."""

import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from livetrain.core.errors import ErrorKind, LivetrainError

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.VALIDATION: 422,
    ErrorKind.ALREADY_RESOLVED: status.HTTP_409_CONFLICT,
    ErrorKind.UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(error: LivetrainError) -> int:
    """Get the HTTP status code for a domain error."""
    return STATUS_BY_KIND.get(error.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)


def to_http_exception(error: LivetrainError) -> HTTPException:
    """Build an HTTPException carrying the error message."""
    return HTTPException(status_code=status_for(error), detail=error.message)


async def livetrain_error_handler(request: Request, exc: LivetrainError) -> JSONResponse:
    """Handle domain errors that a router did not translate itself."""
    code = status_for(exc)
    if code >= 500:
        logger.error("Request %s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=code,
        content={"detail": exc.message, "kind": exc.kind.value},
    )
