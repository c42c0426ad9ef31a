# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""ASGI entry point.

Run with ``uvicorn livetrain.main:app`` or ``livetrain-api``.
"""

import uvicorn

from livetrain.api.app import create_app
from livetrain.core.config import get_settings

app = create_app()


def run() -> None:
    """Serve the API with the configured host, port and workers."""
    settings = get_settings()
    uvicorn.run(
        "livetrain.main:app",
        host=settings.api.host,
        port=settings.api.port,
        workers=1 if settings.api.reload else settings.api.workers,
        reload=settings.api.reload,
        log_config=None,
    )
