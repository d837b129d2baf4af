"""Application lifecycle management for startup and shutdown tasks.

This module handles the FastAPI lifespan context manager. Objects the requests need
(import flow, credentials client) are created in create_app() so they exist even when
the lifespan doesn't run (TestClient without a `with` block).
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from playlistnotes.config import Settings, get_settings
from playlistnotes.infrastructure.integrations.http_pool import HttpClientPool
from playlistnotes.infrastructure.observability import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles:
    - Logging configuration
    - Cancelling the running import on shutdown
    - Closing the shared HTTP client pool
    """
    settings: Settings = getattr(app.state, "settings", None) or get_settings()

    configure_logging(
        log_level=settings.observability.level,
        json_format=settings.observability.json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s", settings.app_name)

    try:
        yield
    finally:
        logger.info("Shutting down application")

        flow = getattr(app.state, "import_flow", None)
        if flow is not None:
            flow.reset_flow()

        # Release all TCP connections
        try:
            await HttpClientPool.close()
        except Exception as e:
            logger.exception("Error closing HTTP client pool: %s", e)
