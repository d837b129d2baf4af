"""Dependency injection for API endpoints."""

import logging
from typing import cast

from fastapi import HTTPException, Request

from playlistnotes.application.services.import_flow import ImportFlowOrchestrator
from playlistnotes.infrastructure.integrations.spotify_client import SpotifyCredentialsClient

logger = logging.getLogger(__name__)


# Hey future me, the orchestrator lives on app.state (created in main.py lifespan/create_app).
# ONE orchestrator per process means ONE import session, which is exactly what a single-user
# annotation app needs. Missing on app.state means startup went wrong → 503, not a crash.
def get_import_flow(request: Request) -> ImportFlowOrchestrator:
    """Get the import flow orchestrator from app state.

    Raises:
        HTTPException: 503 if the orchestrator is not initialized
    """
    if not hasattr(request.app.state, "import_flow"):
        raise HTTPException(status_code=503, detail="Import flow not initialized")
    return cast(ImportFlowOrchestrator, request.app.state.import_flow)


def get_spotify_credentials_client(request: Request) -> SpotifyCredentialsClient:
    """Get the server-side Spotify credentials client from app state.

    Raises:
        HTTPException: 503 if the client is not initialized
    """
    if not hasattr(request.app.state, "spotify_credentials"):
        raise HTTPException(status_code=503, detail="Spotify credentials client not initialized")
    return cast(SpotifyCredentialsClient, request.app.state.spotify_credentials)
