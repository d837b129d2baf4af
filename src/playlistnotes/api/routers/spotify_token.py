"""Spotify bearer-token endpoint for the import adapter (client-credentials flow)."""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from playlistnotes.api.dependencies import get_spotify_credentials_client
from playlistnotes.domain.exceptions import ConfigurationError, ExternalServiceError
from playlistnotes.infrastructure.integrations.spotify_client import SpotifyCredentialsClient

logger = logging.getLogger(__name__)

router = APIRouter()

# Tokens are per-process secrets, no proxy or browser may keep a copy
NO_STORE = {"Cache-Control": "no-store"}


# Hey future me, this is what SpotifyAdapter.token_cache calls (SPOTIFY_TOKEN_ENDPOINT).
# Only GET is routed, FastAPI answers 405 for every other method on its own. The error
# bodies are {"error": ...} on purpose - the adapter doesn't parse them, it only looks at
# the status (500/503 → ERR_NETWORK), and humans debugging with curl get a readable reason.
@router.get("/token")
async def get_spotify_token(
    client: SpotifyCredentialsClient = Depends(get_spotify_credentials_client),
) -> JSONResponse:
    """Hand out a (cached) client-credentials bearer token.

    Returns:
        {access_token, token_type, expires_in, expires_at}, 500 missing_credentials,
        or 503 {error, status} when the accounts service failed
    """
    try:
        token = await client.get_token()
    except ConfigurationError:
        logger.error("spotify.token.missing_credentials")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "missing_credentials"},
            headers=NO_STORE,
        )
    except ExternalServiceError as e:
        logger.warning(
            "spotify.token.upstream_failed",
            extra={"upstream_status": e.status, "error": e.error},
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"error": e.error or "spotify_error", "status": e.status},
            headers=NO_STORE,
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "access_token": token.access_token,
            "token_type": token.token_type,
            "expires_in": token.expires_in(client.now_ms()),
            "expires_at": token.expires_at,
        },
        headers=NO_STORE,
    )
