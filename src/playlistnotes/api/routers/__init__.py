"""API router initialization."""

# Hey future me, this is the MAIN API router aggregator! main.py mounts api_router under /api,
# so /import becomes /api/import and /spotify/token becomes /api/spotify/token. The health
# router is NOT in here, main.py mounts it at /health (probes shouldn't live under /api).

from fastapi import APIRouter

from playlistnotes.api.routers import health, imports, spotify_token

api_router = APIRouter()

api_router.include_router(imports.router, prefix="/import", tags=["Import"])
api_router.include_router(spotify_token.router, prefix="/spotify", tags=["Spotify"])

__all__ = ["api_router", "health", "imports", "spotify_token"]
