"""FastAPI application factory."""

from fastapi import FastAPI

from playlistnotes.api.exception_handlers import register_exception_handlers
from playlistnotes.api.routers import api_router, health
from playlistnotes.application.services.import_flow import ImportFlowOrchestrator
from playlistnotes.application.services.import_session import ImportSession
from playlistnotes.config import Settings, get_settings
from playlistnotes.infrastructure.adapters.registry import AdapterSet
from playlistnotes.infrastructure.integrations.spotify_client import SpotifyCredentialsClient
from playlistnotes.infrastructure.lifecycle import lifespan
from playlistnotes.infrastructure.observability.middleware import RequestLoggingMiddleware


# Hey future me - everything a request needs hangs on app.state, built HERE and not in the
# lifespan, so tests can do TestClient(create_app(settings, adapters=fake_adapters)) and poke
# at app.state directly. Pass `adapters` to swap the real Spotify adapter for a double.
def create_app(
    settings: Settings | None = None,
    *,
    adapters: AdapterSet | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use, defaults to get_settings()
        adapters: Adapter set override (tests)

    Returns:
        Configured FastAPI app
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings

    session = ImportSession(
        adapters or AdapterSet.from_settings(settings),
        enable_podcasts=settings.imports.enable_podcasts,
    )
    app.state.import_flow = ImportFlowOrchestrator(session)
    app.state.spotify_credentials = SpotifyCredentialsClient(settings.spotify)

    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api")
    app.include_router(health.router, prefix="/health", tags=["Health"])
    return app
