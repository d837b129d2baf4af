"""Application services."""

from playlistnotes.application.services.import_flow import (
    DEFAULT_TITLE,
    ImportFlowOrchestrator,
    ImportFlowStatus,
    build_meta,
    build_tracks,
)
from playlistnotes.application.services.import_session import (
    FALLBACK_TITLE_PREFIX,
    BusyKind,
    ImportSession,
)

__all__ = [
    "DEFAULT_TITLE",
    "FALLBACK_TITLE_PREFIX",
    "BusyKind",
    "ImportFlowOrchestrator",
    "ImportFlowStatus",
    "ImportSession",
    "build_meta",
    "build_tracks",
]
