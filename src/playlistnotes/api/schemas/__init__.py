"""Request/response models of the HTTP API."""

from playlistnotes.api.schemas.imports import (
    ImportRequest,
    ImportStatusResponse,
    LoadMoreRequest,
    ReimportRequest,
)

__all__ = [
    "ImportRequest",
    "ImportStatusResponse",
    "LoadMoreRequest",
    "ReimportRequest",
]
