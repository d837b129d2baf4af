"""Pydantic models of the import endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class ImportRequest(BaseModel):
    """Body of POST /api/import."""

    url: str = Field(description="Playlist link as pasted by the user")
    provider_hint: str | None = Field(default=None, description="Provider if already known")
    source_url: str | None = Field(default=None, description="URL to record in the meta")


class ReimportRequest(BaseModel):
    """Body of POST /api/import/reimport."""

    url: str = Field(default="", description="Playlist link to refresh")
    fallback_title: str | None = Field(
        default=None, description="Title to keep when the provider returns none"
    )
    existing_meta: dict[str, Any] | None = Field(
        default=None, description="Previously persisted meta (camelCase or snake_case)"
    )


class LoadMoreRequest(BaseModel):
    """Body of POST /api/import/more. Everything optional, the session knows the cursor."""

    existing_ids: list[str] | None = Field(
        default=None, description="Track ids the client already has"
    )
    start_index: int = Field(default=0, ge=0, description="Index of the first new track")
    existing_meta: dict[str, Any] | None = Field(default=None, description="Persisted meta")


class ImportStatusResponse(BaseModel):
    """Response of GET /api/import/status."""

    status: str
    error_code: str | None = None
    loading: bool = False
    has_more: bool = False
    total: int | None = None
    tracks: int = 0
    playlist_key: str | None = Field(default=None, description="\"provider:playlist_id\" of the session")
