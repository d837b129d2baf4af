"""Import endpoints: start, refresh, paginate and reset the playlist import."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from playlistnotes.api.dependencies import get_import_flow
from playlistnotes.api.exception_handlers import adapter_error_status
from playlistnotes.api.schemas.imports import (
    ImportRequest,
    ImportStatusResponse,
    LoadMoreRequest,
    ReimportRequest,
)
from playlistnotes.application.services.import_flow import ImportFlowOrchestrator
from playlistnotes.domain.dtos import ImportMeta, ImportResult
from playlistnotes.domain.entities.error_codes import get_error_message, is_retryable_error
from playlistnotes.domain.exceptions import ValidationError
from playlistnotes.domain.value_objects.playlist_identity import build_playlist_cache_key

logger = logging.getLogger(__name__)

router = APIRouter()


# Hey future me, ImportResult has three shapes and each gets its own HTTP status:
# ok → 200, stale → 409 (a newer request won, the client should ignore this answer),
# failure → the adapter code's status (400/403/404/429/502). The body is always the
# camelCase ImportResult so the frontend can treat every answer the same way.
def _to_response(result: ImportResult) -> JSONResponse:
    body: dict[str, Any] = result.to_dict()
    if result.ok:
        # Fallback demo data is a success with a visible error code
        if result.data is not None and result.data.error_code is not None:
            body["errorCode"] = str(result.data.error_code)
        return JSONResponse(status_code=status.HTTP_200_OK, content=body)
    if result.stale:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=body)

    body["message"] = get_error_message(result.code)
    body["retryable"] = is_retryable_error(result.code)
    status_code = (
        adapter_error_status(result.code)
        if result.code is not None
        else status.HTTP_502_BAD_GATEWAY
    )
    return JSONResponse(status_code=status_code, content=body)


@router.post("")
async def start_import(
    request: ImportRequest,
    flow: ImportFlowOrchestrator = Depends(get_import_flow),
) -> JSONResponse:
    """Import the first page of a playlist, replacing the current one.

    Returns:
        ImportResult JSON (tracks, meta, title, importedAt, coverUrl, total)

    Raises:
        ValidationError: Blank url (422)
    """
    if not request.url.strip():
        raise ValidationError("Import URL must not be empty")
    result = await flow.import_initial(
        request.url,
        provider_hint=request.provider_hint,
        source_url=request.source_url,
    )
    return _to_response(result)


@router.post("/reimport")
async def reimport(
    request: ReimportRequest,
    flow: ImportFlowOrchestrator = Depends(get_import_flow),
) -> JSONResponse:
    """Refresh the playlist from its provider, keeping the persisted identity as fallback."""
    existing_meta = (
        ImportMeta.from_dict(request.existing_meta)
        if request.existing_meta is not None
        else flow.session.meta
    )
    result = await flow.reimport(
        request.url,
        existing_meta=existing_meta,
        fallback_title=request.fallback_title,
    )
    return _to_response(result)


@router.post("/more")
async def load_more(
    request: LoadMoreRequest | None = None,
    flow: ImportFlowOrchestrator = Depends(get_import_flow),
) -> JSONResponse:
    """Append the next page of the current import.

    Without a body the session's own meta and track count are used.
    """
    request = request or LoadMoreRequest()
    existing_meta = (
        ImportMeta.from_dict(request.existing_meta)
        if request.existing_meta is not None
        else flow.session.meta
    )
    start_index = request.start_index or len(flow.session.tracks)
    result = await flow.load_more(
        existing_meta=existing_meta,
        existing_ids=request.existing_ids,
        start_index=start_index,
    )
    return _to_response(result)


@router.delete("")
async def reset_import(
    flow: ImportFlowOrchestrator = Depends(get_import_flow),
) -> dict[str, str]:
    """Cancel in-flight work and forget the current playlist."""
    flow.reset_flow()
    logger.info("import.reset")
    return {"status": str(flow.status)}


@router.get("/status", response_model=ImportStatusResponse)
async def import_status(
    flow: ImportFlowOrchestrator = Depends(get_import_flow),
) -> ImportStatusResponse:
    """Current flow status, error code and pagination state."""
    session = flow.session
    error_code = flow.error_code or session.error_code
    meta = session.meta
    return ImportStatusResponse(
        status=str(flow.status),
        error_code=str(error_code) if error_code else None,
        loading=flow.loading,
        has_more=session.page_info.has_more,
        total=session.total,
        tracks=len(session.tracks),
        playlist_key=(
            build_playlist_cache_key(meta.provider, meta.playlist_id) if meta else None
        ),
    )
