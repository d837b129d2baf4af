# Hey future me - der Flow ist die DÜNNE Schicht über ImportSession!
# Er macht genau zwei Dinge:
# 1. Request-Fencing: jeder Aufruf bekommt eine Request-ID. Ist beim Abschluss schon ein
#    neuerer Aufruf gestartet, wird das Ergebnis als stale gemeldet und NICHTS am Status
#    geändert. Der zuletzt GESTARTETE Aufruf gewinnt, egal wer zuerst fertig wird.
# 2. Ergebnis-Form: ImportResult(ok/data | ok=False/code | ok=False/stale)
#
# Abbrüche (ImportAbortedError) werden NIE zu Fehlercodes, sie werden weitergeworfen.
"""Import flow orchestrator: request fencing and the consumer-facing result envelope."""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import replace
from datetime import UTC, datetime
from enum import StrEnum
from typing import TypeVar

from playlistnotes.application.services.import_session import BusyKind, ImportSession
from playlistnotes.domain.dtos import ImportData, ImportMeta, ImportPage, ImportResult, NormalizedTrack
from playlistnotes.domain.entities.error_codes import ImportErrorCode, extract_error_code
from playlistnotes.domain.exceptions import ImportAbortedError
from playlistnotes.domain.ports import IFetchClient
from playlistnotes.domain.value_objects.cancellation import CancellationToken
from playlistnotes.domain.value_objects.playlist_identity import derive_playlist_identity
from playlistnotes.domain.value_objects.track_normalization import coerce_iso_string
from playlistnotes.infrastructure.observability.logger_template import get_module_logger

logger = get_module_logger(__name__)

P = TypeVar("P", bound=ImportPage | None)

DEFAULT_TITLE = "Imported Playlist"


class ImportFlowStatus(StrEnum):
    """Flow state machine: idle → importing | reimporting | loadingMore → idle."""

    IDLE = "idle"
    IMPORTING = "importing"
    REIMPORTING = "reimporting"
    LOADING_MORE = "loadingMore"


def build_tracks(
    page: ImportPage,
    provider_hint: str | None = None,
    start_index: int = 0,
    existing_ids: Iterable[str] | None = None,
) -> list[NormalizedTrack]:
    """Final track list of a page for the caller.

    Tracks without an id get ``<provider>-<start_index + i + 1>`` so ids stay stable across
    pages. With ``existing_ids`` (load-more) tracks the caller already has are skipped.
    """
    provider = page.provider or provider_hint
    seen = set(existing_ids) if existing_ids is not None else None
    out: list[NormalizedTrack] = []

    for idx, track in enumerate(page.tracks):
        candidate = track.id or "-".join(
            str(part) for part in (provider, start_index + idx + 1) if part
        )
        if seen is not None:
            if candidate in seen:
                continue
            seen.add(candidate)
        if candidate != track.id or (track.provider is None and provider):
            track = replace(track, id=candidate, provider=track.provider or provider)
        out.append(track)
    return out


def build_meta(
    page: ImportPage,
    *,
    provider_hint: str | None = None,
    fallback: ImportMeta | None = None,
    source_url: str = "",
) -> ImportMeta:
    """ImportMeta of a page, filling gaps from ``fallback`` (previously persisted meta)."""
    fallback = fallback or ImportMeta()
    cursor = page.page_info.cursor
    return ImportMeta(
        provider=page.provider or provider_hint or fallback.provider,
        playlist_id=page.playlist_id or fallback.playlist_id,
        snapshot_id=page.snapshot_id or fallback.snapshot_id,
        cursor=cursor,
        has_more=bool(page.page_info.has_more and cursor),
        source_url=page.source_url or fallback.source_url or source_url,
        debug=page.debug if page.debug is not None else fallback.debug,
    )


def _iso_now() -> str:
    return coerce_iso_string(datetime.now(UTC)) or ""


# Yo, persisted meta only fills gaps when it describes the SAME playlist. A reimport whose
# link now resolves elsewhere (edited link, fallback demo page) must not inherit the old
# snapshot id or cursor.
def _matching_meta(
    existing_meta: ImportMeta | None, url: str, page: ImportPage
) -> ImportMeta | None:
    if existing_meta is None:
        return None
    before = derive_playlist_identity(existing_meta, url)
    after = derive_playlist_identity(
        ImportMeta(provider=page.provider, playlist_id=page.playlist_id), page.source_url
    )
    if before is None or after is None or before == after:
        return existing_meta
    logger.warning(
        "import.reimport.identity_changed",
        extra={"previous": before.key, "current": after.key},
    )
    return None


class ImportFlowOrchestrator:
    """Fences overlapping import / reimport / load-more calls on one ImportSession."""

    def __init__(
        self,
        session: ImportSession,
        *,
        now: Callable[[], str] = _iso_now,
    ) -> None:
        self.session = session
        self._now = now
        self._status = ImportFlowStatus.IDLE
        self._error_code: ImportErrorCode | None = None
        self._request_id = 0

    @property
    def status(self) -> ImportFlowStatus:
        return self._status

    @property
    def error_code(self) -> ImportErrorCode | None:
        return self._error_code

    @property
    def request_id(self) -> int:
        return self._request_id

    @property
    def loading(self) -> bool:
        return self.session.loading

    # =========================================================================
    # Fencing
    # =========================================================================

    def _begin_request(self, status: ImportFlowStatus) -> int:
        self._request_id += 1
        self._status = status
        self._error_code = None
        return self._request_id

    def _is_current(self, request_id: int) -> bool:
        return request_id == self._request_id

    def _finish_request(self, request_id: int) -> None:
        # Only the latest caller may flip the status back to idle
        if self._is_current(request_id):
            self._status = ImportFlowStatus.IDLE

    async def _run(
        self,
        status: ImportFlowStatus,
        operation: Callable[[], Awaitable[P]],
        build: Callable[[P], ImportData],
    ) -> ImportResult:
        request_id = self._begin_request(status)
        try:
            page = await operation()
        except ImportAbortedError:
            if not self._is_current(request_id):
                # Aborted because a newer call took over the session
                logger.debug("import.flow.superseded", extra={"request_id": request_id})
                return ImportResult.superseded()
            raise
        except Exception as e:
            if not self._is_current(request_id):
                return ImportResult.superseded()
            code = extract_error_code(e) or ImportErrorCode.UNKNOWN
            self._error_code = code
            logger.info(
                "import.flow.failed",
                extra={"request_id": request_id, "status": str(status), "code": str(code)},
            )
            return ImportResult.failure(code, e)
        else:
            if not self._is_current(request_id):
                logger.debug("import.flow.stale", extra={"request_id": request_id})
                return ImportResult.superseded()
            self._error_code = None
            return ImportResult.success(build(page))
        finally:
            # Runs on task cancellation too
            self._finish_request(request_id)

    # =========================================================================
    # Entry points
    # =========================================================================

    async def import_initial(
        self,
        url: str,
        *,
        provider_hint: str | None = None,
        source_url: str | None = None,
        fetch_client: IFetchClient | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ImportResult:
        """Start a fresh import of ``url``.

        Returns:
            ImportResult (success, failure with code, or stale)

        Raises:
            ImportAbortedError: The caller cancelled this (still current) request
        """
        trimmed = url.strip() if isinstance(url, str) else ""

        def build(page: ImportPage) -> ImportData:
            return self._build_data(
                page,
                provider_hint=provider_hint,
                fallback=None,
                source_url=source_url or trimmed,
                title=page.title,
            )

        return await self._run(
            ImportFlowStatus.IMPORTING,
            lambda: self.session.import_playlist(
                trimmed,
                fetch_client=fetch_client,
                cancel_token=cancel_token,
                busy_kind=BusyKind.INITIAL,
            ),
            build,
        )

    async def reimport(
        self,
        url: str,
        *,
        provider_hint: str | None = None,
        existing_meta: ImportMeta | None = None,
        fallback_title: str | None = None,
        fetch_client: IFetchClient | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ImportResult:
        """Re-import the same playlist, refreshing tracks and metadata.

        An empty ``url`` fails with ERR_UNKNOWN without starting a request.
        ``existing_meta`` fills gaps only while it names the same playlist as the new page.
        """
        if not url or not str(url).strip():
            return ImportResult.failure(ImportErrorCode.UNKNOWN)
        trimmed = str(url).strip()
        hint = provider_hint or (existing_meta.provider if existing_meta else None)

        def build(page: ImportPage) -> ImportData:
            return self._build_data(
                page,
                provider_hint=hint,
                fallback=_matching_meta(existing_meta, trimmed, page),
                source_url=trimmed,
                title=page.title or fallback_title,
            )

        return await self._run(
            ImportFlowStatus.REIMPORTING,
            lambda: self.session.import_playlist(
                trimmed,
                fetch_client=fetch_client,
                cancel_token=cancel_token,
                busy_kind=BusyKind.REIMPORT,
            ),
            build,
        )

    async def load_more(
        self,
        *,
        provider_hint: str | None = None,
        existing_meta: ImportMeta | None = None,
        existing_ids: Iterable[str] | None = None,
        start_index: int = 0,
        source_url: str | None = None,
        fetch_client: IFetchClient | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ImportResult:
        """Load the next page of the current import.

        When there is nothing more to load the result is still ok, with no tracks and
        ``existing_meta`` carried over with cursor cleared and has_more False.
        """
        hint = provider_hint or (existing_meta.provider if existing_meta else None)
        ids = list(existing_ids) if existing_ids is not None else None

        def build(page: ImportPage | None) -> ImportData:
            if page is None:
                base = existing_meta or ImportMeta()
                return ImportData(
                    tracks=[],
                    meta=replace(
                        base,
                        cursor=None,
                        has_more=False,
                        source_url=base.source_url or source_url or "",
                    ),
                )
            return ImportData(
                tracks=build_tracks(page, hint, start_index, ids),
                meta=build_meta(
                    page,
                    provider_hint=hint,
                    fallback=existing_meta,
                    source_url=source_url or "",
                ),
            )

        return await self._run(
            ImportFlowStatus.LOADING_MORE,
            lambda: self.session.import_next(
                fetch_client=fetch_client, cancel_token=cancel_token
            ),
            build,
        )

    def reset_flow(self) -> None:
        """Cancel in-flight work and return to idle. In-flight calls resolve as stale."""
        self.session.reset()
        self._request_id += 1
        self._status = ImportFlowStatus.IDLE
        self._error_code = None

    async def prime_upstream_services(
        self,
        *,
        fetch_client: IFetchClient | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        """Warm credentials of every adapter (only Spotify has any) ahead of an import."""
        await asyncio.gather(
            *(
                adapter.prime(cancel_token=cancel_token, fetch_client=fetch_client)
                for adapter in self.session.adapters.all()
            )
        )

    # =========================================================================
    # Result building
    # =========================================================================

    def _build_data(
        self,
        page: ImportPage,
        *,
        provider_hint: str | None,
        fallback: ImportMeta | None,
        source_url: str,
        title: str | None,
    ) -> ImportData:
        tracks = build_tracks(page, provider_hint)
        return ImportData(
            tracks=tracks,
            meta=build_meta(page, provider_hint=provider_hint, fallback=fallback, source_url=source_url),
            title=title or DEFAULT_TITLE,
            imported_at=self._now(),
            cover_url=page.cover_url,
            total=page.total if page.total is not None else len(tracks),
            error_code=page.error_code,
        )
