# Hey future me - ImportSession ist der STATEFUL Teil des Imports!
# Er merkt sich für EINE Playlist: welche Tracks schon da sind, wo die nächste Seite
# beginnt (cursor), ob gerade etwas läuft und welcher Fehler zuletzt kam.
#
# - import_playlist() ERSETZT die Tracks (erste Seite, auch bei Reimport)
# - import_next() HÄNGT die nächste Seite an, mit Dedup nach Track-ID
# - Ein neuer Import bricht den laufenden ab (CancellationToken)
#
# WICHTIG: Schlägt ein Adapter beim ersten Laden fehl, zeigen wir Demo-Daten statt einer
# leeren Liste. Der Fehlercode bleibt aber IMMER sichtbar (error_code + Warning-Log)!
"""Stateful import session: one playlist, paginated, with fallback demo data."""

from dataclasses import replace
from enum import StrEnum

from playlistnotes.domain.dtos import ImportMeta, ImportPage, NormalizedTrack, PageInfo
from playlistnotes.domain.entities.error_codes import ImportErrorCode
from playlistnotes.domain.exceptions import AdapterError
from playlistnotes.domain.ports import IFetchClient
from playlistnotes.domain.value_objects.cancellation import CancellationToken
from playlistnotes.domain.value_objects.provider_detection import detect_provider
from playlistnotes.domain.value_objects.providers import Provider
from playlistnotes.domain.value_objects.track_normalization import (
    normalize_page_info,
    normalize_track,
)
from playlistnotes.infrastructure.adapters.demo_data import get_demo_playlist
from playlistnotes.infrastructure.adapters.registry import AdapterSet
from playlistnotes.infrastructure.observability.logger_template import (
    get_module_logger,
    log_operation,
)

logger = get_module_logger(__name__)

FALLBACK_TITLE_PREFIX = "MOCK DATA (fallback) - "
URL_PREVIEW_LENGTH = 120


class BusyKind(StrEnum):
    """What the session is currently doing."""

    INITIAL = "initial"
    REIMPORT = "reimport"
    LOAD_MORE = "load_more"


class ImportSession:
    """Holds the tracks and pagination state of the playlist being imported."""

    def __init__(self, adapters: AdapterSet, *, enable_podcasts: bool = False) -> None:
        """Initialize the session.

        Args:
            adapters: Adapter per provider
            enable_podcasts: Accept Spotify show/episode links during detection
        """
        self.adapters = adapters
        self.enable_podcasts = enable_podcasts
        self._tracks: list[NormalizedTrack] = []
        self._seen: set[str] = set()
        self._page_info = PageInfo()
        self._total: int | None = None
        self._error_code: ImportErrorCode | None = None
        self._meta: ImportMeta | None = None
        self._busy_kind: BusyKind | None = None
        self._cancel: CancellationToken | None = None
        # (provider, url) of the last import, import_next() needs both plus the cursor
        self._provider: Provider | None = None
        self._url: str | None = None

    # =========================================================================
    # Read-only state
    # =========================================================================

    @property
    def tracks(self) -> list[NormalizedTrack]:
        return list(self._tracks)

    @property
    def page_info(self) -> PageInfo:
        return self._page_info

    @property
    def total(self) -> int | None:
        return self._total

    @property
    def error_code(self) -> ImportErrorCode | None:
        return self._error_code

    @property
    def meta(self) -> ImportMeta | None:
        return self._meta

    @property
    def busy_kind(self) -> BusyKind | None:
        return self._busy_kind

    @property
    def loading(self) -> bool:
        return self._busy_kind is not None

    @property
    def provider(self) -> Provider | None:
        return self._provider

    @property
    def url(self) -> str | None:
        return self._url

    # =========================================================================
    # Operations
    # =========================================================================

    def _start(
        self, busy_kind: BusyKind, cancel_token: CancellationToken | None
    ) -> CancellationToken:
        self._cancel_in_flight("superseded")
        token = CancellationToken.linked(cancel_token)
        self._cancel = token
        self._busy_kind = busy_kind
        return token

    def _finish(self, token: CancellationToken) -> None:
        # Unhook from the caller's token, callers may reuse one token for many imports
        token.detach()
        # A newer operation may own the session by now, leave its state alone
        if self._cancel is token:
            self._cancel = None
            self._busy_kind = None

    def _cancel_in_flight(self, reason: str) -> None:
        if self._cancel is not None:
            self._cancel.cancel(f"Import was cancelled ({reason}).")
            self._cancel = None
            self._busy_kind = None

    async def import_playlist(
        self,
        url: str,
        *,
        fetch_client: IFetchClient | None = None,
        cancel_token: CancellationToken | None = None,
        busy_kind: BusyKind = BusyKind.INITIAL,
    ) -> ImportPage:
        """Import the first page of ``url`` and REPLACE the session's tracks.

        Cancels whatever the session was doing before.

        Args:
            url: Playlist link as pasted by the user
            fetch_client: Passed through to the adapter
            cancel_token: Caller's token, linked to the session's own
            busy_kind: INITIAL or REIMPORT (only affects busy_kind / logs)

        Returns:
            The page as applied, or the fallback demo page (``page.is_fallback``)

        Raises:
            AdapterError: ERR_UNSUPPORTED_URL, no fallback for links we can't even place
            ImportAbortedError: Cancelled by the caller or superseded by a newer import
        """
        token = self._start(busy_kind, cancel_token)
        trimmed = url.strip() if isinstance(url, str) else ""
        try:
            provider = detect_provider(trimmed, enable_podcasts=self.enable_podcasts)
            if provider is None:
                self._error_code = ImportErrorCode.UNSUPPORTED_URL
                raise AdapterError(
                    ImportErrorCode.UNSUPPORTED_URL,
                    details={"url_preview": trimmed[:URL_PREVIEW_LENGTH]},
                )

            adapter = self.adapters.for_provider(provider)
            async with log_operation(
                logger, "import.first_page", provider=str(provider), busy_kind=str(busy_kind)
            ) as fields:
                try:
                    page = await adapter.import_playlist(
                        url=trimmed, cancel_token=token, fetch_client=fetch_client
                    )
                    error_code = None
                except AdapterError as e:
                    if e.code == ImportErrorCode.UNSUPPORTED_URL:
                        self._error_code = e.code
                        raise
                    page = self._fallback_page(provider, trimmed, e.code)
                    error_code = e.code
                    logger.warning(
                        "import.fallback",
                        extra={"provider": str(provider), "code": str(e.code), "details": e.details},
                    )

                # The adapter may have finished right as a newer import took over
                token.raise_if_cancelled()

                self._provider = provider
                self._url = trimmed
                self._error_code = error_code
                self._apply(page, replace_tracks=True)
                fields["tracks"] = len(page.tracks)
                fields["has_more"] = page.page_info.has_more
                fields["fallback"] = page.is_fallback
            return page
        finally:
            self._finish(token)

    async def import_next(
        self,
        *,
        fetch_client: IFetchClient | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ImportPage | None:
        """Fetch the next page and APPEND it (dedup by track id).

        Returns:
            The page with only the newly added tracks, or None when there is no prior
            import, no further page, or the session is busy

        Raises:
            AdapterError: Adapter failure, recorded in error_code (no fallback here)
            ImportAbortedError: Cancelled or superseded
        """
        if self._provider is None or self._url is None:
            return None
        cursor = self._page_info.cursor
        if not cursor or not self._page_info.has_more:
            return None
        if self._busy_kind is not None:
            logger.debug("import.next.skipped", extra={"busy_kind": str(self._busy_kind)})
            return None

        provider = self._provider
        adapter = self.adapters.for_provider(provider)
        token = self._start(BusyKind.LOAD_MORE, cancel_token)
        try:
            async with log_operation(logger, "import.next_page", provider=str(provider)) as fields:
                try:
                    page = await adapter.import_playlist(
                        url=self._url,
                        cursor=cursor,
                        cancel_token=token,
                        fetch_client=fetch_client,
                    )
                except AdapterError as e:
                    self._error_code = e.code
                    raise

                token.raise_if_cancelled()
                added = self._apply(page, replace_tracks=False)
                self._error_code = None
                fields["tracks"] = len(added)
                fields["has_more"] = page.page_info.has_more
            return replace(page, tracks=added)
        finally:
            self._finish(token)

    def reset(self) -> None:
        """Cancel in-flight work and forget the playlist."""
        self._cancel_in_flight("reset")
        self._tracks = []
        self._seen = set()
        self._page_info = PageInfo()
        self._total = None
        self._error_code = None
        self._meta = None
        self._provider = None
        self._url = None

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _dedup_key(track: NormalizedTrack, provider: str) -> str:
        return f"{track.provider or provider}:{track.id}"

    def _apply(self, page: ImportPage, *, replace_tracks: bool) -> list[NormalizedTrack]:
        if replace_tracks:
            self._tracks = []
            self._seen = set()

        added: list[NormalizedTrack] = []
        for track in page.tracks:
            key = self._dedup_key(track, page.provider)
            if key in self._seen:
                continue
            self._seen.add(key)
            added.append(track)
        self._tracks.extend(added)

        self._page_info = normalize_page_info(page.page_info)
        self._total = page.total
        self._meta = ImportMeta(
            provider=page.provider,
            playlist_id=page.playlist_id,
            snapshot_id=page.snapshot_id,
            cursor=self._page_info.cursor,
            has_more=self._page_info.has_more,
            source_url=page.source_url or self._url or "",
            debug=page.debug,
        )
        return added

    @staticmethod
    def _fallback_page(provider: Provider, url: str, code: ImportErrorCode) -> ImportPage:
        demo = get_demo_playlist(provider)
        tracks = [normalize_track(raw, idx, provider) for idx, raw in enumerate(demo.tracks)]
        return ImportPage(
            provider=provider,
            playlist_id=f"{provider}-fallback",
            title=f"{FALLBACK_TITLE_PREFIX}{demo.title}",
            source_url=url,
            tracks=tracks,
            page_info=PageInfo(),
            total=len(tracks),
            debug={"fallback": True, "error_code": str(code)},
            error_code=code,
        )
