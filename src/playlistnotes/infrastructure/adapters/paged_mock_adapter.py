"""Paginated mock adapters (YouTube, SoundCloud).

Hey future me - there is no real YouTube/SoundCloud integration yet. These adapters serve a
deterministic catalog (75 items by default) in pages of 10 with "page:<n>" cursors so the
session, the flow and the HTTP API can exercise pagination end to end. Swap the subclass
for a real adapter later, the contract stays the same.
"""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from playlistnotes.config import ImportSettings
from playlistnotes.domain.dtos import ImportPage, PageInfo
from playlistnotes.domain.entities.error_codes import ImportErrorCode
from playlistnotes.domain.exceptions import AdapterError, ImportAbortedError
from playlistnotes.domain.ports import IFetchClient, IPlaylistAdapter
from playlistnotes.domain.value_objects.cancellation import CancellationToken
from playlistnotes.domain.value_objects.providers import Provider
from playlistnotes.domain.value_objects.track_normalization import (
    coerce_iso_string,
    normalize_track,
)
from playlistnotes.infrastructure.adapters.demo_data import get_demo_playlist
from playlistnotes.infrastructure.adapters.errors import extract_http_status

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
DEFAULT_TOTAL_TRACKS = 75
DEFAULT_DELAY_SECONDS = 0.12

_CURSOR_PATTERN = re.compile(r"page:(\d+)")
_GENERATED_DATE_BASE = datetime(2024, 1, 1, tzinfo=UTC)


def build_mock_catalog(
    provider: str,
    seeds: list[dict[str, Any]],
    total: int = DEFAULT_TOTAL_TRACKS,
) -> list[dict[str, Any]]:
    """Expand a few seed tracks into a deterministic catalog of ``total`` raw tracks.

    Seeds repeat in cycles, every cycle after the first gets a " - mock set K" title
    suffix. ids are ``<provider>-mock-<n>`` (1-based) so they stay stable across runs.
    """
    templates = seeds or [{"title": "Untitled Track", "artist": "Unknown Artist"}]
    prefix = provider or "mock"
    catalog: list[dict[str, Any]] = []

    for i in range(total):
        template = templates[i % len(templates)] or {}
        cycle = i // len(templates)
        number = i + 1

        title = template.get("title") or f"Track {number}"
        suffix = f" - mock set {cycle + 1}" if cycle > 0 else ""
        date_added = coerce_iso_string(template.get("date_added") or template.get("dateAdded"))
        if date_added is None:
            date_added = coerce_iso_string(_GENERATED_DATE_BASE + timedelta(days=i))

        catalog.append(
            {
                **template,
                "id": f"{prefix}-mock-{number}",
                "provider_track_id": template.get("provider_track_id") or f"{prefix}-raw-{number}",
                "title": f"{title}{suffix}",
                "artist": template.get("artist") or f"Mock Artist {number}",
                "source_url": template.get("source_url") or f"https://example.com/{prefix}/track-{number}",
                "date_added": date_added,
            }
        )
    return catalog


def parse_page_cursor(cursor: Any) -> int:
    """Page index of a "page:<n>" cursor. Anything else means the first page."""
    if not cursor:
        return 0
    match = _CURSOR_PATTERN.search(str(cursor))
    return int(match.group(1)) if match else 0


class PagedMockAdapter(IPlaylistAdapter):
    """Serves a deterministic catalog page by page."""

    def __init__(
        self,
        provider: Provider,
        *,
        title: str,
        tracks: list[dict[str, Any]],
        total: int = DEFAULT_TOTAL_TRACKS,
        page_size: int = DEFAULT_PAGE_SIZE,
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
        cover_url: Any = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self.title = title
        self.page_size = page_size
        self.delay_seconds = delay_seconds
        self.cover_url = cover_url if isinstance(cover_url, str) and cover_url else None
        self._sleep = sleep
        self._catalog = build_mock_catalog(provider, tracks, total)
        self.playlist_id = f"{provider}-mock-playlist"
        self.snapshot_id = f"{provider}-mock-snapshot-{len(self._catalog)}"

    @property
    def provider(self) -> Provider:
        return self._provider

    def map_error(self, err: BaseException) -> AdapterError:
        """Classify an HTTP-like failure: 429 rate limit, 401/403 private, else unknown."""
        status = extract_http_status(err)
        details: dict[str, Any] = {"provider": str(self._provider)}
        if status:
            details["status"] = status
        match status:
            case 429:
                code = ImportErrorCode.RATE_LIMITED
            case 401 | 403:
                code = ImportErrorCode.PRIVATE_PLAYLIST
            case _:
                code = ImportErrorCode.UNKNOWN
        return AdapterError(code, details=details)

    async def import_playlist(
        self,
        *,
        url: str | None = None,
        cursor: str | None = None,
        cancel_token: CancellationToken | None = None,
        fetch_client: IFetchClient | None = None,
    ) -> ImportPage:
        """Serve one page of the mock catalog.

        Raises:
            AdapterError: Mapped failure of the simulated fetch
            ImportAbortedError: cancel_token fired before or during the simulated latency
        """
        try:
            return await self._fetch_page(url or "", cursor, cancel_token)
        except (AdapterError, ImportAbortedError):
            raise
        except Exception as e:
            raise self.map_error(e) from e

    async def _simulate_latency(self, cancel_token: CancellationToken | None) -> None:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
            await cancel_token.run(self._sleep(self.delay_seconds))
        else:
            await self._sleep(self.delay_seconds)

    async def _fetch_page(
        self,
        url: str,
        cursor: str | None,
        cancel_token: CancellationToken | None,
    ) -> ImportPage:
        await self._simulate_latency(cancel_token)

        page_index = parse_page_cursor(cursor)
        start = page_index * self.page_size
        end = start + self.page_size
        has_more = end < len(self._catalog)

        logger.debug(
            "mock.page.served",
            extra={"provider": str(self._provider), "page": page_index, "has_more": has_more},
        )
        return ImportPage(
            provider=self._provider,
            playlist_id=self.playlist_id,
            snapshot_id=self.snapshot_id,
            title=self.title,
            source_url=url,
            cover_url=self.cover_url,
            total=len(self._catalog),
            tracks=[
                normalize_track(raw, idx, self._provider)
                for idx, raw in enumerate(self._catalog[start:end])
            ],
            page_info=PageInfo(cursor=f"page:{page_index + 1}" if has_more else None, has_more=has_more),
        )


class _DemoPagedAdapter(PagedMockAdapter):
    """Paged mock over the provider's demo seeds, sized by ImportSettings."""

    PROVIDER: Provider

    def __init__(self, settings: ImportSettings | None = None) -> None:
        settings = settings or ImportSettings()
        demo = get_demo_playlist(self.PROVIDER)
        super().__init__(
            self.PROVIDER,
            title=demo.title,
            tracks=demo.tracks,
            total=settings.mock_total_tracks,
            page_size=settings.mock_page_size,
            delay_seconds=settings.mock_delay_seconds,
        )


class YoutubeAdapter(_DemoPagedAdapter):
    """Mock YouTube adapter."""

    PROVIDER = Provider.YOUTUBE


class SoundcloudAdapter(_DemoPagedAdapter):
    """Mock SoundCloud adapter."""

    PROVIDER = Provider.SOUNDCLOUD
