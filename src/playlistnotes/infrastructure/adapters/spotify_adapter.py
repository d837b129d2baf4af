"""Spotify adapter backed by the Web API (client-credentials token via our backend).

Hey future me - this is the only REAL adapter right now. One import_playlist() call is:

    token (TokenCache) → [metadata ‖ track page] concurrently → normalize → ImportPage

Playlists, shows and single episodes are supported, shows/episodes only when the podcast
flag (IMPORT_ENABLE_PODCASTS) is on. A 401 anywhere invalidates the token and retries the
WHOLE operation exactly once with a fresh token. A second 401 surfaces as
ERR_PRIVATE_PLAYLIST.

Cursors are Spotify's own absolute "next" URLs. We only follow them when they point at the
configured API origin under its /v1/ prefix, anything else is ERR_INVALID_RESPONSE and no
request is made.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar
from urllib.parse import unquote, urlencode, urlsplit

from playlistnotes.config import SpotifySettings
from playlistnotes.domain.dtos import ImportPage, NormalizedTrack, PageInfo
from playlistnotes.domain.entities.error_codes import ImportErrorCode
from playlistnotes.domain.exceptions import AdapterError, ImportAbortedError
from playlistnotes.domain.ports import IFetchClient, IPlaylistAdapter
from playlistnotes.domain.value_objects.cancellation import CancellationToken
from playlistnotes.domain.value_objects.provider_detection import (
    DetectedContent,
    detect_spotify_content,
)
from playlistnotes.domain.value_objects.providers import (
    ContentKind,
    Provider,
    SpotifyContentType,
)
from playlistnotes.domain.value_objects.track_normalization import normalize_track
from playlistnotes.infrastructure.adapters.errors import extract_http_status
from playlistnotes.infrastructure.adapters.token_cache import TokenCache, TokenMemo
from playlistnotes.infrastructure.integrations.fetch_client import HttpxFetchClient

logger = logging.getLogger(__name__)

PLAYLIST_FIELDS = "name,external_urls,images,owner(display_name),snapshot_id"
TRACK_FIELDS = (
    "items(added_at,track(id,uri,name,duration_ms,external_urls,album(name,images),"
    "artists(name),is_local,type,show(publisher,name,images))),next,total"
)
SHOW_FIELDS = "name,publisher,images,external_urls"
SHOW_EPISODE_FIELDS = (
    "items(id,uri,name,description,duration_ms,images,external_urls,release_date,"
    "release_date_precision,show(id,name,publisher,images)),next,total"
)
EPISODE_FIELDS = "id,uri,name,description,duration_ms,images,external_urls,show(id,name,publisher,images)"

PLAYLIST_PAGE_SIZE = 100
SHOW_PAGE_SIZE = 50
LONG_SHOW_THRESHOLD = 500
URL_PREVIEW_LENGTH = 120
DEBUG_SOURCE = "spotify:web"

# Thumbnails are shown at 40px, 80px is the 2x HiDPI sweet spot
TRACK_THUMB_DISPLAY_WIDTH = 40
IDEAL_TRACK_THUMB_WIDTH = 80


def select_album_thumb(images: Any, fallback_url: str | None) -> str | None:
    """Pick the image URL best suited for a 40px thumbnail.

    Among images at least 40px wide (width, else height) the one closest to 80px wins, the
    smaller one on ties. If none is that wide, the closest to 80px overall. Without any
    size metadata the LAST image (Spotify orders largest → smallest).

    Args:
        images: Spotify ``images`` array (list of {url, width, height})
        fallback_url: Returned when there is no usable image at all

    Returns:
        Image URL or ``fallback_url``
    """
    if not isinstance(images, list) or not images:
        return fallback_url

    candidates: list[tuple[str, int | float | None]] = []
    for image in images:
        if not isinstance(image, dict) or not isinstance(image.get("url"), str):
            continue
        width = image.get("width")
        if not _is_number(width):
            height = image.get("height")
            width = height if _is_number(height) else None
        candidates.append((image["url"], width))

    if not candidates:
        return fallback_url

    sized = sorted(
        ((url, width) for url, width in candidates if width is not None),
        key=lambda item: item[1],
    )
    if sized:
        hidpi = [item for item in sized if item[1] >= TRACK_THUMB_DISPLAY_WIDTH]
        # pool is sorted ascending and min() keeps the first hit, so ties go to the smaller
        pool = hidpi or sized
        best = min(pool, key=lambda item: abs(item[1] - IDEAL_TRACK_THUMB_WIDTH))
        return best[0]

    return candidates[-1][0]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _spotify_url(payload: dict[str, Any]) -> str:
    external = payload.get("external_urls")
    if isinstance(external, dict) and isinstance(external.get("spotify"), str):
        return external["spotify"]
    return ""


def _first_image_url(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    images = payload.get("images")
    if isinstance(images, list) and images and isinstance(images[0], dict):
        url = images[0].get("url")
        if isinstance(url, str) and url:
            return url
    return None


def _total(payload: dict[str, Any]) -> int | None:
    total = payload.get("total")
    return int(total) if _is_number(total) else None


def normalize_episode_item(
    episode: Any,
    show_meta: Any,
    index: int,
    added_at: str | None = None,
) -> NormalizedTrack | None:
    """Normalize a podcast episode (from a show page, a playlist item or /episodes/{id}).

    Show name, publisher and id come from the episode's own ``show`` object first, then from
    ``show_meta``. Returns None when the payload has neither id nor uri.
    """
    if not isinstance(episode, dict):
        return None
    episode_id = episode.get("id") or episode.get("uri")
    if not episode_id:
        return None

    show = episode.get("show") if isinstance(episode.get("show"), dict) else {}
    meta = show_meta if isinstance(show_meta, dict) else {}

    show_name = _text(show.get("name")) or _text(meta.get("name"))
    publisher = _text(show.get("publisher")) or _text(meta.get("publisher"))
    show_id = _text(show.get("id")) or _text(meta.get("id"))
    thumbnail = select_album_thumb(episode.get("images"), None) or select_album_thumb(
        meta.get("images"), None
    )
    duration = episode.get("duration_ms")

    return normalize_track(
        {
            "id": episode_id,
            "provider_track_id": episode_id,
            "title": _text(episode.get("name")) or "",
            "artist": show_name or "",
            "album": show_name,
            "duration_ms": duration if _is_number(duration) else None,
            "source_url": _spotify_url(episode),
            "thumbnail_url": thumbnail,
            "provider": Provider.SPOTIFY,
            "kind": ContentKind.PODCAST,
            "show_id": show_id,
            "show_name": show_name,
            "publisher": publisher,
            "description": _text(episode.get("description")),
            "date_added": added_at,
        },
        index,
        Provider.SPOTIFY,
    )


T = TypeVar("T")


async def _gather_or_cancel(*aws: Awaitable[T]) -> list[T]:
    """Run awaitables concurrently. The first failure cancels the siblings and is raised."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        raise

    pending = [task for task in tasks if not task.done()]
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

    errors = [
        task.exception() for task in tasks if not task.cancelled() and task.exception()
    ]
    if errors:
        raise errors[0]
    return [task.result() for task in tasks]


class SpotifyAdapter(IPlaylistAdapter):
    """Credentialed Spotify adapter."""

    def __init__(
        self,
        settings: SpotifySettings,
        *,
        enable_podcasts: bool = False,
        fetch_client: IFetchClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the adapter.

        Args:
            settings: Spotify settings (api_base_url, token_endpoint)
            enable_podcasts: Accept show/episode links
            fetch_client: Default fetch client when a call doesn't pass one
            clock: Epoch-seconds clock for the token cache
        """
        self.settings = settings
        self.enable_podcasts = enable_podcasts
        self._fetch_client = fetch_client
        self._api_base = settings.api_base_url.rstrip("/")
        api = urlsplit(self._api_base)
        self._api_scheme = api.scheme
        self._api_host = api.hostname or ""
        self._api_port = api.port
        self._api_path_prefix = api.path.rstrip("/") + "/"
        self.token_cache = TokenCache(
            settings.token_endpoint,
            error_mapper=lambda err: self.map_error("token", err),
            clock=clock,
        )

    @property
    def provider(self) -> Provider:
        return Provider.SPOTIFY

    def _resolve_fetch_client(self, fetch_client: IFetchClient | None) -> IFetchClient:
        if fetch_client is not None:
            return fetch_client
        if self._fetch_client is None:
            self._fetch_client = HttpxFetchClient()
        return self._fetch_client

    # =========================================================================
    # Error mapping
    # =========================================================================

    def map_error(self, stage: str, err: BaseException) -> AdapterError:
        """Classify a raw failure at ``stage`` ("token" | "meta" | "tracks").

        Args:
            stage: Where the failure happened
            err: Raw exception (httpx error, fetch-client double error, AdapterError...)

        Returns:
            AdapterError to raise (``from err``)
        """
        status = extract_http_status(err)
        details: dict[str, Any] = {"stage": stage, "provider": str(Provider.SPOTIFY)}
        raw_details = getattr(err, "details", None)
        if isinstance(raw_details, dict):
            details.update(raw_details)
            details["stage"] = stage
        if status:
            details["status"] = status

        match status:
            case 403 if stage == "tracks":
                # 403 on the item endpoint is a market/region restriction, not privacy
                code = ImportErrorCode.EPISODE_UNAVAILABLE
            case 401 | 403:
                code = ImportErrorCode.PRIVATE_PLAYLIST
            case 404:
                code = ImportErrorCode.NOT_FOUND
            case 451:
                code = ImportErrorCode.EPISODE_UNAVAILABLE
            case 429:
                code = ImportErrorCode.RATE_LIMITED
            case _:
                code = ImportErrorCode.NETWORK
                if stage == "token":
                    details["endpoint"] = self.settings.token_endpoint

        return AdapterError(code, details=details)

    def _invalid_response(self, stage: str, **details: Any) -> AdapterError:
        return AdapterError(
            ImportErrorCode.INVALID_RESPONSE,
            details={"stage": stage, "provider": str(Provider.SPOTIFY), **details},
        )

    # =========================================================================
    # URLs
    # =========================================================================

    def sanitize_cursor(self, raw: Any) -> str | None:
        """Return the cursor URL if it targets the Web API, else None.

        Only scheme/host/port of the configured API base and paths under its prefix
        (/v1/) pass, without dot segments (plain or percent-encoded). The fragment and any
        credentials are dropped.
        """
        if not isinstance(raw, str) or not raw.strip():
            return None
        try:
            parsed = urlsplit(raw.strip())
            port = parsed.port
        except ValueError:
            return None
        default_port = 443 if self._api_scheme == "https" else 80
        if parsed.scheme != self._api_scheme or parsed.hostname != self._api_host:
            return None
        if parsed.username or parsed.password:
            return None
        if (port or default_port) != (self._api_port or default_port):
            return None
        if not parsed.path.startswith(self._api_path_prefix):
            return None
        # httpx resolves dot segments, so /v1/../me would leave the prefix after the check
        segments = unquote(parsed.path).replace("\\", "/").split("/")
        if any(segment in (".", "..") for segment in segments):
            return None
        origin = f"{self._api_scheme}://{self._api_host}"
        if self._api_port and self._api_port != default_port:
            origin = f"{origin}:{self._api_port}"
        query = f"?{parsed.query}" if parsed.query else ""
        return f"{origin}{parsed.path}{query}"

    def _playlist_meta_url(self, playlist_id: str) -> str:
        return f"{self._api_base}/playlists/{playlist_id}?{urlencode({'fields': PLAYLIST_FIELDS})}"

    def _playlist_tracks_url(self, playlist_id: str) -> str:
        params = {"limit": PLAYLIST_PAGE_SIZE, "fields": TRACK_FIELDS}
        return f"{self._api_base}/playlists/{playlist_id}/tracks?{urlencode(params)}"

    def _show_meta_url(self, show_id: str) -> str:
        params = {"market": "from_token", "fields": SHOW_FIELDS}
        return f"{self._api_base}/shows/{show_id}?{urlencode(params)}"

    def _show_episodes_url(self, show_id: str, offset: int = 0) -> str:
        params = {
            "limit": SHOW_PAGE_SIZE,
            "offset": offset,
            "market": "from_token",
            "fields": SHOW_EPISODE_FIELDS,
        }
        return f"{self._api_base}/shows/{show_id}/episodes?{urlencode(params)}"

    def _episode_url(self, episode_id: str) -> str:
        params = {"market": "from_token", "fields": EPISODE_FIELDS}
        return f"{self._api_base}/episodes/{episode_id}?{urlencode(params)}"

    # =========================================================================
    # Fetching
    # =========================================================================

    async def _get(
        self,
        fetch_client: IFetchClient,
        url: str,
        token: TokenMemo,
        stage: str,
        cancel_token: CancellationToken | None,
    ) -> Any:
        request = fetch_client.get_json(
            url,
            headers={"Authorization": token.authorization},
            cancel_token=cancel_token,
        )
        try:
            if cancel_token is not None:
                return await cancel_token.run(request)
            return await request
        except ImportAbortedError:
            raise
        except Exception as e:
            raise self.map_error(stage, e) from e

    async def _timed(self, timings: dict[str, float], key: str, aw: Awaitable[Any]) -> Any:
        started = time.perf_counter()
        result = await aw
        timings[key] = round((time.perf_counter() - started) * 1000, 2)
        return result

    async def import_playlist(
        self,
        *,
        url: str | None = None,
        cursor: str | None = None,
        cancel_token: CancellationToken | None = None,
        fetch_client: IFetchClient | None = None,
    ) -> ImportPage:
        """Fetch one page of a Spotify playlist, show or episode.

        Args:
            url: Any supported Spotify link/URI (needed on every call, it names the content)
            cursor: Spotify "next" URL from the previous page
            cancel_token: Aborts token wait and both data requests
            fetch_client: Overrides the adapter's fetch client for this call

        Returns:
            ImportPage with normalized tracks

        Raises:
            AdapterError: ERR_UNSUPPORTED_URL, ERR_PRIVATE_PLAYLIST, ERR_NOT_FOUND,
                ERR_RATE_LIMITED, ERR_INVALID_RESPONSE, ERR_NETWORK, ERR_SHOW_EMPTY,
                ERR_EPISODE_UNAVAILABLE, ERR_PODCAST_CONTENT
            ImportAbortedError: cancel_token fired
        """
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        client = self._resolve_fetch_client(fetch_client)
        input_url = url.strip() if isinstance(url, str) else ""
        detected = detect_spotify_content(input_url)
        if detected is None or (detected.is_podcast and not self.enable_podcasts):
            raise AdapterError(
                ImportErrorCode.UNSUPPORTED_URL,
                details={
                    "provider": str(Provider.SPOTIFY),
                    "url_preview": input_url[:URL_PREVIEW_LENGTH],
                },
            )

        # Validate BEFORE any request goes out, token fetch included
        cursor_url: str | None = None
        if cursor and detected.type is not SpotifyContentType.EPISODE:
            cursor_url = self.sanitize_cursor(cursor)
            if cursor_url is None:
                raise self._invalid_response("tracks", reason="invalid_cursor", cursor=cursor)

        token_refreshed = False
        for attempt in range(2):
            try:
                return await self._import_once(
                    client,
                    detected,
                    input_url=input_url,
                    cursor_url=cursor_url,
                    force_refresh=attempt > 0,
                    token_refreshed=token_refreshed,
                    cancel_token=cancel_token,
                )
            except AdapterError as e:
                if e.status == 401 and attempt == 0:
                    logger.debug(
                        "spotify.token.retry",
                        extra={"reason": "unauthorized", "content_id": detected.id[:8]},
                    )
                    self.token_cache.invalidate()
                    token_refreshed = True
                    continue
                raise

        # unreachable, the second attempt returns or raises
        raise AdapterError(ImportErrorCode.UNKNOWN, details={"provider": str(Provider.SPOTIFY)})

    async def _import_once(
        self,
        client: IFetchClient,
        detected: DetectedContent,
        *,
        input_url: str,
        cursor_url: str | None,
        force_refresh: bool,
        token_refreshed: bool,
        cancel_token: CancellationToken | None,
    ) -> ImportPage:
        timings: dict[str, float] = {}
        token = await self._timed(
            timings,
            "token_ms",
            self.token_cache.acquire(
                client, force_refresh=force_refresh, cancel_token=cancel_token
            ),
        )

        debug: dict[str, Any] = {
            "source": DEBUG_SOURCE,
            "stage": "paginate" if cursor_url else "initial",
            "token_refreshed": token_refreshed,
            "input_url": input_url or None,
            "content_type": str(detected.type),
        }

        match detected.type:
            case SpotifyContentType.PLAYLIST:
                meta, payload = await _gather_or_cancel(
                    self._timed(
                        timings,
                        "meta_ms",
                        self._get(client, self._playlist_meta_url(detected.id), token, "meta", cancel_token),
                    ),
                    self._timed(
                        timings,
                        "tracks_ms",
                        self._get(
                            client,
                            cursor_url or self._playlist_tracks_url(detected.id),
                            token,
                            "tracks",
                            cancel_token,
                        ),
                    ),
                )
                page = self._playlist_page(detected, meta, payload)
            case SpotifyContentType.SHOW:
                meta, payload = await _gather_or_cancel(
                    self._timed(
                        timings,
                        "meta_ms",
                        self._get(client, self._show_meta_url(detected.id), token, "meta", cancel_token),
                    ),
                    self._timed(
                        timings,
                        "tracks_ms",
                        self._get(
                            client,
                            cursor_url or self._show_episodes_url(detected.id),
                            token,
                            "tracks",
                            cancel_token,
                        ),
                    ),
                )
                page = self._show_page(detected, meta, payload)
                debug["long_show"] = page.total is not None and page.total > LONG_SHOW_THRESHOLD
            case SpotifyContentType.EPISODE:
                payload = await self._timed(
                    timings,
                    "meta_ms",
                    self._get(client, self._episode_url(detected.id), token, "tracks", cancel_token),
                )
                timings["tracks_ms"] = 0
                page = self._episode_page(detected, payload)
                debug["stage"] = "episode"

        debug["has_next"] = page.page_info.has_more
        debug.update(
            meta_ms=timings.get("meta_ms"),
            tracks_ms=timings.get("tracks_ms"),
            token_ms=timings.get("token_ms"),
        )
        page.debug = debug
        logger.debug(
            "spotify.page.fetched",
            extra={
                "content_type": str(detected.type),
                "items": len(page.tracks),
                "has_next": page.page_info.has_more,
                **{k: v for k, v in timings.items()},
            },
        )
        return page

    # =========================================================================
    # Payload → ImportPage
    # =========================================================================

    def _items(self, payload: Any, reason: str) -> list[Any]:
        items = payload.get("items") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise self._invalid_response("tracks", reason=reason)
        return items

    @staticmethod
    def _page_info(payload: dict[str, Any]) -> PageInfo:
        next_url = payload.get("next")
        cursor = next_url if isinstance(next_url, str) and next_url else None
        return PageInfo(cursor=cursor, has_more=cursor is not None)

    def _playlist_tracks(self, items: list[Any], meta: Any) -> list[NormalizedTrack]:
        fallback_thumb = _first_image_url(meta)
        out: list[NormalizedTrack] = []

        for item in items:
            track = item.get("track") if isinstance(item, dict) else None
            if not isinstance(track, dict) or track.get("is_local"):
                continue
            added_at = _text(item.get("added_at"))

            if track.get("type") == "episode":
                episode = normalize_episode_item(track, track.get("show") or {}, len(out), added_at)
                if episode is not None:
                    out.append(episode)
                continue

            artists = track.get("artists") if isinstance(track.get("artists"), list) else []
            artist = ", ".join(
                name.strip()
                for name in (a.get("name") if isinstance(a, dict) else None for a in artists)
                if isinstance(name, str) and name.strip()
            )
            album = track.get("album") if isinstance(track.get("album"), dict) else {}
            track_id = track.get("id") or track.get("uri")
            duration = track.get("duration_ms")

            # indices are page-local on purpose, ids come from Spotify anyway
            out.append(
                normalize_track(
                    {
                        "id": track_id,
                        "provider_track_id": track_id,
                        "title": _text(track.get("name")) or "",
                        "artist": artist,
                        "album": _text(album.get("name")),
                        "duration_ms": duration if _is_number(duration) else None,
                        "source_url": _spotify_url(track),
                        "thumbnail_url": select_album_thumb(album.get("images"), fallback_thumb),
                        "provider": Provider.SPOTIFY,
                        "kind": ContentKind.MUSIC,
                        "date_added": added_at,
                    },
                    len(out),
                    Provider.SPOTIFY,
                )
            )
        return out

    def _playlist_page(self, detected: DetectedContent, meta: Any, payload: Any) -> ImportPage:
        items = self._items(payload, "missing_items")
        meta = meta if isinstance(meta, dict) else {}
        return ImportPage(
            provider=Provider.SPOTIFY,
            playlist_id=detected.id,
            title=_text(meta.get("name")) or f"Spotify playlist {detected.id}",
            snapshot_id=_text(meta.get("snapshot_id")),
            source_url=detected.canonical_url,
            cover_url=_first_image_url(meta),
            total=_total(payload),
            tracks=self._playlist_tracks(items, meta),
            page_info=self._page_info(payload),
        )

    def _show_page(self, detected: DetectedContent, meta: Any, payload: Any) -> ImportPage:
        items = self._items(payload, "missing_episodes")
        meta = meta if isinstance(meta, dict) else {}
        page_info = self._page_info(payload)
        if not items and not page_info.cursor:
            raise AdapterError(
                ImportErrorCode.SHOW_EMPTY,
                details={"provider": str(Provider.SPOTIFY), "show_id": detected.id},
            )

        tracks = [
            episode
            for idx, raw in enumerate(items)
            if (episode := normalize_episode_item(raw, meta, idx)) is not None
        ]
        return ImportPage(
            provider=Provider.SPOTIFY,
            playlist_id=detected.id,
            title=_text(meta.get("name")) or f"Spotify show {detected.id}",
            source_url=detected.canonical_url,
            cover_url=_first_image_url(meta),
            total=_total(payload),
            tracks=tracks,
            page_info=page_info,
        )

    def _episode_page(self, detected: DetectedContent, payload: Any) -> ImportPage:
        show = payload.get("show") if isinstance(payload, dict) else None
        episode = normalize_episode_item(payload, show or {}, 0)
        if episode is None:
            raise AdapterError(
                ImportErrorCode.PODCAST_CONTENT,
                details={"provider": str(Provider.SPOTIFY), "episode_id": detected.id},
            )
        return ImportPage(
            provider=Provider.SPOTIFY,
            playlist_id=detected.id,
            title=_text(payload.get("name")) or f"Spotify episode {detected.id}",
            source_url=detected.canonical_url,
            cover_url=episode.thumbnail_url,
            total=1,
            tracks=[episode],
            page_info=PageInfo(),
        )

    async def prime(
        self,
        *,
        cancel_token: CancellationToken | None = None,
        fetch_client: IFetchClient | None = None,
    ) -> None:
        """Warm the token cache. Speculative, so failures are logged and swallowed."""
        try:
            await self.token_cache.acquire(
                self._resolve_fetch_client(fetch_client), cancel_token=cancel_token
            )
        except (AdapterError, ImportAbortedError) as e:
            logger.debug("spotify.token.prime_failed", extra={"error": str(e)})
