"""Shared test doubles (fetch client, adapters) and settings fixtures."""

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from playlistnotes.config import ImportSettings, Settings, SpotifySettings
from playlistnotes.domain.dtos import ImportPage, PageInfo
from playlistnotes.domain.ports import IFetchClient, IPlaylistAdapter
from playlistnotes.domain.value_objects.cancellation import CancellationToken
from playlistnotes.domain.value_objects.providers import Provider
from playlistnotes.domain.value_objects.track_normalization import normalize_track
from playlistnotes.infrastructure.adapters.registry import AdapterSet

TOKEN_ENDPOINT = "http://testserver/api/spotify/token"


class FakeHttpError(Exception):
    """Error shaped like a failed HTTP response (status attribute only)."""

    def __init__(self, status: int) -> None:
        super().__init__(f"HTTP {status}")
        self.status = status


class FakeFetchClient(IFetchClient):
    """IFetchClient double routing URLs to canned responses.

    Routes are matched by URL prefix (longest first). A route value may be a JSON payload,
    an exception instance (raised), a list (consumed one entry per call) or a callable
    taking the URL. With a gate set, calls wait for it and cancelled ones land in
    ``cancelled``.
    """

    def __init__(self, routes: dict[str, Any] | None = None) -> None:
        self.routes: dict[str, Any] = dict(routes or {})
        self.calls: list[tuple[str, dict[str, str] | None]] = []
        self.gate: asyncio.Event | None = None
        self.cancelled: list[str] = []

    def urls(self, prefix: str = "") -> list[str]:
        return [url for url, _ in self.calls if url.startswith(prefix)]

    def _resolve(self, url: str) -> Any:
        for prefix in sorted(self.routes, key=len, reverse=True):
            if url.startswith(prefix):
                value = self.routes[prefix]
                if isinstance(value, list):
                    value = value.pop(0) if len(value) > 1 else value[0]
                if callable(value) and not isinstance(value, BaseException):
                    value = value(url)
                return value
        raise FakeHttpError(404)

    async def get_json(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> Any:
        self.calls.append((url, headers))
        if self.gate is not None:
            try:
                await self.gate.wait()
            except asyncio.CancelledError:
                self.cancelled.append(url)
                raise
        value = self._resolve(url)
        if isinstance(value, BaseException):
            raise value
        return value


@pytest.fixture
def make_fetch_client() -> Callable[..., FakeFetchClient]:
    """Factory for FakeFetchClient instances."""
    return FakeFetchClient


@pytest.fixture
def fake_http_error() -> type[FakeHttpError]:
    """The FakeHttpError class."""
    return FakeHttpError


@pytest.fixture
def token_endpoint() -> str:
    return TOKEN_ENDPOINT


@pytest.fixture
def spotify_settings() -> SpotifySettings:
    """Spotify settings pointing the adapter at the test token endpoint."""
    return SpotifySettings(
        client_id="test-client-id",
        client_secret="test-client-secret",
        token_endpoint=TOKEN_ENDPOINT,
    )


@pytest.fixture
def settings(spotify_settings: SpotifySettings) -> Settings:
    """Application settings with instant mock adapters."""
    return Settings(
        spotify=spotify_settings,
        imports=ImportSettings(mock_delay_seconds=0),
    )


class ScriptedAdapter(IPlaylistAdapter):
    """IPlaylistAdapter double returning (or raising) scripted results in order.

    With ``gate`` set every call waits for it (through the cancel token, so cancellation
    works the same way it does for real adapters).
    """

    def __init__(self, provider: Provider, results: list[Any] | None = None) -> None:
        self._provider = provider
        self.results: list[Any] = list(results or [])
        self.calls: list[dict[str, Any]] = []
        self.gate: asyncio.Event | None = None
        self.primed = 0

    @property
    def provider(self) -> Provider:
        return self._provider

    async def import_playlist(
        self,
        *,
        url: str | None = None,
        cursor: str | None = None,
        cancel_token: CancellationToken | None = None,
        fetch_client: IFetchClient | None = None,
    ) -> ImportPage:
        self.calls.append({"url": url, "cursor": cursor, "cancel_token": cancel_token})
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if self.gate is not None:
            if cancel_token is not None:
                await cancel_token.run(self.gate.wait())
            else:
                await self.gate.wait()
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        if isinstance(result, BaseException):
            raise result
        return result

    async def prime(
        self,
        *,
        cancel_token: CancellationToken | None = None,
        fetch_client: IFetchClient | None = None,
    ) -> None:
        self.primed += 1


def make_page(
    provider: str,
    ids: list[str],
    *,
    cursor: str | None = None,
    title: str = "Scripted Playlist",
    total: int | None = None,
    playlist_id: str = "pl-1",
) -> ImportPage:
    """Build an ImportPage with one normalized track per id."""
    return ImportPage(
        provider=provider,
        playlist_id=playlist_id,
        title=title,
        source_url=f"https://example.com/{provider}/{playlist_id}",
        tracks=[
            normalize_track({"id": track_id, "title": f"Song {track_id}"}, idx, provider)
            for idx, track_id in enumerate(ids)
        ],
        page_info=PageInfo(cursor=cursor, has_more=cursor is not None),
        total=total,
        snapshot_id="snap-1",
    )


@pytest.fixture
def scripted_adapters() -> AdapterSet:
    """AdapterSet of ScriptedAdapters (empty scripts, fill them in the test)."""
    return AdapterSet(
        spotify=ScriptedAdapter(Provider.SPOTIFY),
        youtube=ScriptedAdapter(Provider.YOUTUBE),
        soundcloud=ScriptedAdapter(Provider.SOUNDCLOUD),
    )


@pytest.fixture
def page_factory() -> Callable[..., ImportPage]:
    return make_page
