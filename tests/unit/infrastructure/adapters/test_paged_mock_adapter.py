"""Unit tests for the paginated mock adapters and the adapter registry."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from playlistnotes.config import ImportSettings, Settings
from playlistnotes.domain.entities.error_codes import ImportErrorCode
from playlistnotes.domain.exceptions import AdapterError, ImportAbortedError
from playlistnotes.domain.value_objects.cancellation import CancellationToken
from playlistnotes.domain.value_objects.providers import Provider
from playlistnotes.infrastructure.adapters import (
    AdapterSet,
    PagedMockAdapter,
    SoundcloudAdapter,
    SpotifyAdapter,
    YoutubeAdapter,
)
from playlistnotes.infrastructure.adapters.demo_data import get_demo_playlist
from playlistnotes.infrastructure.adapters.paged_mock_adapter import (
    build_mock_catalog,
    parse_page_cursor,
)

YOUTUBE_URL = "https://www.youtube.com/playlist?list=PL123"


class TestBuildMockCatalog:
    """Test deterministic catalog expansion."""

    def test_cycles_seeds(self) -> None:
        """Test seeds repeat with a mock set suffix after the first cycle."""
        seeds = [{"title": "A", "artist": "X"}, {"title": "B"}]

        catalog = build_mock_catalog("youtube", seeds, total=5)

        assert [item["id"] for item in catalog] == [f"youtube-mock-{n}" for n in range(1, 6)]
        assert [item["title"] for item in catalog] == [
            "A",
            "B",
            "A - mock set 2",
            "B - mock set 2",
            "A - mock set 3",
        ]
        assert catalog[1]["artist"] == "Mock Artist 2"
        assert catalog[0]["provider_track_id"] == "youtube-raw-1"
        assert catalog[0]["source_url"] == "https://example.com/youtube/track-1"

    def test_generated_dates(self) -> None:
        """Test dates default to consecutive days from 2024-01-01."""
        catalog = build_mock_catalog("soundcloud", [{"title": "A"}], total=2)

        assert catalog[0]["date_added"] == "2024-01-01T00:00:00.000Z"
        assert catalog[1]["date_added"] == "2024-01-02T00:00:00.000Z"

    def test_seed_date_kept(self) -> None:
        """Test a valid seed date wins."""
        catalog = build_mock_catalog("x", [{"dateAdded": "2023-05-05T00:00:00Z"}], total=1)

        assert catalog[0]["date_added"] == "2023-05-05T00:00:00.000Z"

    def test_empty_seeds(self) -> None:
        """Test an empty seed list still produces tracks."""
        catalog = build_mock_catalog("", [], total=1)

        assert catalog[0]["id"] == "mock-mock-1"
        assert catalog[0]["title"] == "Untitled Track"


class TestParsePageCursor:
    """Test cursor parsing."""

    @pytest.mark.parametrize(
        ("cursor", "expected"),
        [(None, 0), ("", 0), ("page:3", 3), ("x-page:12", 12), ("garbage", 0)],
    )
    def test_parse(self, cursor, expected) -> None:
        """Test page:<n> cursors and defaults."""
        assert parse_page_cursor(cursor) == expected


class TestPagedMockAdapter:
    """Test PagedMockAdapter pagination."""

    @pytest.fixture
    def adapter(self) -> PagedMockAdapter:
        demo = get_demo_playlist(Provider.YOUTUBE)
        return PagedMockAdapter(
            Provider.YOUTUBE,
            title=demo.title,
            tracks=demo.tracks,
            total=25,
            page_size=10,
            delay_seconds=0,
        )

    async def test_first_page(self, adapter) -> None:
        """Test the first page of the catalog."""
        page = await adapter.import_playlist(url=YOUTUBE_URL)

        assert page.provider == "youtube"
        assert page.playlist_id == "youtube-mock-playlist"
        assert page.snapshot_id == "youtube-mock-snapshot-25"
        assert page.title == "Mock YouTube Playlist"
        assert page.source_url == YOUTUBE_URL
        assert page.total == 25
        assert len(page.tracks) == 10
        assert page.tracks[0].id == "youtube-mock-1"
        assert page.tracks[0].provider == "youtube"
        assert page.page_info.cursor == "page:1"
        assert page.page_info.has_more is True

    async def test_walks_all_pages(self, adapter) -> None:
        """Test following cursors yields every track exactly once."""
        ids: list[str] = []
        cursor = None
        while True:
            page = await adapter.import_playlist(url=YOUTUBE_URL, cursor=cursor)
            ids.extend(track.id for track in page.tracks)
            if not page.page_info.has_more:
                break
            cursor = page.page_info.cursor

        assert ids == [f"youtube-mock-{n}" for n in range(1, 26)]
        assert page.page_info.cursor is None

    async def test_cover_url_must_be_string(self) -> None:
        """Test non-string covers are dropped."""
        adapter = PagedMockAdapter(
            Provider.SOUNDCLOUD, title="t", tracks=[], total=1, delay_seconds=0, cover_url=42
        )

        page = await adapter.import_playlist()

        assert page.cover_url is None
        assert page.source_url == ""

    async def test_cancelled_before_start(self, adapter) -> None:
        """Test a cancelled token aborts immediately."""
        token = CancellationToken()
        token.cancel()

        with pytest.raises(ImportAbortedError):
            await adapter.import_playlist(url=YOUTUBE_URL, cancel_token=token)

    async def test_cancel_during_latency(self) -> None:
        """Test cancel interrupts the simulated latency."""
        adapter = PagedMockAdapter(
            Provider.YOUTUBE, title="t", tracks=[], total=5, delay_seconds=10
        )
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.01, token.cancel)

        with pytest.raises(ImportAbortedError):
            await adapter.import_playlist(url=YOUTUBE_URL, cancel_token=token)

    async def test_injected_sleep(self) -> None:
        """Test the latency goes through the injected sleep."""
        sleep = AsyncMock()
        adapter = PagedMockAdapter(
            Provider.YOUTUBE, title="t", tracks=[], total=1, delay_seconds=0.5, sleep=sleep
        )

        await adapter.import_playlist(url=YOUTUBE_URL)

        sleep.assert_awaited_once_with(0.5)

    @pytest.mark.parametrize(
        ("status", "code"),
        [
            (429, ImportErrorCode.RATE_LIMITED),
            (401, ImportErrorCode.PRIVATE_PLAYLIST),
            (403, ImportErrorCode.PRIVATE_PLAYLIST),
            (500, ImportErrorCode.UNKNOWN),
        ],
    )
    async def test_fetch_failure_is_mapped(self, fake_http_error, status, code) -> None:
        """Test raw failures during the fetch are classified."""
        sleep = AsyncMock(side_effect=fake_http_error(status))
        adapter = PagedMockAdapter(
            Provider.SOUNDCLOUD, title="t", tracks=[], total=1, sleep=sleep
        )

        with pytest.raises(AdapterError) as exc_info:
            await adapter.import_playlist(url="https://soundcloud.com/u/sets/s")

        assert exc_info.value.code == code
        assert exc_info.value.details == {"provider": "soundcloud", "status": status}


class TestDemoAdapters:
    """Test the concrete mock adapters and the registry."""

    def test_settings_drive_paging(self) -> None:
        """Test ImportSettings sizes the catalog."""
        adapter = YoutubeAdapter(
            ImportSettings(mock_page_size=5, mock_total_tracks=12, mock_delay_seconds=0)
        )

        assert adapter.provider == Provider.YOUTUBE
        assert adapter.page_size == 5
        assert adapter.snapshot_id == "youtube-mock-snapshot-12"
        assert SoundcloudAdapter().provider == Provider.SOUNDCLOUD

    def test_registry(self, settings: Settings) -> None:
        """Test from_settings and for_provider."""
        adapters = AdapterSet.from_settings(settings)

        assert isinstance(adapters.for_provider(Provider.SPOTIFY), SpotifyAdapter)
        assert isinstance(adapters.for_provider(Provider.YOUTUBE), YoutubeAdapter)
        assert isinstance(adapters.for_provider(Provider.SOUNDCLOUD), SoundcloudAdapter)
        assert [a.provider for a in adapters.all()] == list(Provider)
