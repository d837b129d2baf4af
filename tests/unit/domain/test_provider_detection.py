"""Tests for provider detection of pasted playlist links."""

import pytest

from playlistnotes.domain.value_objects.provider_detection import (
    build_canonical_spotify_url,
    detect_provider,
    detect_spotify_content,
    extract_episode_id,
    extract_playlist_id,
    extract_show_id,
    extract_soundcloud_playlist_id,
    extract_youtube_playlist_id,
)
from playlistnotes.domain.value_objects.providers import (
    Provider,
    SpotifyContentType,
    coerce_provider,
)

PLAYLIST_ID = "37i9dQZF1DXcBWIGoYBM5M"
SHOW_ID = "4rOoJ6Egrf8K2IrywzwOMk"
EPISODE_ID = "512ojhOuo1ktJprKbVcKyQ"


class TestExtractPlaylistId:
    """Test Spotify playlist id extraction across link shapes."""

    @pytest.mark.parametrize(
        "raw",
        [
            f"https://open.spotify.com/playlist/{PLAYLIST_ID}",
            f"https://open.spotify.com/playlist/{PLAYLIST_ID}?si=abc123",
            f"https://play.spotify.com/playlist/{PLAYLIST_ID}",
            f"https://open.spotify.com/embed/playlist/{PLAYLIST_ID}",
            f"https://open.spotify.com/user/someone/playlist/{PLAYLIST_ID}",
            f"https://open.spotify.com/intl-de/playlist/{PLAYLIST_ID}",
            f"open.spotify.com/playlist/{PLAYLIST_ID}",
            f"  https://OPEN.SPOTIFY.COM/PLAYLIST/{PLAYLIST_ID}  ",
            f"spotify:playlist:{PLAYLIST_ID}",
            f"spotify:user:someone:playlist:{PLAYLIST_ID}",
            f"spotify://playlist/{PLAYLIST_ID}",
        ],
    )
    def test_supported_shapes(self, raw: str) -> None:
        """Test every supported link shape yields the same id."""
        assert extract_playlist_id(raw) == PLAYLIST_ID

    def test_keeps_id_case(self) -> None:
        """Test ids are case-sensitive and returned untouched."""
        assert extract_playlist_id(f"spotify:playlist:{PLAYLIST_ID}") == PLAYLIST_ID

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            42,
            "",
            "   ",
            "https://open.spotify.com/playlist/short",
            f"https://open.spotify.com/playlist/{PLAYLIST_ID}x",
            "https://open.spotify.com/playlist/37i9dQZF1DXcBWIGoYBM5-",
            f"https://evil.example.com/playlist/{PLAYLIST_ID}",
            f"https://open.spotify.com/album/{PLAYLIST_ID}",
            f"spotify:album:{PLAYLIST_ID}",
            "https://open.spotify.com:abc/playlist/x",
            "htp:/??",
        ],
    )
    def test_rejects_garbage(self, raw: object) -> None:
        """Test anything that isn't a playlist link returns None without raising."""
        assert extract_playlist_id(raw) is None


class TestDetectSpotifyContent:
    """Test Spotify resource detection."""

    def test_playlist(self) -> None:
        """Test playlist link yields canonical URL."""
        content = detect_spotify_content(f"spotify:playlist:{PLAYLIST_ID}")

        assert content is not None
        assert content.type == SpotifyContentType.PLAYLIST
        assert content.id == PLAYLIST_ID
        assert content.canonical_url == f"https://open.spotify.com/playlist/{PLAYLIST_ID}"
        assert content.is_podcast is False

    def test_show_and_episode_are_podcasts(self) -> None:
        """Test shows and episodes are flagged as podcast content."""
        show = detect_spotify_content(f"https://open.spotify.com/show/{SHOW_ID}")
        episode = detect_spotify_content(f"https://open.spotify.com/episode/{EPISODE_ID}")

        assert show is not None and show.type == SpotifyContentType.SHOW
        assert episode is not None and episode.type == SpotifyContentType.EPISODE
        assert show.is_podcast and episode.is_podcast
        assert extract_show_id(f"spotify:show:{SHOW_ID}") == SHOW_ID
        assert extract_episode_id(f"spotify:episode:{EPISODE_ID}") == EPISODE_ID

    def test_build_canonical_url(self) -> None:
        """Test canonical URL format."""
        assert (
            build_canonical_spotify_url(SpotifyContentType.SHOW, SHOW_ID)
            == f"https://open.spotify.com/show/{SHOW_ID}"
        )

    def test_non_spotify_returns_none(self) -> None:
        """Test non-Spotify input."""
        assert detect_spotify_content("https://youtube.com/playlist?list=PL123") is None


class TestDetectProvider:
    """Test top-level provider classification."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (f"https://open.spotify.com/playlist/{PLAYLIST_ID}", Provider.SPOTIFY),
            ("https://www.youtube.com/playlist?list=PL1234567890", Provider.YOUTUBE),
            ("https://www.youtube.com/watch?v=abc&list=PL1234567890", Provider.YOUTUBE),
            ("https://music.youtube.com/playlist?list=PLabc", Provider.YOUTUBE),
            ("youtube.com/playlist", Provider.YOUTUBE),
            ("https://soundcloud.com/artist/sets/my-set", Provider.SOUNDCLOUD),
            ("https://m.soundcloud.com/artist/sets/my-set", Provider.SOUNDCLOUD),
        ],
    )
    def test_detects(self, raw: str, expected: Provider) -> None:
        """Test supported links map to their provider."""
        assert detect_provider(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            123,
            "",
            "not a url",
            "https://www.youtube.com/watch?v=abc",
            "https://soundcloud.com/artist/track-name",
            "https://example.com/playlist?list=PL1",
            "https://notyoutube.com/playlist?list=PL1",
        ],
    )
    def test_unsupported_returns_none(self, raw: object) -> None:
        """Test unsupported input returns None and never raises."""
        assert detect_provider(raw) is None

    def test_podcast_links_need_flag(self) -> None:
        """Test show/episode links are only accepted with podcasts enabled."""
        show = f"https://open.spotify.com/show/{SHOW_ID}"
        episode = f"spotify:episode:{EPISODE_ID}"

        assert detect_provider(show) is None
        assert detect_provider(episode) is None
        assert detect_provider(show, enable_podcasts=True) == Provider.SPOTIFY
        assert detect_provider(episode, enable_podcasts=True) == Provider.SPOTIFY


class TestSecondaryExtractors:
    """Test YouTube/SoundCloud identity extraction."""

    def test_youtube_list_param(self) -> None:
        """Test YouTube list parameter extraction."""
        assert extract_youtube_playlist_id("https://youtube.com/playlist?list=PLxyz") == "PLxyz"
        assert extract_youtube_playlist_id("https://youtu.be/abc?list=PLq") == "PLq"
        assert extract_youtube_playlist_id("https://youtube.com/watch?v=abc") is None
        assert extract_youtube_playlist_id("https://example.com/?list=PLxyz") is None

    def test_soundcloud_path(self) -> None:
        """Test SoundCloud path becomes the playlist id."""
        assert (
            extract_soundcloud_playlist_id("https://soundcloud.com/user/sets/name/")
            == "user/sets/name"
        )
        assert extract_soundcloud_playlist_id("https://example.com/user/sets/name") is None


class TestCoerceProvider:
    """Test loose provider labels."""

    def test_coerce(self) -> None:
        """Test labels are trimmed and lowercased."""
        assert coerce_provider(" Spotify ") == Provider.SPOTIFY
        assert coerce_provider(Provider.YOUTUBE) == Provider.YOUTUBE
        assert coerce_provider("deezer") is None
        assert coerce_provider(None) is None
