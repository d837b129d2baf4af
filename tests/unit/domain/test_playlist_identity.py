"""Tests for playlist identity and cache keys."""

from playlistnotes.domain.dtos import ImportMeta
from playlistnotes.domain.value_objects.playlist_identity import (
    PlaylistIdentity,
    build_playlist_cache_key,
    derive_playlist_identity,
    parse_playlist_identity_from_url,
)
from playlistnotes.domain.value_objects.providers import Provider, coerce_provider

PLAYLIST_ID = "37i9dQZF1DXcBWIGoYBM5M"


class TestPlaylistIdentity:
    """Test identity parsing and keys."""

    def test_key(self) -> None:
        """Test the cache key format."""
        assert PlaylistIdentity(Provider.SPOTIFY, PLAYLIST_ID).key == f"spotify:{PLAYLIST_ID}"

    def test_aliases(self) -> None:
        """Test provider aliases."""
        assert coerce_provider("YouTube Music") == Provider.YOUTUBE
        assert coerce_provider(" soundcloud ") == Provider.SOUNDCLOUD
        assert coerce_provider("tidal") is None
        assert coerce_provider(3) is None

    def test_parse_from_url(self) -> None:
        """Test all three providers resolve from links."""
        spotify = parse_playlist_identity_from_url(
            f"https://open.spotify.com/playlist/{PLAYLIST_ID}?si=1"
        )
        youtube = parse_playlist_identity_from_url("https://youtube.com/playlist?list=PLabc")
        soundcloud = parse_playlist_identity_from_url("https://soundcloud.com/u/sets/mix")

        assert spotify == PlaylistIdentity(Provider.SPOTIFY, PLAYLIST_ID)
        assert youtube == PlaylistIdentity(Provider.YOUTUBE, "PLabc")
        assert soundcloud == PlaylistIdentity(Provider.SOUNDCLOUD, "u/sets/mix")

    def test_parse_from_url_rejects(self) -> None:
        """Test unsupported input and YouTube links without a list id."""
        assert parse_playlist_identity_from_url(None) is None
        assert parse_playlist_identity_from_url("https://example.com") is None
        assert parse_playlist_identity_from_url("https://youtube.com/playlist") is None

    def test_build_cache_key(self) -> None:
        """Test cache key building and rejection."""
        assert build_playlist_cache_key("Spotify", f" {PLAYLIST_ID} ") == f"spotify:{PLAYLIST_ID}"
        assert build_playlist_cache_key("spotify", "  ") is None
        assert build_playlist_cache_key("unknown", "id") is None
        assert build_playlist_cache_key("youtube", None) is None
        assert build_playlist_cache_key("YouTube Music", "PLx") == "youtube:PLx"

    def test_derive_prefers_meta(self) -> None:
        """Test meta wins over the source link."""
        meta = ImportMeta(provider="youtube", playlist_id="PLmeta")
        identity = derive_playlist_identity(meta, "https://youtube.com/playlist?list=PLurl")

        assert identity == PlaylistIdentity(Provider.YOUTUBE, "PLmeta")

    def test_derive_from_dict_and_url(self) -> None:
        """Test persisted dict meta and link fallback."""
        assert derive_playlist_identity(
            {"provider": "soundcloud", "playlistId": "u/sets/a"}
        ) == PlaylistIdentity(Provider.SOUNDCLOUD, "u/sets/a")
        assert derive_playlist_identity(
            ImportMeta(provider="spotify"), f"spotify:playlist:{PLAYLIST_ID}"
        ) == PlaylistIdentity(Provider.SPOTIFY, PLAYLIST_ID)
        assert derive_playlist_identity(None) is None
