"""Provider adapters: Spotify (Web API) plus paged mocks for YouTube and SoundCloud."""

from playlistnotes.infrastructure.adapters.paged_mock_adapter import (
    PagedMockAdapter,
    SoundcloudAdapter,
    YoutubeAdapter,
)
from playlistnotes.infrastructure.adapters.registry import AdapterSet
from playlistnotes.infrastructure.adapters.spotify_adapter import SpotifyAdapter
from playlistnotes.infrastructure.adapters.token_cache import TokenCache, TokenMemo

__all__ = [
    "AdapterSet",
    "PagedMockAdapter",
    "SoundcloudAdapter",
    "SpotifyAdapter",
    "TokenCache",
    "TokenMemo",
    "YoutubeAdapter",
]
