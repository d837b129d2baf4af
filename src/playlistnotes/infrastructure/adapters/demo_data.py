"""Seed/demo playlists per provider.

Used twice: as the seed catalog of the paged mock adapters, and as the bounded dataset
ImportSession falls back to when a real import fails.
"""

from dataclasses import dataclass, field
from typing import Any

from playlistnotes.domain.value_objects.providers import Provider


@dataclass(frozen=True)
class DemoPlaylist:
    title: str
    tracks: list[dict[str, Any]] = field(default_factory=list)


DEMO_PLAYLISTS: dict[Provider, DemoPlaylist] = {
    Provider.SPOTIFY: DemoPlaylist(
        title="Mock Spotify Playlist",
        tracks=[
            {"id": "sp-1", "title": "SP Track One", "artist": "Artist A"},
            {"id": "sp-2", "title": "SP Track Two", "artist": "Artist B"},
            {"id": "sp-3", "title": "SP Track Three", "artist": "Artist C"},
        ],
    ),
    Provider.YOUTUBE: DemoPlaylist(
        title="Mock YouTube Playlist",
        tracks=[
            {"id": "yt-1", "title": "YT Video One", "artist": "Channel A"},
            {"id": "yt-2", "title": "YT Video Two", "artist": "Channel B"},
            {"id": "yt-3", "title": "YT Video Three", "artist": "Channel C"},
        ],
    ),
    Provider.SOUNDCLOUD: DemoPlaylist(
        title="Mock SoundCloud Playlist",
        tracks=[
            {"id": "sc-1", "title": "SC Track One", "artist": "User A"},
            {"id": "sc-2", "title": "SC Track Two", "artist": "User B"},
            {"id": "sc-3", "title": "SC Track Three", "artist": "User C"},
        ],
    ),
}


def get_demo_playlist(provider: Provider) -> DemoPlaylist:
    return DEMO_PLAYLISTS[provider]
