"""The closed set of provider adapters."""

from dataclasses import dataclass
from typing import assert_never

from playlistnotes.config import Settings
from playlistnotes.domain.ports import IFetchClient, IPlaylistAdapter
from playlistnotes.domain.value_objects.providers import Provider
from playlistnotes.infrastructure.adapters.paged_mock_adapter import (
    SoundcloudAdapter,
    YoutubeAdapter,
)
from playlistnotes.infrastructure.adapters.spotify_adapter import SpotifyAdapter


# Yo, adding a provider means: new Provider member, new field here, new case below. The
# assert_never makes the type checker yell if one of the three is forgotten.
@dataclass
class AdapterSet:
    """One adapter per Provider."""

    spotify: IPlaylistAdapter
    youtube: IPlaylistAdapter
    soundcloud: IPlaylistAdapter

    @classmethod
    def from_settings(
        cls, settings: Settings, fetch_client: IFetchClient | None = None
    ) -> "AdapterSet":
        """Build the default adapters (real Spotify, paged mocks for the rest)."""
        return cls(
            spotify=SpotifyAdapter(
                settings.spotify,
                enable_podcasts=settings.imports.enable_podcasts,
                fetch_client=fetch_client,
            ),
            youtube=YoutubeAdapter(settings.imports),
            soundcloud=SoundcloudAdapter(settings.imports),
        )

    def for_provider(self, provider: Provider) -> IPlaylistAdapter:
        match provider:
            case Provider.SPOTIFY:
                return self.spotify
            case Provider.YOUTUBE:
                return self.youtube
            case Provider.SOUNDCLOUD:
                return self.soundcloud
            case _:
                assert_never(provider)

    def all(self) -> list[IPlaylistAdapter]:
        return [self.spotify, self.youtube, self.soundcloud]
