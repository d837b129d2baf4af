"""Provider and content-kind enums.

The provider set is CLOSED: adding a provider means adding a member here and a branch
in AdapterSet.for_provider (the type checker flags the missing match arm).
"""

from enum import StrEnum


class Provider(StrEnum):
    """Supported playlist providers."""

    SPOTIFY = "spotify"
    YOUTUBE = "youtube"
    SOUNDCLOUD = "soundcloud"


class ContentKind(StrEnum):
    """What a normalized track represents."""

    MUSIC = "music"
    PODCAST = "podcast"


class SpotifyContentType(StrEnum):
    """Spotify resources we can import (show/episode only behind the podcast flag)."""

    PLAYLIST = "playlist"
    SHOW = "show"
    EPISODE = "episode"


# Labels persisted by older clients or typed by users
PROVIDER_ALIASES: dict[str, Provider] = {
    "youtube music": Provider.YOUTUBE,
}


def coerce_provider(value: object) -> Provider | None:
    """Map a loose provider label (value or alias, any case) onto Provider.

    Returns None when it is not one of ours.
    """
    if isinstance(value, Provider):
        return value
    if not isinstance(value, str):
        return None
    label = value.strip().lower()
    try:
        return Provider(label)
    except ValueError:
        return PROVIDER_ALIASES.get(label)
