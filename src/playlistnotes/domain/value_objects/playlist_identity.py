"""Canonical playlist identities and cache keys across providers.

The same playlist can be pasted as a dozen different links. Consumers that cache or
persist imports key them by ``"<provider>:<playlist_id>"`` instead of the raw link.
"""

from dataclasses import dataclass
from typing import Any

from playlistnotes.domain.dtos import ImportMeta
from playlistnotes.domain.value_objects.provider_detection import (
    detect_provider,
    extract_episode_id,
    extract_playlist_id,
    extract_show_id,
    extract_soundcloud_playlist_id,
    extract_youtube_playlist_id,
)
from playlistnotes.domain.value_objects.providers import Provider, coerce_provider


@dataclass(frozen=True)
class PlaylistIdentity:
    """Provider + provider-side playlist id, plus the derived cache key."""

    provider: Provider
    playlist_id: str

    @property
    def key(self) -> str:
        return f"{self.provider.value}:{self.playlist_id}"


def parse_playlist_identity_from_url(raw: Any) -> PlaylistIdentity | None:
    """Resolve provider + playlist id from a pasted link when possible.

    Spotify shows and episodes resolve too (identity only, the podcast flag is about
    importing, not about recognizing a link we already imported).
    """
    if not isinstance(raw, str):
        return None

    provider = detect_provider(raw, enable_podcasts=True)
    playlist_id: str | None = None
    match provider:
        case Provider.SPOTIFY:
            playlist_id = (
                extract_playlist_id(raw) or extract_show_id(raw) or extract_episode_id(raw)
            )
        case Provider.YOUTUBE:
            playlist_id = extract_youtube_playlist_id(raw)
        case Provider.SOUNDCLOUD:
            playlist_id = extract_soundcloud_playlist_id(raw)
        case None:
            return None

    if not playlist_id:
        return None
    return PlaylistIdentity(provider=provider, playlist_id=playlist_id)


def build_playlist_cache_key(provider: Any, playlist_id: Any) -> str | None:
    """Build ``"provider:playlist_id"`` or None when either half is unusable."""
    normalized = coerce_provider(provider)
    if normalized is None or not isinstance(playlist_id, str):
        return None
    trimmed = playlist_id.strip()
    if not trimmed:
        return None
    return f"{normalized.value}:{trimmed}"


def derive_playlist_identity(
    meta: ImportMeta | dict[str, Any] | None, source_url: str | None = None
) -> PlaylistIdentity | None:
    """Derive an identity from import meta, falling back to parsing the source link.

    Args:
        meta: ImportMeta or its persisted dict form
        source_url: Link to parse when meta lacks provider/playlist id

    Returns:
        PlaylistIdentity or None
    """
    if isinstance(meta, dict):
        meta = ImportMeta.from_dict(meta)

    if meta is not None:
        provider = coerce_provider(meta.provider)
        playlist_id = meta.playlist_id.strip() if isinstance(meta.playlist_id, str) else ""
        if provider is not None and playlist_id:
            return PlaylistIdentity(provider=provider, playlist_id=playlist_id)

    if source_url:
        return parse_playlist_identity_from_url(source_url)
    return None
