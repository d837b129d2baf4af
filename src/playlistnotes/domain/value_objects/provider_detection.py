"""Provider detection - classify a pasted link as a supported playlist/show or reject it.

Hey future me - NOTHING in here may raise! Detection runs on every keystroke in the
import box, so garbage in (None, ints, "htp:/??") must simply return None.

Spotify accepts a zoo of link shapes for the same playlist:
- https://open.spotify.com/playlist/<id>            (canonical)
- https://play.spotify.com/playlist/<id>            (old web player)
- https://open.spotify.com/embed/playlist/<id>      (embed)
- https://open.spotify.com/user/<owner>/playlist/<id> (legacy owner-prefixed)
- https://open.spotify.com/intl-de/playlist/<id>    (locale-prefixed)
- open.spotify.com/playlist/<id>                    (no scheme)
- spotify:playlist:<id> / spotify:user:<owner>:playlist:<id> (URI scheme)
- spotify://playlist/<id>                           (deep link)

IDs are always 22 base62 characters. We keep their case (Spotify IDs ARE case-sensitive)
but compare path keywords case-insensitively.
"""

import re
from dataclasses import dataclass
from urllib.parse import SplitResult, parse_qs, urlsplit

from playlistnotes.domain.value_objects.providers import Provider, SpotifyContentType

SPOTIFY_HOSTS: frozenset[str] = frozenset({"open.spotify.com", "play.spotify.com"})
SPOTIFY_ID_LENGTH = 22
_SPOTIFY_ID_PATTERN = re.compile(r"^[0-9a-zA-Z]+$")
_URL_SCHEME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z\d+\-.]*:")
_HTTP_SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)

CANONICAL_SPOTIFY_BASE_URL = "https://open.spotify.com/"


@dataclass(frozen=True)
class DetectedContent:
    """A Spotify resource recognized in a pasted link."""

    type: SpotifyContentType
    id: str
    canonical_url: str

    @property
    def is_podcast(self) -> bool:
        return self.type in (SpotifyContentType.SHOW, SpotifyContentType.EPISODE)


def _sanitize_spotify_id(candidate: str | None) -> str | None:
    if not candidate:
        return None
    trimmed = candidate.strip()
    if len(trimmed) != SPOTIFY_ID_LENGTH:
        return None
    return trimmed if _SPOTIFY_ID_PATTERN.match(trimmed) else None


def _safe_split(raw: str) -> SplitResult | None:
    try:
        parsed = urlsplit(raw)
        # Touch the port so malformed authorities ("host:abc") fail here, not later
        parsed.port
    except ValueError:
        return None
    return parsed


def _extract_spotify_id(raw: object, kind: SpotifyContentType) -> str | None:
    """Extract a Spotify ID of the given kind from any supported link shape."""
    if not isinstance(raw, str):
        return None

    value = raw.strip()
    if not value:
        return None

    lowered = value.lower()

    if lowered.startswith("spotify://"):
        remainder = value[len("spotify://") :].lstrip("/")
        return _extract_spotify_id(f"{CANONICAL_SPOTIFY_BASE_URL}{remainder}", kind)

    if lowered.startswith("spotify:"):
        parts = [part for part in value.split(":") if part]
        if len(parts) >= 3 and parts[-2].lower() == kind:
            return _sanitize_spotify_id(parts[-1])
        return None

    candidate_url = value if _HTTP_SCHEME_PATTERN.match(value) else f"https://{value}"
    parsed = _safe_split(candidate_url)
    if parsed is None:
        return None

    host = (parsed.hostname or "").lower()
    if host not in SPOTIFY_HOSTS:
        return None

    raw_segments = [segment for segment in parsed.path.split("/") if segment]
    if not raw_segments:
        return None
    segments = [segment.lower() for segment in raw_segments]

    def segment_at(index: int) -> str | None:
        return raw_segments[index] if index < len(raw_segments) else None

    # /{kind}/{id}
    if segments[0] == kind:
        return _sanitize_spotify_id(segment_at(1))

    # /intl-xx/{kind}/{id}
    if segments[0].startswith("intl-") and len(segments) > 1 and segments[1] == kind:
        return _sanitize_spotify_id(segment_at(2))

    # /user/{owner}/playlist/{id}
    if (
        kind == SpotifyContentType.PLAYLIST
        and segments[0] == "user"
        and len(segments) > 2
        and segments[2] == "playlist"
    ):
        return _sanitize_spotify_id(segment_at(3))

    # /embed/{kind}/{id}
    if segments[0] == "embed" and len(segments) > 1 and segments[1] == kind:
        return _sanitize_spotify_id(segment_at(2))

    return None


def extract_playlist_id(raw: object) -> str | None:
    """Extract a Spotify playlist ID, or None."""
    return _extract_spotify_id(raw, SpotifyContentType.PLAYLIST)


def extract_show_id(raw: object) -> str | None:
    """Extract a Spotify show ID, or None."""
    return _extract_spotify_id(raw, SpotifyContentType.SHOW)


def extract_episode_id(raw: object) -> str | None:
    """Extract a Spotify episode ID, or None."""
    return _extract_spotify_id(raw, SpotifyContentType.EPISODE)


def build_canonical_spotify_url(kind: SpotifyContentType, content_id: str) -> str:
    return f"{CANONICAL_SPOTIFY_BASE_URL}{kind.value}/{content_id}"


def detect_spotify_content(raw: object) -> DetectedContent | None:
    """Detect which Spotify resource a link points at.

    Playlists win over shows, shows over episodes. The podcast flag is NOT checked here,
    callers decide whether shows/episodes are allowed.

    Args:
        raw: Anything the user pasted

    Returns:
        DetectedContent or None if this isn't a Spotify playlist/show/episode link
    """
    extractors = (
        (SpotifyContentType.PLAYLIST, extract_playlist_id),
        (SpotifyContentType.SHOW, extract_show_id),
        (SpotifyContentType.EPISODE, extract_episode_id),
    )
    for kind, extractor in extractors:
        content_id = extractor(raw)
        if content_id:
            return DetectedContent(
                type=kind,
                id=content_id,
                canonical_url=build_canonical_spotify_url(kind, content_id),
            )
    return None


def _parse_loose_url(raw: object) -> SplitResult | None:
    """Parse a URL, assuming https:// when the scheme is missing."""
    if not isinstance(raw, str):
        return None
    trimmed = raw.strip()
    if not trimmed:
        return None
    candidate = trimmed if _URL_SCHEME_PATTERN.match(trimmed) else f"https://{trimmed}"
    return _safe_split(candidate)


def _host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith(f".{domain}")


def _is_youtube_host(host: str) -> bool:
    return _host_matches(host, "youtube.com") or _host_matches(host, "youtu.be")


def extract_youtube_playlist_id(raw: object) -> str | None:
    """Return the ``list`` query parameter of a YouTube link, or None."""
    parsed = _parse_loose_url(raw)
    if parsed is None or not _is_youtube_host((parsed.hostname or "").lower()):
        return None
    values = parse_qs(parsed.query).get("list") or []
    for value in values:
        if value.strip():
            return value.strip()
    return None


def _is_youtube_playlist(parsed: SplitResult) -> bool:
    if not _is_youtube_host((parsed.hostname or "").lower()):
        return False
    has_list = any(value.strip() for value in parse_qs(parsed.query).get("list", []))
    return has_list or "/playlist" in parsed.path.lower()


def _soundcloud_segments(parsed: SplitResult) -> list[str]:
    if not _host_matches((parsed.hostname or "").lower(), "soundcloud.com"):
        return []
    return [segment for segment in parsed.path.split("/") if segment]


def extract_soundcloud_playlist_id(raw: object) -> str | None:
    """Return the normalized path of a SoundCloud link (``user/sets/name``), or None."""
    parsed = _parse_loose_url(raw)
    if parsed is None:
        return None
    segments = _soundcloud_segments(parsed)
    return "/".join(segments) or None


def _is_soundcloud_playlist(parsed: SplitResult) -> bool:
    segments = [segment.lower() for segment in _soundcloud_segments(parsed)]
    return "sets" in segments or "playlist" in segments


# Yo, this is THE entry point used by the import session. Order matters only for
# readability - the three host families never overlap.
def detect_provider(raw: object, *, enable_podcasts: bool = False) -> Provider | None:
    """Classify a pasted link.

    Args:
        raw: Arbitrary user input (non-strings are fine and return None)
        enable_podcasts: Accept Spotify shows/episodes in addition to playlists

    Returns:
        The Provider the link belongs to, or None for "no match"
    """
    if not isinstance(raw, str):
        return None
    value = raw.strip()
    if not value:
        return None

    content = detect_spotify_content(value)
    if content is not None:
        if content.is_podcast and not enable_podcasts:
            return None
        return Provider.SPOTIFY

    parsed = _parse_loose_url(value)
    if parsed is None:
        return None
    if _is_youtube_playlist(parsed):
        return Provider.YOUTUBE
    if _is_soundcloud_playlist(parsed):
        return Provider.SOUNDCLOUD
    return None
