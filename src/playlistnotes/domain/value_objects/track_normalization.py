"""Track normalization - turn whatever an upstream hands us into a NormalizedTrack.

Hey future me - normalize_track() NEVER raises. An empty dict, None, a half-filled
mapping or an already-normalized NormalizedTrack all come out as a well-formed track.
It is idempotent: normalizing a normalized track changes nothing.

Raw input may use either spelling for fields (the mock catalogs and tests use the
camelCase JSON shape, Python callers use snake_case), so every lookup checks both.
"""

import math
from collections.abc import Mapping
from dataclasses import asdict
from datetime import UTC, datetime
from typing import Any

from playlistnotes.domain.dtos import NormalizedTrack, PageInfo
from playlistnotes.domain.value_objects.providers import ContentKind

# Any of these may carry the "added to playlist" instant
_DATE_FIELDS = ("date_added", "dateAdded", "added_at", "addedAt")


def _pick(source: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        value = source.get(name)
        if value is not None:
            return value
    return None


def _sanitize_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _optional_text(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _format_iso(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    moment = moment.astimezone(UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def coerce_iso_string(value: Any) -> str | None:
    """Coerce a string, epoch-millis number or datetime into an ISO-8601 UTC string.

    Args:
        value: Raw "added" value from any upstream

    Returns:
        ISO string like ``2024-01-02T03:04:05.000Z`` or None when unparsable
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, datetime):
            return _format_iso(value)
        if isinstance(value, (int, float)):
            if not math.isfinite(value):
                return None
            return _format_iso(datetime.fromtimestamp(math.trunc(value) / 1000, tz=UTC))
        if isinstance(value, str):
            trimmed = value.strip()
            if not trimmed:
                return None
            # fromisoformat() understands "Z" since 3.11, plain dates too
            return _format_iso(datetime.fromisoformat(trimmed))
    except (ValueError, OverflowError, OSError):
        return None
    return None


def _coerce_duration(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return int(value)


def _as_mapping(raw: Any) -> Mapping[str, Any]:
    if isinstance(raw, NormalizedTrack):
        return asdict(raw)
    if isinstance(raw, Mapping):
        return raw
    return {}


def normalize_track(raw: Any, index: int, provider: str | None) -> NormalizedTrack:
    """Normalize one raw track/episode record.

    Args:
        raw: Mapping, NormalizedTrack or anything else (treated as empty)
        index: Page-local index, used for synthesized ids and titles
        provider: Provider tag of the adapter producing this track

    Returns:
        A NormalizedTrack satisfying the id/title/artist/date invariants
    """
    source = _as_mapping(raw)
    position = index + 1

    raw_id = source.get("id")
    track_id = str(raw_id).strip() if raw_id is not None else ""
    if not track_id:
        track_id = f"{provider or 'track'}-{position}"

    kind_value = source.get("kind")
    kind = ContentKind.PODCAST if kind_value == ContentKind.PODCAST else ContentKind.MUSIC

    source_provider = source.get("provider")
    resolved_provider = str(source_provider) if source_provider else provider

    raw_provider_track_id = _pick(source, "provider_track_id", "providerTrackId")

    return NormalizedTrack(
        id=track_id,
        title=_sanitize_text(source.get("title")) or f"Untitled Track {position}",
        artist=_sanitize_text(source.get("artist")) or "Unknown Artist",
        provider=str(resolved_provider) if resolved_provider else None,
        kind=kind,
        album=_sanitize_text(source.get("album")) or None,
        thumbnail_url=_optional_text(_pick(source, "thumbnail_url", "thumbnailUrl")),
        source_url=_optional_text(_pick(source, "source_url", "sourceUrl")),
        duration_ms=_coerce_duration(_pick(source, "duration_ms", "durationMs")),
        date_added=coerce_iso_string(_pick(source, *_DATE_FIELDS)),
        provider_track_id=(
            str(raw_provider_track_id) if raw_provider_track_id is not None else None
        ),
        show_id=_optional_text(_pick(source, "show_id", "showId")),
        show_name=_optional_text(_pick(source, "show_name", "showName")),
        publisher=_optional_text(source.get("publisher")),
        description=_optional_text(source.get("description")),
    )


def normalize_page_info(raw: Any) -> PageInfo:
    """Normalize upstream pagination info.

    Blank cursors become None and ``has_more`` requires a cursor.
    """
    if isinstance(raw, PageInfo):
        cursor_value: Any = raw.cursor
        has_more_value: Any = raw.has_more
    elif isinstance(raw, Mapping):
        cursor_value = raw.get("cursor")
        has_more_value = _pick(raw, "has_more", "hasMore")
    else:
        return PageInfo()

    cursor = cursor_value.strip() if isinstance(cursor_value, str) else None
    return PageInfo(cursor=cursor or None, has_more=bool(has_more_value and cursor))
