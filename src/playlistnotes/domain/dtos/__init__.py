"""
Data Transfer Objects of the import subsystem.

Hey future me – diese DTOs sind die gemeinsame Sprache zwischen Adaptern, Session und Flow!
Jeder Adapter (Spotify, YouTube, SoundCloud) MUSS ImportPage zurückgeben, mit Tracks die
schon durch normalize_track() gelaufen sind. Session und Flow arbeiten NUR mit diesen Typen.

Internally everything is snake_case. to_dict() produces the camelCase JSON shape the
frontend and the persisted-snapshot layer already speak (dateAdded, hasMore, playlistId...).

Flow: Upstream JSON → Adapter → ImportPage (NormalizedTrack[]) → ImportSession → ImportResult
"""

from dataclasses import dataclass, field, fields
from typing import Any

from playlistnotes.domain.entities.error_codes import ImportErrorCode
from playlistnotes.domain.value_objects.providers import ContentKind


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _snake(name: str) -> str:
    return "".join(f"_{char.lower()}" if char.isupper() else char for char in name)


# Hey future me – NormalizedTrack ist der kanonische Track! `id` ist der Dedup-Key über Seiten
# hinweg, also MUSS er stabil sein (gleicher Upstream-Track → gleiche id). title/artist sind
# nie leer, date_added ist entweder gültiges ISO-8601 oder None. Diese Invarianten stellt
# normalize_track() her – baue NormalizedTrack nicht von Hand in Adaptern!
@dataclass
class NormalizedTrack:
    """Canonical track (or podcast episode) shape shared by all providers."""

    id: str
    title: str
    artist: str
    provider: str | None = None
    kind: ContentKind = ContentKind.MUSIC
    album: str | None = None
    thumbnail_url: str | None = None
    source_url: str | None = None
    duration_ms: int | None = None
    date_added: str | None = None  # ISO-8601, always UTC with "Z"
    provider_track_id: str | None = None

    # Podcast-only fields
    show_id: str | None = None
    show_name: str | None = None
    publisher: str | None = None
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON shape, dropping unset optional fields."""
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            out[_camel(f.name)] = str(value) if f.name == "kind" else value
        return out


@dataclass
class PageInfo:
    """Pagination state of one page: where to resume, and whether there is more."""

    cursor: str | None = None
    has_more: bool = False

    # A page can never claim more data without a way to fetch it
    def __post_init__(self) -> None:
        if not self.cursor:
            self.cursor = None
            self.has_more = False
        self.has_more = bool(self.has_more)

    def to_dict(self) -> dict[str, Any]:
        return {"cursor": self.cursor, "hasMore": self.has_more}


@dataclass
class ImportPage:
    """One page returned by a provider adapter."""

    provider: str
    playlist_id: str
    title: str
    source_url: str
    tracks: list[NormalizedTrack] = field(default_factory=list)
    page_info: PageInfo = field(default_factory=PageInfo)
    snapshot_id: str | None = None
    cover_url: str | None = None
    total: int | None = None
    debug: dict[str, Any] | None = None

    # Set by ImportSession when this page is fallback demo data (never by adapters)
    error_code: ImportErrorCode | None = None

    @property
    def is_fallback(self) -> bool:
        return bool(self.debug and self.debug.get("fallback"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "playlistId": self.playlist_id,
            "title": self.title,
            "snapshotId": self.snapshot_id,
            "sourceUrl": self.source_url,
            "coverUrl": self.cover_url,
            "total": self.total,
            "tracks": [track.to_dict() for track in self.tracks],
            "pageInfo": self.page_info.to_dict(),
            "debug": self.debug,
            "errorCode": self.error_code,
        }


# Yo, ImportMeta is what the persisted-snapshot layer stores next to the tracks. It uses
# explicit None for "known missing" so round-tripping through JSON doesn't invent fields.
@dataclass
class ImportMeta:
    """Session-level pagination/identity metadata, persisted alongside the tracks."""

    provider: str | None = None
    playlist_id: str | None = None
    snapshot_id: str | None = None
    cursor: str | None = None
    has_more: bool = False
    source_url: str = ""
    debug: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        self.has_more = bool(self.has_more and self.cursor)

    def to_dict(self) -> dict[str, Any]:
        return {_camel(f.name): getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ImportMeta":
        """Build from the camelCase (or snake_case) dict the snapshot layer persisted.

        Unknown keys are ignored so older/newer snapshots still load.
        """
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _snake(key)
            if name in known:
                kwargs[name] = value
        if kwargs.get("source_url") is None:
            kwargs["source_url"] = ""
        return cls(**kwargs)


@dataclass
class ImportData:
    """Payload of a successful ImportResult."""

    tracks: list[NormalizedTrack]
    meta: ImportMeta
    title: str | None = None
    imported_at: str | None = None
    cover_url: str | None = None
    total: int | None = None
    # Code of the failure that fallback demo data stands in for, sent as a top-level errorCode
    error_code: ImportErrorCode | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "tracks": [track.to_dict() for track in self.tracks],
            "meta": self.meta.to_dict(),
        }
        for name in ("title", "imported_at", "cover_url", "total"):
            value = getattr(self, name)
            if value is not None:
                out[_camel(name)] = value
        return out


@dataclass
class ImportResult:
    """Envelope returned by every ImportFlowOrchestrator entry point.

    Exactly one of three shapes:
    - ok=True, data set
    - ok=False, stale=True (superseded by a newer request)
    - ok=False, code set (+ the original error)
    """

    ok: bool
    data: ImportData | None = None
    code: ImportErrorCode | None = None
    error: BaseException | None = None
    stale: bool = False

    @classmethod
    def success(cls, data: ImportData) -> "ImportResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(
        cls, code: ImportErrorCode, error: BaseException | None = None
    ) -> "ImportResult":
        return cls(ok=False, code=code, error=error)

    @classmethod
    def superseded(cls) -> "ImportResult":
        return cls(ok=False, stale=True)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"ok": self.ok}
        if self.data is not None:
            out["data"] = self.data.to_dict()
        if self.code is not None:
            out["code"] = str(self.code)
        if self.error is not None:
            out["error"] = getattr(self.error, "message", None) or str(self.error)
        if self.stale:
            out["stale"] = True
        return out


__all__ = [
    "ImportData",
    "ImportMeta",
    "ImportPage",
    "ImportResult",
    "NormalizedTrack",
    "PageInfo",
]
