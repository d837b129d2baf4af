"""Unit tests for track normalization."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from playlistnotes.domain.dtos import NormalizedTrack, PageInfo
from playlistnotes.domain.value_objects.providers import ContentKind
from playlistnotes.domain.value_objects.track_normalization import (
    coerce_iso_string,
    normalize_page_info,
    normalize_track,
)


class TestCoerceIsoString:
    """Test ISO date coercion."""

    def test_iso_string_with_z(self) -> None:
        """Test a Z-suffixed string is normalized to millisecond precision."""
        assert coerce_iso_string("2024-05-01T10:20:30Z") == "2024-05-01T10:20:30.000Z"

    def test_offset_is_converted_to_utc(self) -> None:
        """Test non-UTC offsets are converted."""
        assert coerce_iso_string("2024-05-01T12:00:00+02:00") == "2024-05-01T10:00:00.000Z"

    def test_epoch_millis(self) -> None:
        """Test numbers are epoch milliseconds."""
        assert coerce_iso_string(0) == "1970-01-01T00:00:00.000Z"
        assert coerce_iso_string(1_700_000_000_123) == "2023-11-14T22:13:20.123Z"

    def test_datetime(self) -> None:
        """Test aware and naive datetimes."""
        aware = datetime(2024, 1, 1, 1, 0, tzinfo=timezone(timedelta(hours=1)))
        assert coerce_iso_string(aware) == "2024-01-01T00:00:00.000Z"
        assert coerce_iso_string(datetime(2024, 1, 2)) == "2024-01-02T00:00:00.000Z"
        assert coerce_iso_string(datetime(2024, 1, 2, tzinfo=UTC)) == "2024-01-02T00:00:00.000Z"

    @pytest.mark.parametrize(
        "value", [None, "", "   ", "yesterday", True, float("nan"), float("inf"), [], {}]
    )
    def test_unparsable_returns_none(self, value: object) -> None:
        """Test garbage returns None instead of raising."""
        assert coerce_iso_string(value) is None


class TestNormalizeTrack:
    """Test normalize_track invariants."""

    def test_full_record(self) -> None:
        """Test a complete camelCase record."""
        track = normalize_track(
            {
                "id": "abc",
                "title": "  Song  ",
                "artist": "Band",
                "album": "Record",
                "thumbnailUrl": "https://img/1.jpg",
                "sourceUrl": "https://open.spotify.com/track/abc",
                "durationMs": 1234.0,
                "dateAdded": "2024-01-01T00:00:00Z",
                "providerTrackId": 99,
            },
            0,
            "spotify",
        )

        assert track.id == "abc"
        assert track.title == "Song"
        assert track.artist == "Band"
        assert track.album == "Record"
        assert track.provider == "spotify"
        assert track.kind == ContentKind.MUSIC
        assert track.thumbnail_url == "https://img/1.jpg"
        assert track.source_url == "https://open.spotify.com/track/abc"
        assert track.duration_ms == 1234
        assert track.date_added == "2024-01-01T00:00:00.000Z"
        assert track.provider_track_id == "99"

    def test_snake_case_fields(self) -> None:
        """Test snake_case spellings are accepted too."""
        track = normalize_track(
            {"id": "x", "added_at": "2024-02-02T00:00:00Z", "duration_ms": 5}, 0, "youtube"
        )

        assert track.date_added == "2024-02-02T00:00:00.000Z"
        assert track.duration_ms == 5

    def test_empty_input_synthesizes_fields(self) -> None:
        """Test empty/None input yields a well-formed track."""
        track = normalize_track(None, 4, "soundcloud")

        assert track.id == "soundcloud-5"
        assert track.title == "Untitled Track 5"
        assert track.artist == "Unknown Artist"
        assert track.date_added is None
        assert track.album is None

    def test_missing_provider_falls_back_to_track(self) -> None:
        """Test id synthesis without a provider."""
        track = normalize_track({}, 0, None)

        assert track.id == "track-1"
        assert track.provider is None

    def test_blank_strings_are_replaced(self) -> None:
        """Test whitespace-only title/artist count as missing."""
        track = normalize_track({"id": "  ", "title": "   ", "artist": ""}, 1, "spotify")

        assert track.id == "spotify-2"
        assert track.title == "Untitled Track 2"
        assert track.artist == "Unknown Artist"

    def test_invalid_values_are_dropped(self) -> None:
        """Test invalid duration/date/url values become None."""
        track = normalize_track(
            {"id": 1, "durationMs": "long", "dateAdded": "nope", "thumbnailUrl": 5},
            0,
            "spotify",
        )

        assert track.id == "1"
        assert track.duration_ms is None
        assert track.date_added is None
        assert track.thumbnail_url is None

    def test_podcast_kind_and_fields(self) -> None:
        """Test podcast kind and show fields are carried."""
        track = normalize_track(
            {
                "id": "ep",
                "kind": "podcast",
                "showId": "show-1",
                "showName": "The Show",
                "publisher": "Pub",
                "description": "About",
            },
            0,
            "spotify",
        )

        assert track.kind == ContentKind.PODCAST
        assert track.show_id == "show-1"
        assert track.show_name == "The Show"
        assert track.publisher == "Pub"
        assert track.description == "About"

    def test_record_provider_wins(self) -> None:
        """Test a provider on the record overrides the adapter's tag."""
        assert normalize_track({"provider": "youtube"}, 0, "spotify").provider == "youtube"

    def test_idempotent(self) -> None:
        """Test normalizing a normalized track changes nothing."""
        first = normalize_track(
            {"id": "a", "title": "T", "artist": "A", "dateAdded": 0, "kind": "podcast"},
            0,
            "spotify",
        )
        second = normalize_track(first, 7, "youtube")

        assert isinstance(second, NormalizedTrack)
        assert second == first


class TestNormalizePageInfo:
    """Test page info normalization."""

    def test_cursor_and_has_more(self) -> None:
        """Test a valid cursor keeps has_more."""
        info = normalize_page_info({"cursor": " next ", "hasMore": True})

        assert info == PageInfo(cursor="next", has_more=True)

    def test_blank_cursor_forces_no_more(self) -> None:
        """Test has_more needs a cursor."""
        assert normalize_page_info({"cursor": "  ", "has_more": True}) == PageInfo()
        assert normalize_page_info({"hasMore": True}) == PageInfo()

    def test_non_mapping(self) -> None:
        """Test garbage yields the empty page info."""
        assert normalize_page_info(None) == PageInfo()
        assert normalize_page_info("cursor") == PageInfo()

    def test_page_info_passthrough(self) -> None:
        """Test PageInfo input is normalized again."""
        assert normalize_page_info(PageInfo(cursor="c", has_more=True)).has_more is True
