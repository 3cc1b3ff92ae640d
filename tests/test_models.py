"""Tests for the shared data models."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from bookmark_tui.models import Bookmark, OpResult, Session, parse_timestamp


class TestParseTimestamp:
    def test_z_suffix(self):
        ts = parse_timestamp("2026-03-01T12:00:00Z")
        assert ts == datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def test_offset_suffix(self):
        ts = parse_timestamp("2026-03-01T12:00:00+00:00")
        assert ts.tzinfo is not None

    def test_postgres_microsecond_precision(self):
        ts = parse_timestamp("2026-03-01T12:00:00.123456+00:00")
        assert ts.microsecond == 123456

    def test_short_fraction_padded(self):
        ts = parse_timestamp("2026-03-01T12:00:00.5Z")
        assert ts.microsecond == 500000

    def test_long_fraction_truncated(self):
        ts = parse_timestamp("2026-03-01T12:00:00.123456789+00:00")
        assert ts.microsecond == 123456

    def test_naive_assumed_utc(self):
        ts = parse_timestamp("2026-03-01T12:00:00")
        assert ts.tzinfo == timezone.utc

    def test_none_is_epoch(self):
        assert parse_timestamp(None).year == 1970

    def test_datetime_passthrough(self):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert parse_timestamp(now) is now

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_timestamp("yesterday")


class TestBookmark:
    def test_from_row(self):
        b = Bookmark.from_row(
            {
                "id": 7,
                "title": "Docs",
                "url": "https://x",
                "user_id": "u1",
                "created_at": "2026-01-02T00:00:00Z",
            }
        )
        assert b.id == "7"
        assert b.title == "Docs"
        assert b.created_at.day == 2

    def test_from_row_missing_id(self):
        with pytest.raises(KeyError):
            Bookmark.from_row({"title": "x", "url": "y"})

    def test_with_fields_keeps_identity(self):
        b = Bookmark("1", "Old", "https://old", "u1")
        changed = b.with_fields(title="New", url="https://new")
        assert changed.id == "1"
        assert changed.user_id == "u1"
        assert changed.created_at == b.created_at
        assert (changed.title, changed.url) == ("New", "https://new")
        assert b.title == "Old"


class TestSession:
    def test_display_name_prefers_email(self):
        assert Session("abcdef123456", "a@b.c").display_name == "a@b.c"

    def test_display_name_falls_back_to_short_id(self):
        assert Session("abcdef123456").display_name == "abcdef12"

    def test_token_not_in_repr(self):
        assert "secret" not in repr(Session("u1", access_token="secret"))


class TestOpResult:
    def test_success_is_truthy(self):
        result = OpResult.success(3)
        assert result
        assert result.value == 3
        assert result.error == ""

    def test_failure_is_falsy(self):
        result = OpResult.failure("boom")
        assert not result
        assert result.value is None
        assert result.error == "boom"
