"""Tests for utils/timezone.py - UTC-everywhere time handling."""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from utils.timezone import as_date, end_of_day, now_utc, parse_iso, start_of_day, to_utc


class TestNowUtc:
    """Tests for now_utc()."""

    def test_returns_timezone_aware(self):
        """Result must have tzinfo set (not naive)."""
        result = now_utc()
        assert result.tzinfo is not None

    def test_is_utc(self):
        """Result timezone must be specifically UTC."""
        result = now_utc()
        assert result.tzinfo == timezone.utc


class TestToUtc:
    """Tests for to_utc()."""

    def test_raises_on_naive(self):
        """Naive datetime must raise ValueError."""
        naive = datetime(2024, 1, 1, 12, 0, 0)
        with pytest.raises(ValueError, match="naive"):
            to_utc(naive)

    def test_converts_other_timezone(self):
        """Bogota 12:00 should become UTC 17:00."""
        bogota = datetime(2024, 1, 1, 12, 0, 0, tzinfo=ZoneInfo("America/Bogota"))
        result = to_utc(bogota)
        assert result.tzinfo == timezone.utc
        assert result.hour == 17


class TestAsDate:
    """Tests for as_date()."""

    def test_plain_date_passes_through(self):
        assert as_date(date(2025, 10, 16)) == date(2025, 10, 16)

    def test_uses_utc_calendar_date(self):
        """21:00 in Bogota on the 15th is already the 16th in UTC."""
        late = datetime(2025, 10, 15, 21, 0, tzinfo=ZoneInfo("America/Bogota"))
        assert as_date(late) == date(2025, 10, 16)

    def test_raises_on_naive(self):
        with pytest.raises(ValueError):
            as_date(datetime(2025, 10, 15, 12, 0))


class TestDayBounds:
    """Tests for start_of_day() and end_of_day()."""

    def test_start_is_midnight_utc(self):
        result = start_of_day(date(2025, 10, 1))
        assert result == datetime(2025, 10, 1, tzinfo=timezone.utc)

    def test_end_is_last_instant_of_day(self):
        result = end_of_day(date(2025, 10, 15))
        assert result.date() == date(2025, 10, 15)
        assert (result.hour, result.minute, result.second) == (23, 59, 59)
        assert result.tzinfo == timezone.utc


class TestParseIso:
    """Tests for parse_iso()."""

    def test_parses_with_z(self):
        """'Z' suffix should be parsed as UTC."""
        result = parse_iso("2024-01-01T12:00:00Z")
        assert result.tzinfo == timezone.utc
        assert result.hour == 12

    def test_converts_offset_to_utc(self):
        result = parse_iso("2024-01-01T12:00:00-05:00")
        assert result.tzinfo == timezone.utc
        assert result.hour == 17

    def test_raises_on_naive(self):
        """String without timezone info must raise ValueError."""
        with pytest.raises(ValueError, match="naive"):
            parse_iso("2024-01-01T12:00:00")
