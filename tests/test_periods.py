"""Tests for period parsing and window resolution."""

from datetime import datetime, timedelta, timezone

import pytest

from platform_analytics.foundation.periods import (
    DEFAULT_PERIOD_DAYS,
    PeriodPair,
    PeriodWindow,
    parse_period_days,
    resolve_period_pair,
)

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


class TestParsePeriodDays:
    """Test period specifier parsing."""

    @pytest.mark.parametrize(
        "period,expected",
        [
            ("30d", 30),
            ("7d", 7),
            ("7D", 7),
            ("90", 90),
            (" 14d ", 14),
            (45, 45),
        ],
    )
    def test_valid_specifiers(self, period, expected):
        """Digits with an optional trailing 'd' parse to a day count."""
        assert parse_period_days(period) == expected

    @pytest.mark.parametrize(
        "period",
        [None, "", "abc", "last-quarter", "7.5d", "d", "30dd", "0", "0d", "-5d", 0, -3, True],
    )
    def test_invalid_specifiers_fall_back(self, period):
        """Unparseable, zero or negative specifiers fall back to 30 days."""
        assert parse_period_days(period) == DEFAULT_PERIOD_DAYS

    def test_never_raises(self):
        """Arbitrary objects never raise."""
        assert parse_period_days(object()) == DEFAULT_PERIOD_DAYS


class TestPeriodWindow:
    """Test PeriodWindow validation and helpers."""

    def test_end_must_follow_start(self):
        """A window whose end is not after its start is rejected."""
        with pytest.raises(ValueError, match="end must be after start"):
            PeriodWindow(start=NOW, end=NOW)

    def test_contains_is_half_open(self):
        """Start is inclusive, end is exclusive."""
        window = PeriodWindow(start=NOW - timedelta(days=1), end=NOW)
        assert window.contains(NOW - timedelta(days=1))
        assert window.contains(NOW - timedelta(seconds=1))
        assert not window.contains(NOW)

    def test_length(self):
        window = PeriodWindow(start=NOW - timedelta(days=7), end=NOW)
        assert window.length == timedelta(days=7)


class TestPeriodPair:
    """Test PeriodPair invariants."""

    def test_rejects_gap_between_windows(self):
        """Previous window must end where current starts."""
        current = PeriodWindow(start=NOW - timedelta(days=7), end=NOW)
        previous = PeriodWindow(
            start=NOW - timedelta(days=15), end=NOW - timedelta(days=8)
        )
        with pytest.raises(ValueError, match="must end where"):
            PeriodPair(current=current, previous=previous, period_days=7)

    def test_rejects_unequal_lengths(self):
        current = PeriodWindow(start=NOW - timedelta(days=7), end=NOW)
        previous = PeriodWindow(
            start=NOW - timedelta(days=10), end=NOW - timedelta(days=7)
        )
        with pytest.raises(ValueError, match="equal length"):
            PeriodPair(current=current, previous=previous, period_days=7)

    def test_rejects_mismatched_period_days(self):
        current = PeriodWindow(start=NOW - timedelta(days=7), end=NOW)
        previous = PeriodWindow(
            start=NOW - timedelta(days=14), end=NOW - timedelta(days=7)
        )
        with pytest.raises(ValueError, match="does not match"):
            PeriodPair(current=current, previous=previous, period_days=30)


class TestResolvePeriodPair:
    """Test window resolution."""

    def test_default_is_thirty_days(self):
        """No specifier resolves to two contiguous 30-day windows."""
        pair = resolve_period_pair(now=NOW)

        assert pair.period_days == 30
        assert pair.label == "30d"
        assert pair.current.end == NOW
        assert pair.current.start == NOW - timedelta(days=30)
        assert pair.previous.end == pair.current.start
        assert pair.previous.start == NOW - timedelta(days=60)

    def test_seven_day_windows(self):
        pair = resolve_period_pair("7d", now=NOW)

        assert pair.current.start == NOW - timedelta(days=7)
        assert pair.previous.start == NOW - timedelta(days=14)
        assert pair.current.length == pair.previous.length == timedelta(days=7)

    def test_invalid_specifier_uses_thirty_days(self):
        pair = resolve_period_pair("last-quarter", now=NOW)
        assert pair.period_days == 30

    def test_naive_now_is_treated_as_utc(self):
        """Naive datetimes are interpreted as UTC."""
        pair = resolve_period_pair("7", now=datetime(2024, 6, 15, 12, 0))
        assert pair.current.end == NOW
        assert pair.current.end.tzinfo is timezone.utc

    def test_defaults_to_current_time(self):
        """Without now the windows end at the current UTC time."""
        before = datetime.now(timezone.utc)
        pair = resolve_period_pair("1d")
        after = datetime.now(timezone.utc)
        assert before <= pair.current.end <= after
