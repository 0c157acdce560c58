"""Tests for rating deviation decay."""

from datetime import UTC, datetime, timedelta

import pytest

from library_ranker.ranking.decay import as_utc, days_between, decayed_rating_deviation


class TestDaysBetween:
    """Tests for elapsed-day calculation."""

    def test_fractional_days(self):
        """Test partial days are kept."""
        start = datetime(2026, 1, 1, tzinfo=UTC)
        assert days_between(start, start + timedelta(hours=36)) == pytest.approx(1.5)

    def test_naive_datetimes_treated_as_utc(self):
        """Test naive timestamps compare against aware ones."""
        naive = datetime(2026, 1, 1)
        aware = datetime(2026, 1, 3, tzinfo=UTC)
        assert days_between(naive, aware) == pytest.approx(2.0)

    def test_as_utc_keeps_aware_datetimes(self):
        """Test only naive timestamps are stamped with UTC."""
        aware = datetime(2026, 1, 1, 12, tzinfo=UTC)
        assert as_utc(aware) is aware
        assert as_utc(datetime(2026, 1, 1, 12)) == aware


class TestDecayedRatingDeviation:
    """Tests for inactivity decay."""

    def test_compounds_daily(self):
        """Test RD grows by the decay rate per day."""
        assert decayed_rating_deviation(100, 10, 0.015, 350) == pytest.approx(116.054, abs=0.001)

    def test_capped_at_ceiling(self):
        """Test RD never exceeds the ceiling."""
        assert decayed_rating_deviation(340, 10, 0.015, 350) == 350

    def test_no_time_elapsed(self):
        """Test zero or negative elapsed time leaves RD unchanged."""
        assert decayed_rating_deviation(120, 0, 0.015, 350) == 120
        assert decayed_rating_deviation(120, -2, 0.015, 350) == 120

    def test_zero_rate(self):
        """Test a zero decay rate disables decay."""
        assert decayed_rating_deviation(120, 30, 0.0, 350) == pytest.approx(120)
