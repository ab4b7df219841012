"""Tests for clock helpers."""

from datetime import UTC, datetime, timedelta

from utils.clock import utc_now


class TestUtcNow:
    """Tests for utc_now."""

    def test_naive_utc(self):
        """Test the value is naive and matches the current UTC time."""
        now = utc_now()

        assert now.tzinfo is None
        assert abs(datetime.now(UTC).replace(tzinfo=None) - now) < timedelta(seconds=5)
