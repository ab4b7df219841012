"""Clock helpers."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, the form timestamps are stored in."""
    return datetime.now(UTC).replace(tzinfo=None)
