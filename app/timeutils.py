"""
UTC timestamp helpers.

Bookings are stored with timestamps in the fixed format ``YYYY-MM-DDTHH:MM:SSZ``.
For this format lexical order equals chronological order, which is what lets
the store filter and sort on the raw strings.
"""

from datetime import UTC, datetime

import pytz

from app.config import settings

UTC_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_utc(value: datetime, naive_timezone: str | None = None) -> datetime:
    """
    Convert a datetime to an aware UTC datetime.

    Naive values are interpreted in ``naive_timezone`` (the facility timezone
    from settings when not given).
    """
    if value.tzinfo is None:
        tz = pytz.timezone(naive_timezone or settings.timezone)
        value = tz.localize(value)
    return value.astimezone(UTC)


def to_date_string_utc(value: datetime) -> str:
    """Format an instant as ``YYYY-MM-DDTHH:MM:SSZ`` (second precision)."""
    return to_utc(value).strftime(UTC_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Raises:
        ValueError: If the string is not a valid ISO-8601 timestamp.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return to_utc(datetime.fromisoformat(text))
