"""Timestamp helpers.

Registry and manifest timestamps are always timezone-aware UTC and serialize
as ISO-8601 strings.
"""

from datetime import UTC, datetime

import pendulum
from pendulum.parsing.exceptions import ParserError

__all__ = ["format_timestamp", "parse_timestamp", "utc_now"]


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def format_timestamp(value: datetime) -> str:
    """Format an aware datetime as an ISO-8601 UTC string.

    Naive values are taken to already be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse a timestamp into an aware UTC datetime.

    ISO-8601 strings from our own serialization go through the standard
    library; anything else falls back to pendulum's more lenient parser.

    Args:
        value: Timestamp string, or a datetime (YAML loaders may already
            have converted it).

    Returns:
        Parsed datetime in UTC.

    Raises:
        ValueError: If the value cannot be parsed as a date and time.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            try:
                fallback = pendulum.parse(value)
            except ParserError as e:
                msg = f"Invalid timestamp: {value!r}"
                raise ValueError(msg) from e
            # pendulum.parse can return DateTime, Date, Time, or Duration
            if not isinstance(fallback, datetime):
                msg = f"Timestamp has no time component: {value!r}"
                raise ValueError(msg)
            parsed = datetime.fromisoformat(fallback.isoformat())

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)
