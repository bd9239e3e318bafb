"""Time utilities for dbsink."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-aware datetime.

    Returns:
        Current time in UTC with timezone info
    """
    return datetime.now(timezone.utc)


def parse_iso8601(timestamp_str: str) -> datetime:
    """
    Parse an ISO 8601 timestamp string to datetime.

    Handles various formats including:
    - 2024-01-15T12:30:00Z
    - 2024-01-15T12:30:00+00:00
    - 2024-01-15 12:30:00.123456

    Naive input stays naive, so the value binds as a plain TIMESTAMP.

    Args:
        timestamp_str: ISO 8601 formatted timestamp string

    Returns:
        Parsed datetime object

    Raises:
        ValueError: If the string cannot be parsed
    """
    # Replace Z with +00:00 for fromisoformat compatibility
    if timestamp_str.endswith("Z"):
        timestamp_str = timestamp_str[:-1] + "+00:00"

    return datetime.fromisoformat(timestamp_str)
