"""UTC datetime utilities for consistent timezone handling across the exporter.

Usage:
    from fsimage_exporter.common.datetime_utils import utcnow

    now = utcnow()  # Always returns timezone-aware UTC datetime
"""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Use this instead of datetime.now() or datetime.utcnow().

    Returns:
        Current time in UTC with timezone information.
    """
    return datetime.now(UTC)


def validate_aware_datetime(dt: datetime) -> datetime:
    """Validate that datetime is timezone-aware.

    Args:
        dt: Datetime to validate

    Returns:
        The same datetime if valid

    Raises:
        ValueError: If datetime is naive
    """
    if dt.tzinfo is None:
        raise ValueError(
            f"Naive datetime not allowed: {dt}. "
            "All datetimes must be timezone-aware (use datetime.now(UTC) or utcnow())."
        )
    return dt


def format_iso8601_utc(dt: datetime) -> str:
    """Format datetime as ISO 8601 with 'Z' suffix.

    Args:
        dt: Timezone-aware datetime

    Returns:
        ISO 8601 string with 'Z' suffix (e.g., '2025-01-15T10:30:00Z')

    Raises:
        ValueError: If datetime is naive
    """
    validate_aware_datetime(dt)
    utc_dt = dt.astimezone(UTC)
    return utc_dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def age_seconds(dt: datetime, now: datetime | None = None) -> float:
    """Seconds elapsed since a timezone-aware datetime."""
    validate_aware_datetime(dt)
    return ((now or utcnow()) - dt).total_seconds()
