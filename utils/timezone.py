"""UTC-everywhere time handling. Billing dates are calendar dates in UTC."""

from datetime import date, datetime, time, timezone


def now_utc() -> datetime:
    """
    Current time in UTC.

    Use this instead of datetime.now() everywhere.
    """
    return datetime.now(timezone.utc)


def today_utc() -> date:
    """Current calendar date in UTC."""
    return now_utc().date()


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC.

    Raises ValueError if datetime is naive (no timezone).
    """
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot convert naive datetime to UTC. Datetime must be timezone-aware."
        )
    return dt.astimezone(timezone.utc)


def as_date(value: datetime | date) -> date:
    """
    Reduce a moment to its UTC calendar date.

    Aware datetimes are converted to UTC first; plain dates pass through.
    Naive datetimes raise ValueError like to_utc().
    """
    if isinstance(value, datetime):
        return to_utc(value).date()
    return value


def start_of_day(day: date) -> datetime:
    """Midnight UTC at the start of a calendar date."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def end_of_day(day: date) -> datetime:
    """Last representable instant of a calendar date in UTC."""
    return datetime.combine(day, time.max, tzinfo=timezone.utc)


def parse_iso(iso_string: str) -> datetime:
    """
    Parse ISO 8601 datetime string to UTC datetime.

    Raises ValueError if string has no timezone info.
    """
    dt = datetime.fromisoformat(iso_string)
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot parse naive datetime string. "
            "Include timezone offset (e.g., 'Z' or '+00:00')."
        )
    return to_utc(dt)
