from datetime import date, datetime, timezone
from typing import Optional, Union


def get_current_time():
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_expiry_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """
    Normalize an expiry date coming from a form, an API client or the generation service.
    Accepts a date, a datetime, an ISO date ('2026-01-12') or an ISO timestamp.
    Empty strings are treated as "no expiry".
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise ValueError(f"Invalid expiry date: {value!r}")


def format_datetime_ampm(dt: datetime) -> Optional[str]:
    """
    Format a datetime in 12-hour am/pm format, UTC.
    Example: '12-Jan-2026 03:45 PM UTC'
    """
    if dt is None:
        return None

    # Naive datetimes come back from SQLite; they were stored as UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc).strftime("%d-%b-%Y %I:%M %p") + " UTC"
