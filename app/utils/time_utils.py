from datetime import datetime
from typing import Optional, Union
import pytz

UTC = pytz.UTC

def utc_now() -> datetime:
    """Get current time in UTC"""
    return datetime.now(UTC)

def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (as read back from SQLite) and normalise aware ones"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return UTC.localize(dt)
    return dt.astimezone(UTC)

def parse_iso_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO-8601 string into an aware UTC datetime, or None if it can't be parsed"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    except ValueError:
        return None
    return ensure_utc(parsed)

def milliseconds_between(start: datetime, end: datetime) -> int:
    return int((ensure_utc(end) - ensure_utc(start)).total_seconds() * 1000)
