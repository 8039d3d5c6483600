"""Date helpers shared by the trend, trigger and adherence rules.

All rule functions take ``today`` / ``now`` explicitly so that decisions are
reproducible; these helpers only supply the defaults.
"""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Current timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """Convert datetime to UTC.

    Args:
        dt: Datetime (timezone-aware or naive)

    Returns:
        Datetime in UTC timezone
    """
    if dt.tzinfo is None:
        # SQLite drops tzinfo on read; stored values are UTC
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def today_in_timezone(tz: str = "UTC") -> date:
    """Calendar date for today in the given IANA timezone.

    Falls back to UTC if the timezone name is unknown.
    """
    try:
        zone = ZoneInfo(tz)
    except Exception:
        zone = ZoneInfo("UTC")
    return datetime.now(zone).date()


def days_between(later: date, earlier: date) -> int:
    """Absolute whole-day difference between two calendar dates."""
    return abs((later - earlier).days)


def whole_days_since(then: datetime, now: datetime) -> int:
    """Floor of elapsed days between two instants (never negative)."""
    elapsed = to_utc(now) - to_utc(then)
    return max(0, elapsed.days)
