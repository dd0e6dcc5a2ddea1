# core/datetime_utils.py
"""
Centralized datetime handling for the LEAPS engine.

Rolling-window abuse checks must be computed in the organization's canonical
timezone, never in the server's local time. Everything that turns a
self-reported session date/time into a comparable instant goes through here.
"""
from datetime import date, datetime, time, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.conf import settings
from django.utils import timezone


def now() -> datetime:
    """
    Get current datetime (timezone-aware, USE_TZ=True).

    This is the single source of truth for "now" in the engine.
    """
    return timezone.now()


def get_org_timezone(name: Optional[str] = None) -> ZoneInfo:
    """
    Resolve the organization timezone (settings.ORG_TIMEZONE by default).

    Raises ValueError for unknown zone names so misconfiguration is loud.
    """
    tz_name = name or getattr(settings, "ORG_TIMEZONE", "UTC")
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {tz_name}") from exc


def parse_iso(iso_string: str) -> Optional[datetime]:
    """
    Parse ISO 8601 datetime string.

    Returns None if parsing fails.
    """
    if not iso_string:
        return None
    try:
        return datetime.fromisoformat(iso_string.replace('Z', '+00:00'))
    except (ValueError, AttributeError):
        return None


def to_local_date(value: Union[str, date, datetime, None], tz: ZoneInfo) -> Optional[date]:
    """
    Interpret a session date in the organization timezone.

    - "YYYY-MM-DD" strings and date objects are already local calendar dates.
    - Datetimes (or ISO datetime strings) carrying an offset are converted
      into `tz` before the date is taken; naive ones are treated as local.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return value
    else:
        text = str(value).strip()
        if len(text) == 10:
            try:
                return date.fromisoformat(text)
            except ValueError:
                return None
        dt = parse_iso(text)
        if dt is None:
            return None

    if timezone.is_naive(dt):
        return dt.date()
    return dt.astimezone(tz).date()


def parse_clock_time(value: Union[str, time, None]) -> Optional[time]:
    """Parse "HH:MM" / "HH:MM:SS" into a time; None when missing or malformed."""
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value).strip())
    except ValueError:
        return None


def local_instant(day: date, clock: Optional[time], tz: ZoneInfo) -> datetime:
    """Aware datetime for a local calendar day + wall-clock time (midnight if no time)."""
    return datetime.combine(day, clock or time.min, tzinfo=tz)


def rolling_window(end_day: date, days: int, tz: ZoneInfo):
    """
    Half-open [start, end) instants covering `days` local calendar days that
    end on `end_day` inclusive.
    """
    start = local_instant(end_day - timedelta(days=days - 1), None, tz)
    end = local_instant(end_day + timedelta(days=1), None, tz)
    return start, end
