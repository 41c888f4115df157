from __future__ import annotations
import logging
from datetime import datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime | None) -> datetime | None:
    """Normalize a stored instant to aware UTC.
    Naive values (SQLite drops the offset) are taken to be UTC already.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def resolve_tz(tz: str | None) -> tzinfo | None:
    """ZoneInfo for a configured zone name, or None for the host's local zone.

    A name the zone database cannot resolve also yields None, with a warning.
    """
    if not tz:
        return None
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("config.unknown_time_zone", extra={"extra_data": {"tz": tz}})
        return None


def compute_minutes(start: datetime | None, end: datetime | None) -> int:
    """Return whole minutes between start and end (floored, non-negative)."""
    s = as_utc(start)
    e = as_utc(end)
    if not s or not e:
        return 0
    delta = int((e - s).total_seconds() // 60)
    return max(delta, 0)


def local_day_bounds(now: datetime, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """UTC bounds [midnight, next midnight) of the calendar day containing ``now``.

    The day is taken in ``tz`` when given, otherwise in the host's local zone.
    """
    local_now = as_utc(now).astimezone(tz) if tz else as_utc(now).astimezone()
    day = local_now.date()
    if tz:
        start = datetime.combine(day, time.min, tzinfo=tz)
        end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    else:
        # Naive astimezone() applies the host offset in effect at that instant (DST safe).
        start = datetime.combine(day, time.min).astimezone()
        end = datetime.combine(day + timedelta(days=1), time.min).astimezone()
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
