"""Anchor time helpers.

The parsing pipeline never reads the clock. Callers pass an anchor datetime
(``now``) and every relative phrase is resolved against it. These helpers keep
that arithmetic in the anchor's own zone:

- naive anchors produce naive results
- pytz anchors are re-localized after shifting so DST transitions pick the
  right offset
- zoneinfo (and fixed-offset) anchors use plain wall-clock arithmetic
"""

import logging
from datetime import date, datetime, time, timedelta, tzinfo

import pytz

from smartinput.config import settings

logger = logging.getLogger(__name__)


def get_timezone(name: str | None = None) -> tzinfo:
    """Return a pytz timezone, falling back to UTC for unknown names."""
    tz_name = name or settings.user_timezone
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown timezone {tz_name!r}, falling back to UTC")
        return pytz.utc


def anchor_now(timezone: str | None = None) -> datetime:
    """Current time in the user's timezone.

    This is the default clock for the live parser; the parser itself only
    ever sees the value this returns.
    """
    return datetime.now(get_timezone(timezone))


def at_wall_time(anchor: datetime, day: date, wall: time = time(0, 0)) -> datetime:
    """Build ``day`` at ``wall`` o'clock in the anchor's timezone."""
    naive = datetime.combine(day, wall.replace(tzinfo=None))
    tz = anchor.tzinfo
    if tz is None:
        return naive
    localize = getattr(tz, "localize", None)
    if localize is not None:
        # pytz: the anchor's tzinfo is bound to one offset, localize picks the right one
        return localize(naive)
    return naive.replace(tzinfo=tz)


def midnight(anchor: datetime, day: date | None = None) -> datetime:
    return at_wall_time(anchor, day or anchor.date())


def shift_days(anchor: datetime, days: int, keep_time: bool = True) -> datetime:
    """Move ``days`` calendar days from the anchor.

    With ``keep_time`` the anchor's wall-clock time is preserved, otherwise the
    result is normalized to midnight.
    """
    day = anchor.date() + timedelta(days=days)
    wall = anchor.time() if keep_time else time(0, 0)
    return at_wall_time(anchor, day, wall)


def shift_elapsed(anchor: datetime, delta: timedelta) -> datetime:
    """Move an absolute amount of time (hours, minutes) from the anchor."""
    shifted = anchor + delta
    normalize = getattr(anchor.tzinfo, "normalize", None)
    if normalize is not None:
        return normalize(shifted)
    return shifted


def add_months(year: int, month: int, months: int) -> tuple[int, int]:
    """Return (year, month) ``months`` after the given month (1-indexed)."""
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1
