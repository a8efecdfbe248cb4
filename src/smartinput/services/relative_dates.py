"""Relative date resolution.

Turns date phrases ("next Friday", "two weeks from now", "the third Friday of
next month") into concrete datetimes relative to an explicit anchor. The same
pattern table drives both ``resolve()`` (whole phrase) and the date recognizer
(scanning free text), so a phrase the recognizer finds always resolves the
same way on its own.

RANGE_PATTERN covers two-ended phrases ("Jan 5 - Jan 10", "from Monday to
Friday"); each end resolves through the same table.

Date-only phrases resolve to midnight in the anchor's timezone. Phrases
anchored on "now" keep the anchor's time of day.
"""

import calendar
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from smartinput.services.timezone import (
    add_months,
    at_wall_time,
    midnight,
    shift_days,
    shift_elapsed,
)

logger = logging.getLogger(__name__)

WEEKDAYS: dict[str, int] = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}

MONTHS: dict[str, int] = {
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "jun": 6, "jul": 7, "aug": 8,
    "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
}

ORDINALS: dict[str, int] = {
    "first": 1, "1st": 1,
    "second": 2, "2nd": 2,
    "third": 3, "3rd": 3,
    "fourth": 4, "4th": 4,
    "fifth": 5, "5th": 5,
}

NUMBER_WORDS: dict[str, int] = {
    "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6,
    "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11, "twelve": 12,
}

# Phrase kinds
ORDINAL_WEEKDAY = "ordinal_weekday"
ISO_DATE = "iso_date"
MONTH_DAY = "month_day"
DAY_MONTH = "day_month"
NUMERIC_DATE = "numeric_date"
OFFSET = "offset"
RELATIVE_DAY = "relative_day"
RELATIVE_PERIOD = "relative_period"
WEEKDAY = "weekday"
RANGE = "range"

_WEEKDAY_ALT = "|".join(WEEKDAYS)
# Longest names first so "march" wins over "mar"
_MONTH_ALT = "|".join(sorted(MONTHS, key=len, reverse=True))
_NUMBER_ALT = r"\d{1,3}|" + "|".join(sorted(NUMBER_WORDS, key=len, reverse=True))
_UNIT_ALT = r"days?|weeks?|months?|years?|hours?|hrs?|minutes?|mins?"

TIME_UNITS = frozenset(["hour", "minute"])


@dataclass(frozen=True)
class DatePattern:
    kind: str
    regex: re.Pattern


DATE_PATTERNS: list[DatePattern] = [
    DatePattern(
        ORDINAL_WEEKDAY,
        re.compile(
            r"\b(?:on\s+)?(?:the\s+)?(?P<ordinal>first|second|third|fourth|fifth|last|1st|2nd|3rd|4th|5th)"
            rf"\s+(?P<weekday>{_WEEKDAY_ALT})\s+(?:of|in)\s+"
            rf"(?P<month_ref>this\s+month|next\s+month|{_MONTH_ALT})\b",
            re.IGNORECASE,
        ),
    ),
    DatePattern(
        ISO_DATE,
        re.compile(r"\b(?P<year>\d{4})-(?P<month>\d{1,2})-(?P<day>\d{1,2})\b"),
    ),
    DatePattern(
        MONTH_DAY,
        re.compile(
            rf"\b(?:on\s+)?(?P<month>{_MONTH_ALT})\.?\s+(?P<day>\d{{1,2}})(?:st|nd|rd|th)?"
            r"(?:,?\s+(?P<year>\d{4}))?\b",
            re.IGNORECASE,
        ),
    ),
    DatePattern(
        DAY_MONTH,
        re.compile(
            r"\b(?:on\s+)?(?:the\s+)?(?P<day>\d{1,2})(?:st|nd|rd|th)?\s+(?:of\s+)?"
            rf"(?P<month>{_MONTH_ALT})\b(?:,?\s+(?P<year>\d{{4}})\b)?",
            re.IGNORECASE,
        ),
    ),
    DatePattern(
        NUMERIC_DATE,
        re.compile(r"\b(?P<month>\d{1,2})/(?P<day>\d{1,2})(?:/(?P<year>\d{4}|\d{2}))?\b"),
    ),
    DatePattern(
        OFFSET,
        re.compile(
            rf"\b(?:in\s+)?(?P<count>{_NUMBER_ALT})\s+(?P<unit>{_UNIT_ALT})\s+from\s+(?P<anchor>now|today)\b",
            re.IGNORECASE,
        ),
    ),
    DatePattern(
        OFFSET,
        re.compile(
            rf"\bin\s+(?P<count>{_NUMBER_ALT})\s+(?P<unit>{_UNIT_ALT})\b",
            re.IGNORECASE,
        ),
    ),
    DatePattern(
        RELATIVE_DAY,
        re.compile(
            r"\b(?P<day>(?:the\s+)?day\s+after\s+tomorrow|today|tonight|tomorrow|tmrw?|yesterday)\b",
            re.IGNORECASE,
        ),
    ),
    DatePattern(
        RELATIVE_PERIOD,
        re.compile(r"\b(?P<which>this|next|last)\s+(?P<period>week|month|year)\b", re.IGNORECASE),
    ),
    DatePattern(
        WEEKDAY,
        re.compile(
            rf"\b(?:(?P<qualifier>this\s+coming|this|next|coming|on)\s+)?(?P<weekday>{_WEEKDAY_ALT})\b",
            re.IGNORECASE,
        ),
    ),
]


# One end of a date range. Kept to forms that read unambiguously on both sides
# of "to" or a dash.
_RANGE_POINT = (
    rf"(?:{_MONTH_ALT})\.?\s+\d{{1,2}}(?:st|nd|rd|th)?(?:,?\s+\d{{4}})?"
    r"|\d{4}-\d{1,2}-\d{1,2}"
    r"|\d{1,2}/\d{1,2}(?:/(?:\d{4}|\d{2}))?"
    rf"|(?:(?:this|next|coming)\s+)?(?:{_WEEKDAY_ALT})"
    r"|today|tomorrow"
)

RANGE_PATTERN = re.compile(
    rf"\b(?:from\s+)?(?P<start>{_RANGE_POINT})\s*"
    r"(?P<connector>-|–|\b(?:to|until|till|through|thru)\b)"
    rf"\s*(?P<end>{_RANGE_POINT})\b",
    re.IGNORECASE,
)


def _words(value: str) -> str:
    return " ".join(value.lower().split())


def parse_count(value: str) -> int:
    value = value.lower()
    if value.isdigit():
        return int(value)
    return NUMBER_WORDS[value]


def normalize_unit(value: str) -> str:
    unit = value.lower().rstrip("s")
    return {"hr": "hour", "min": "minute"}.get(unit, unit)


def nth_weekday_of_month(year: int, month: int, weekday: int, n: int) -> date | None:
    """Return the nth (1-indexed) ``weekday`` of the month, or None if it doesn't exist.

    ``n == -1`` selects the last occurrence.
    """
    _, days_in_month = calendar.monthrange(year, month)
    matches = [
        day for day in range(1, days_in_month + 1) if date(year, month, day).weekday() == weekday
    ]
    if n == -1:
        return date(year, month, matches[-1])
    if n < 1 or n > len(matches):
        return None
    return date(year, month, matches[n - 1])


def _clamped_date(year: int, month: int, day: int) -> date:
    _, days_in_month = calendar.monthrange(year, month)
    return date(year, month, min(day, days_in_month))


def _shift_months(now: datetime, months: int, keep_time: bool) -> datetime:
    year, month = add_months(now.year, now.month, months)
    wall = now.time() if keep_time else time(0, 0)
    return at_wall_time(now, _clamped_date(year, month, now.day), wall)


def _month_reference(ref: str, now: datetime) -> tuple[int, int]:
    ref = _words(ref)
    if ref == "this month":
        return now.year, now.month
    if ref == "next month":
        return add_months(now.year, now.month, 1)
    month = MONTHS[ref]
    # Forward-looking: a month already behind us this year means next year
    year = now.year + 1 if month < now.month else now.year
    return year, month


def _resolve_ordinal_weekday(match: re.Match, now: datetime) -> datetime | None:
    ordinal = match.group("ordinal").lower()
    n = -1 if ordinal == "last" else ORDINALS[ordinal]
    weekday = WEEKDAYS[match.group("weekday").lower()]
    year, month = _month_reference(match.group("month_ref"), now)
    day = nth_weekday_of_month(year, month, weekday, n)
    if day is None:
        logger.debug(f"No {ordinal} {match.group('weekday')} in {year}-{month:02d}")
        return None
    return midnight(now, day)


def _resolve_absolute(match: re.Match, now: datetime, month: int) -> datetime | None:
    day = int(match.group("day"))
    year_text = match.group("year")
    try:
        if year_text:
            year = int(year_text)
            if len(year_text) == 2:
                year += 2000
            resolved = date(year, month, day)
        else:
            resolved = date(now.year, month, day)
            if resolved < now.date():
                resolved = date(now.year + 1, month, day)
    except ValueError:
        logger.debug(f"Invalid calendar date in {match.group(0)!r}")
        return None
    return midnight(now, resolved)


def _resolve_offset(match: re.Match, now: datetime) -> datetime | None:
    count = parse_count(match.group("count"))
    unit = normalize_unit(match.group("unit"))
    anchor = (match.groupdict().get("anchor") or "").lower()
    keep_time = anchor == "now"

    if unit == "minute":
        return shift_elapsed(now, timedelta(minutes=count))
    if unit == "hour":
        return shift_elapsed(now, timedelta(hours=count))
    if unit == "day":
        return shift_days(now, count, keep_time=keep_time)
    if unit == "week":
        return shift_days(now, 7 * count, keep_time=keep_time)
    if unit == "month":
        return _shift_months(now, count, keep_time)
    if unit == "year":
        return _shift_months(now, 12 * count, keep_time)
    return None


def _resolve_relative_day(match: re.Match, now: datetime) -> datetime:
    phrase = _words(match.group("day"))
    if phrase in ("today", "tonight"):
        return midnight(now)
    if phrase in ("tomorrow", "tmr", "tmrw"):
        return shift_days(now, 1, keep_time=False)
    if phrase == "yesterday":
        return shift_days(now, -1, keep_time=False)
    # "day after tomorrow"
    return shift_days(now, 2, keep_time=False)


def _resolve_relative_period(match: re.Match, now: datetime) -> datetime:
    which = match.group("which").lower()
    period = match.group("period").lower()
    if which == "this":
        return midnight(now)
    sign = 1 if which == "next" else -1
    if period == "week":
        return shift_days(now, 7 * sign, keep_time=False)
    if period == "month":
        return _shift_months(now, sign, keep_time=False)
    return _shift_months(now, 12 * sign, keep_time=False)


def _resolve_weekday(match: re.Match, now: datetime) -> datetime:
    target = WEEKDAYS[match.group("weekday").lower()]
    qualifier = _words(match.group("qualifier") or "")
    days_ahead = (target - now.weekday()) % 7
    if days_ahead == 0 and qualifier in ("next", "coming", "this coming"):
        days_ahead = 7
    return shift_days(now, days_ahead, keep_time=False)


def _resolve_numbered_month(match: re.Match, now: datetime) -> datetime | None:
    month = int(match.group("month"))
    if not 1 <= month <= 12:
        return None
    return _resolve_absolute(match, now, month)


def _resolve_named_month(match: re.Match, now: datetime) -> datetime | None:
    return _resolve_absolute(match, now, MONTHS[match.group("month").lower()])


_RESOLVERS = {
    ORDINAL_WEEKDAY: _resolve_ordinal_weekday,
    ISO_DATE: _resolve_numbered_month,
    MONTH_DAY: _resolve_named_month,
    DAY_MONTH: _resolve_named_month,
    NUMERIC_DATE: _resolve_numbered_month,
    OFFSET: _resolve_offset,
    RELATIVE_DAY: _resolve_relative_day,
    RELATIVE_PERIOD: _resolve_relative_period,
    WEEKDAY: _resolve_weekday,
}


def resolve_match(kind: str, match: re.Match, now: datetime) -> datetime | None:
    """Resolve a regex match from DATE_PATTERNS into a datetime.

    Returns None when the result falls outside the representable calendar
    (e.g. "tomorrow" anchored on 9999-12-31).
    """
    resolver = _RESOLVERS.get(kind)
    if resolver is None:
        raise ValueError(f"Unknown date phrase kind: {kind}")
    try:
        return resolver(match, now)
    except (OverflowError, ValueError) as e:
        logger.debug(f"Cannot resolve {match.group(0)!r} from {now.isoformat()}: {e}")
        return None


def resolve_range(match: re.Match, now: datetime) -> tuple[datetime, datetime] | None:
    """Resolve a RANGE_PATTERN match into (start, end).

    The end is resolved against the anchor first; if that lands on or before
    the start ("Friday to Monday"), it is resolved again counting from the
    start. Returns None unless the end ends up strictly after the start.
    """
    start = resolve(match.group("start"), now)
    if start is None:
        return None
    end = resolve(match.group("end"), now)
    if end is not None and end <= start:
        end = resolve(match.group("end"), start)
    if end is None or end <= start:
        return None
    return start, end


def resolve(phrase: str, now: datetime) -> datetime | None:
    """Resolve a whole date phrase against the anchor ``now``.

    Args:
        phrase: A date phrase such as "next Friday" or "two weeks from now"
        now: Anchor datetime; naive or timezone-aware

    Returns:
        The resolved datetime, or None if the phrase isn't a recognized date
        phrase or names a date that doesn't exist (e.g. a fifth Friday in a
        month with only four).

    Examples:
        resolve("the third Friday of next month", datetime(2024, 1, 15))
            -> datetime(2024, 2, 16, 0, 0)
        resolve("two weeks from now", datetime(2024, 1, 15))
            -> datetime(2024, 1, 29, 0, 0)
    """
    phrase = phrase.strip()
    for pattern in DATE_PATTERNS:
        match = pattern.regex.fullmatch(phrase)
        if match:
            return resolve_match(pattern.kind, match, now)
    return None
