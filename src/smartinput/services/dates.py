"""Date and time recognizer.

Scans text for date phrases (via the relative date resolver's pattern table)
and time-of-day phrases. Patterns run from most to least specific; once a
span is claimed, later overlapping matches are skipped, so "next Friday" is
never also reported as "Friday". A phrase that matches but can't be resolved
(e.g. "fifth Friday of February") still claims its span and is dropped.

Date ranges run first and yield two tags: the start date and an "Until ..."
end date.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, time

from smartinput.services.relative_dates import (
    DATE_PATTERNS,
    DAY_MONTH,
    ISO_DATE,
    MONTH_DAY,
    NUMERIC_DATE,
    OFFSET,
    ORDINAL_WEEKDAY,
    RANGE,
    RANGE_PATTERN,
    RELATIVE_DAY,
    RELATIVE_PERIOD,
    TIME_UNITS,
    WEEKDAY,
    normalize_unit,
    resolve_match,
    resolve_range,
)
from smartinput.services.tags import ParsedTag, TagType
from smartinput.services.timezone import at_wall_time

logger = logging.getLogger(__name__)

SOURCE = "date-parser"

# Time-of-day phrase kinds
CLOCK = "clock"
HOUR_MERIDIEM = "hour_meridiem"
NAMED_TIME = "named_time"
BARE_AT = "bare_at"
DAY_PART = "day_part"

DATE_CONFIDENCE: dict[str, float] = {
    ISO_DATE: 0.95,
    MONTH_DAY: 0.85,
    DAY_MONTH: 0.85,
    NUMERIC_DATE: 0.85,
    ORDINAL_WEEKDAY: 0.85,
    OFFSET: 0.85,
    RELATIVE_DAY: 0.9,
    RELATIVE_PERIOD: 0.8,
    WEEKDAY: 0.75,
    RANGE: 0.85,
}

TIME_CONFIDENCE: dict[str, float] = {
    CLOCK: 0.9,
    HOUR_MERIDIEM: 0.9,
    NAMED_TIME: 0.9,
    BARE_AT: 0.6,
    DAY_PART: 0.7,
}

NAMED_TIMES: dict[str, time] = {
    "noon": time(12, 0),
    "midday": time(12, 0),
    "midnight": time(0, 0),
}

DAY_PARTS: dict[str, time] = {
    "morning": time(9, 0),
    "afternoon": time(14, 0),
    "evening": time(18, 0),
    "night": time(20, 0),
}

_MERIDIEM = r"(?P<meridiem>[ap]\.?m\.?)"


@dataclass(frozen=True)
class TimePattern:
    kind: str
    regex: re.Pattern


TIME_PATTERNS: list[TimePattern] = [
    TimePattern(
        CLOCK,
        re.compile(
            rf"\b(?:at\s+)?(?P<hour>\d{{1,2}}):(?P<minute>\d{{2}})(?:\s*{_MERIDIEM})?(?![\w:])",
            re.IGNORECASE,
        ),
    ),
    TimePattern(
        HOUR_MERIDIEM,
        re.compile(rf"\b(?:at\s+)?(?P<hour>\d{{1,2}})\s*{_MERIDIEM}(?!\w)", re.IGNORECASE),
    ),
    TimePattern(
        NAMED_TIME,
        re.compile(r"\b(?:at\s+)?(?P<name>noon|midday|midnight)\b", re.IGNORECASE),
    ),
    TimePattern(
        BARE_AT,
        re.compile(r"\bat\s+(?P<hour>\d{1,2})\b(?!\s*(?:[:.]\d|%|[ap]\.?m\b))", re.IGNORECASE),
    ),
    TimePattern(
        DAY_PART,
        re.compile(
            r"\b(?:(?:in\s+the|this|at)\s+)?(?P<part>morning|afternoon|evening|night)\b",
            re.IGNORECASE,
        ),
    ),
]


def format_time(value: datetime) -> str:
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def format_date(value: datetime, now: datetime) -> str:
    """Human-readable date relative to the anchor."""
    days = (value.date() - now.date()).days
    if days == 0:
        return "Today"
    if days == 1:
        return "Tomorrow"
    if 0 < days <= 7:
        return value.strftime("%A")
    text = f"{value:%b} {value.day}"
    if value.year != now.year:
        text += f", {value.year}"
    return text


def _clock_time(hour: int, minute: int, meridiem: str | None) -> time | None:
    """Validate and convert clock components, or None if they aren't a real time."""
    if minute > 59:
        return None
    if meridiem:
        if not 1 <= hour <= 12:
            return None
        is_pm = meridiem.lower().startswith("p")
        if is_pm and hour < 12:
            hour += 12
        elif not is_pm and hour == 12:
            hour = 0
    elif hour > 23:
        return None
    return time(hour, minute)


def _resolve_time(kind: str, match: re.Match) -> time | None:
    if kind == CLOCK:
        return _clock_time(int(match.group("hour")), int(match.group("minute")), match.group("meridiem"))
    if kind == HOUR_MERIDIEM:
        return _clock_time(int(match.group("hour")), 0, match.group("meridiem"))
    if kind == NAMED_TIME:
        return NAMED_TIMES[match.group("name").lower()]
    if kind == BARE_AT:
        hour = int(match.group("hour"))
        if not 1 <= hour <= 12:
            return None
        # "at 3" in a task almost always means the afternoon
        if hour <= 7:
            hour += 12
        return time(hour, 0)
    if kind == DAY_PART:
        return DAY_PARTS[match.group("part").lower()]
    raise ValueError(f"Unknown time phrase kind: {kind}")


class _SpanClaims:
    """Spans already taken by an earlier, more specific pattern."""

    def __init__(self):
        self._spans: list[tuple[int, int]] = []

    def claim(self, start: int, end: int) -> bool:
        if any(start < e and s < end for s, e in self._spans):
            return False
        self._spans.append((start, end))
        return True


def _date_confidence(kind: str, match: re.Match) -> float:
    if kind == MONTH_DAY and match.group("year"):
        return 0.9
    return DATE_CONFIDENCE[kind]


def _range_tags(
    text: str, match: re.Match, bounds: tuple[datetime, datetime], now: datetime
) -> list[ParsedTag]:
    """Split a range into a start tag and an "Until ..." end tag.

    The start tag covers everything up to the end of the first date; the end
    tag covers the connector and the second date, so the two never overlap.
    """
    start, end = bounds
    split = match.end("start")
    connector = match.start("connector")
    return [
        ParsedTag(
            type=TagType.DATE,
            value=start,
            original_text=text[match.start():split],
            display_text=format_date(start, now),
            start_index=match.start(),
            end_index=split,
            confidence=DATE_CONFIDENCE[RANGE],
            source=SOURCE,
        ),
        ParsedTag(
            type=TagType.DATE,
            value=end,
            original_text=text[connector:match.end()],
            display_text=f"Until {format_date(end, now)}",
            start_index=connector,
            end_index=match.end(),
            confidence=DATE_CONFIDENCE[RANGE],
            source=SOURCE,
        ),
    ]


def recognize_dates(text: str, now: datetime) -> list[ParsedTag]:
    """Find date and time phrases in text.

    Args:
        text: Raw input text
        now: Anchor for relative phrases

    Returns:
        Non-overlapping date/time candidates in discovery order
    """
    tags: list[ParsedTag] = []
    claims = _SpanClaims()

    for match in RANGE_PATTERN.finditer(text):
        bounds = resolve_range(match, now)
        if bounds is None:
            # Leave both ends to the single-date patterns
            continue
        claims.claim(match.start(), match.end())
        tags.extend(_range_tags(text, match, bounds, now))

    for pattern in DATE_PATTERNS:
        for match in pattern.regex.finditer(text):
            if not claims.claim(match.start(), match.end()):
                continue
            value = resolve_match(pattern.kind, match, now)
            if value is None:
                continue

            is_time = pattern.kind == OFFSET and normalize_unit(match.group("unit")) in TIME_UNITS
            if is_time:
                display = format_time(value)
                if value.date() != now.date():
                    display = f"{format_date(value, now)} at {display}"
            else:
                display = format_date(value, now)

            tags.append(
                ParsedTag(
                    type=TagType.TIME if is_time else TagType.DATE,
                    value=value,
                    original_text=match.group(0),
                    display_text=display,
                    start_index=match.start(),
                    end_index=match.end(),
                    confidence=_date_confidence(pattern.kind, match),
                    source=SOURCE,
                )
            )

    for pattern in TIME_PATTERNS:
        for match in pattern.regex.finditer(text):
            if not claims.claim(match.start(), match.end()):
                continue
            wall = _resolve_time(pattern.kind, match)
            if wall is None:
                logger.debug(f"Dropping invalid time {match.group(0)!r}")
                continue
            value = at_wall_time(now, now.date(), wall)
            tags.append(
                ParsedTag(
                    type=TagType.TIME,
                    value=value,
                    original_text=match.group(0),
                    display_text=format_time(value),
                    start_index=match.start(),
                    end_index=match.end(),
                    confidence=TIME_CONFIDENCE[pattern.kind],
                    source=SOURCE,
                )
            )

    return tags

