"""Location recognizer.

Escalating patterns, each with its own confidence:

- venue nouns ("the gym", "downtown"): 0.40, opt-in only, since most of
  them double as ordinary words ("park the car")
- prepositional phrases ("at Central Park"): 0.60, or 0.45 for a single
  lowercase word ("in berlin"), since "at" is just as often a time marker
- street names without a number ("Main Street", "Oak Ave"): 0.75
- street addresses ("123 Main St"): 0.85
- full postal addresses ("1 Infinite Loop, Cupertino, CA 95014"): 0.95

Overlapping matches from different patterns are all emitted; the richer
pattern carries the higher confidence so conflict resolution keeps it. The
one exception: a street name inside a numbered address is not reported twice.
"""

import re
from datetime import datetime

from smartinput.services.relative_dates import MONTHS, WEEKDAYS
from smartinput.services.tags import ParsedTag, TagType

SOURCE = "location-parser"

PREPOSITION_CONFIDENCE = 0.6
LOWERCASE_PREPOSITION_CONFIDENCE = 0.45
VENUE_CONFIDENCE = 0.4
STREET_NAME_CONFIDENCE = 0.75
STREET_CONFIDENCE = 0.85
FULL_ADDRESS_CONFIDENCE = 0.95

STREET_SUFFIXES = [
    "St", "Street", "Ave", "Avenue", "Rd", "Road", "Blvd", "Boulevard",
    "Dr", "Drive", "Way", "Ln", "Lane", "Ct", "Court", "Pl", "Place",
    "Cir", "Circle", "Pkwy", "Parkway", "Hwy", "Highway", "Loop",
]

# Words that can follow "at"/"in" without naming a place
NOT_PLACES = frozenset(
    list(WEEKDAYS)
    + list(MONTHS)
    + [
        "today", "tonight", "tomorrow", "yesterday", "noon", "midday", "midnight",
        "morning", "afternoon", "evening", "night", "week", "weekend", "month", "year",
        "next", "this", "last", "the", "a", "an", "my", "your", "our", "his", "her",
        "their", "some", "any", "all", "least", "most", "time", "once", "advance",
        "order", "case", "general", "person", "progress", "total", "about", "around",
        "it", "me", "him", "them", "us", "you", "there", "here", "to", "and", "or",
        "minute", "minutes", "hour", "hours", "day", "days", "weeks", "months", "years",
        "eod", "asap",
    ]
)

_WORD = r"[^\W_][\w'’&-]*"
_SUFFIX_ALT = "|".join(STREET_SUFFIXES)

FULL_ADDRESS_RE = re.compile(
    rf"\b\d{{1,6}}\s+{_WORD}(?:\s+{_WORD})*,\s*{_WORD}(?:\s+{_WORD})*,\s*[A-Z]{{2}}\s+\d{{5}}(?:-\d{{4}})?\b"
)

STREET_ADDRESS_RE = re.compile(
    rf"\b\d{{1,6}}\s+(?:{_WORD}\s+){{1,4}}?(?:{_SUFFIX_ALT})\b\.?"
    r"(?:,?\s*(?:#|Apt\.?|Unit|Suite|Ste\.?)\s*[\w-]+)?",
    re.IGNORECASE,
)

# One capitalized word plus a capitalized suffix. "St" and "Dr" followed by
# another capitalized word are titles ("St Louis", "Dr Smith"), not streets.
STREET_NAME_RE = re.compile(
    rf"\b(?P<name>[A-Z][\w'’-]*)\s+(?:{_SUFFIX_ALT})\b(?!(?<=St|Dr)\.?\s+[A-Z])\.?"
)

VENUES = [
    "downtown", "uptown", "mall", "center", "office", "store", "restaurant",
    "bank", "hospital", "school", "gym", "park",
]

VENUE_RE = re.compile(
    rf"\b(?:(?:at|to|in)\s+)?(?:the\s+)?(?P<venue>{'|'.join(VENUES)})\b",
    re.IGNORECASE,
)

# Capitalized words that put a street suffix after them without naming a street
_NOT_STREET_NAMES = frozenset(["no", "one", "either", "each", "every", "which", "what"])

PREPOSITION_RE = re.compile(
    rf"\b(?P<prep>at|in|near|by|to)\s+(?=(?P<rest>{_WORD}(?:\s+{_WORD}){{0,5}}))",
    re.IGNORECASE,
)

_WORD_RE = re.compile(_WORD)

# Lowercase fallback is limited to prepositions that rarely start verb phrases
_LOWERCASE_PREPOSITIONS = frozenset(["at", "in", "near"])


def _location_tag(text: str, start: int, end: int, place: str, confidence: float) -> ParsedTag:
    return ParsedTag(
        type=TagType.LOCATION,
        value=place,
        original_text=text[start:end],
        display_text=place,
        start_index=start,
        end_index=end,
        confidence=confidence,
        source=SOURCE,
    )


def _prepositional_places(text: str) -> list[ParsedTag]:
    tags = []
    for match in PREPOSITION_RE.finditer(text):
        words = list(_WORD_RE.finditer(text, match.start("rest"), match.end("rest")))

        # Leading run of capitalized words, stopping before any time word
        count = 0
        for word in words:
            token = word.group(0)
            if not token[0].isupper() or token.lower() in NOT_PLACES:
                break
            count += 1

        if count:
            last = words[count - 1]
            place = text[words[0].start():last.end()]
            tags.append(_location_tag(text, match.start(), last.end(), place, PREPOSITION_CONFIDENCE))
            continue

        first = words[0]
        token = first.group(0)
        if (
            match.group("prep").lower() in _LOWERCASE_PREPOSITIONS
            and token.islower()
            and token.isalpha()
            and len(token) > 2
            and token not in NOT_PLACES
        ):
            tags.append(
                _location_tag(text, match.start(), first.end(), token, LOWERCASE_PREPOSITION_CONFIDENCE)
            )
    return tags


def _street_names(text: str, numbered: list[ParsedTag]) -> list[ParsedTag]:
    tags = []
    for match in STREET_NAME_RE.finditer(text):
        start, end = match.span()
        if match.group("name").lower() in NOT_PLACES | _NOT_STREET_NAMES:
            continue
        if any(t.start_index <= start and end <= t.end_index for t in numbered):
            continue
        tags.append(_location_tag(text, start, end, match.group(0), STREET_NAME_CONFIDENCE))
    return tags


def _venues(text: str) -> list[ParsedTag]:
    tags = []
    for match in VENUE_RE.finditer(text):
        venue = match.group("venue").lower()
        tags.append(
            ParsedTag(
                type=TagType.LOCATION,
                value=venue,
                original_text=match.group(0),
                display_text=venue.capitalize(),
                start_index=match.start(),
                end_index=match.end(),
                confidence=VENUE_CONFIDENCE,
                source=SOURCE,
            )
        )
    return tags


def recognize_locations(text: str, now: datetime, infer_venues: bool = False) -> list[ParsedTag]:
    """Find place names and addresses in text.

    Args:
        text: Raw input text
        now: Unused; part of the recognizer signature
        infer_venues: Also tag bare venue nouns ("gym", "office")
    """
    tags = _prepositional_places(text)

    streets = [
        _location_tag(text, match.start(), match.end(), match.group(0), STREET_CONFIDENCE)
        for match in STREET_ADDRESS_RE.finditer(text)
    ]
    tags.extend(_street_names(text, streets))
    tags.extend(streets)

    for match in FULL_ADDRESS_RE.finditer(text):
        tags.append(
            _location_tag(text, match.start(), match.end(), match.group(0), FULL_ADDRESS_CONFIDENCE)
        )

    if infer_venues:
        tags.extend(_venues(text))

    return tags
