"""Person recognizer.

Strategies, most to least certain:
1. @mentions (0.98)
2. A name right after a contact verb: "call john", "meet with José" (0.80)
3. Kinship terms: mom, dad, sister... (0.75)
4. Capitalized possessives: "John's" (0.70)

Display names are title-cased with possessives stripped; spans keep the
original text so highlighting still covers "John's".
"""

import re
from datetime import datetime

from smartinput.services.relative_dates import MONTHS, WEEKDAYS
from smartinput.services.tags import ParsedTag, TagType

SOURCE = "person-parser"

MENTION_CONFIDENCE = 0.98
CONTEXT_CONFIDENCE = 0.8
KINSHIP_CONFIDENCE = 0.75
POSSESSIVE_CONFIDENCE = 0.7

KINSHIP_TERMS = [
    "mom", "mum", "dad", "father", "mother", "brother", "sister", "son", "daughter",
    "grandma", "grandmother", "grandpa", "grandfather", "aunt", "uncle", "cousin",
    "partner", "spouse", "wife", "husband",
]

# Words that follow contact verbs or take possessives without being people
NOT_PEOPLE = frozenset(
    list(WEEKDAYS)
    + list(MONTHS)
    + [
        "me", "you", "him", "her", "them", "us", "it", "everyone", "someone", "somebody",
        "team", "the", "a", "an", "my", "your", "his", "their", "our", "this", "that",
        "back", "about", "at", "in", "on", "for", "to", "from", "and", "or", "re",
        "regarding", "later", "soon", "today", "tonight", "tomorrow", "yesterday",
        "morning", "afternoon", "evening", "night", "noon", "week", "month", "year",
        "up", "out", "over", "again", "asap", "i", "let's", "everybody", "all", "with",
        "friends", "family", "colleagues", "coworkers", "clients", "people", "anyone",
    ]
)

# Lowercase words after a contact verb that name the thing being sent or
# discussed ("email report", "text new number"). Capitalized, they still count.
TASK_WORDS = frozenset(
    [
        "report", "reports", "proposal", "presentation", "deck", "slides", "doc", "docs",
        "document", "documents", "file", "files", "notes", "update", "updates", "summary",
        "agenda", "contract", "draft", "link", "links", "list", "plan", "form", "forms",
        "invoice", "invoices", "bill", "bills", "receipt", "receipts", "budget", "quote",
        "number", "address", "details", "info", "photos", "pics", "feedback", "reminder",
        "review", "meeting", "call", "email", "message", "boss", "manager", "client",
        "clients", "customer", "support", "office", "landlord", "doctor", "dentist",
        "new", "old", "final", "latest", "quick", "short", "some", "any", "every",
    ]
)

_NAME = r"[^\W\d_](?:[\w'’-]|\.(?=\w))*"

MENTION_RE = re.compile(rf"(?<![\w@])@(?P<name>{_NAME})")

CONTEXT_RE = re.compile(
    rf"\b(?:zoom\s+with|meet\s+(?:up\s+)?with|with|call|text|email|meet|message|ping|dm|ask|tell)\s+(?P<name>{_NAME})",
    re.IGNORECASE,
)

_NEXT_NAME_RE = re.compile(rf"\s+(?P<name>{_NAME})")

KINSHIP_RE = re.compile(rf"\b(?:{'|'.join(KINSHIP_TERMS)})\b", re.IGNORECASE)

POSSESSIVE_RE = re.compile(r"(?<![\w@])(?P<name>[^\W\d_][\w-]*)['’]s\b")

_POSSESSIVE_SUFFIX = re.compile(r"['’]s$", re.IGNORECASE)


def normalize_name(raw: str) -> str:
    """Strip possessives and trailing punctuation, then title-case each word."""
    name = _POSSESSIVE_SUFFIX.sub("", raw.strip())
    name = name.rstrip(".,!?;:")
    name = " ".join(name.split())
    return " ".join(word[:1].upper() + word[1:] for word in name.split(" ") if word)


def _is_person_word(word: str) -> bool:
    return _POSSESSIVE_SUFFIX.sub("", word).lower() not in NOT_PEOPLE


class _PeopleCollector:
    """Collects person candidates, keeping the most confident one per exact span."""

    def __init__(self, text: str):
        self.text = text
        self._by_span: dict[tuple[int, int], ParsedTag] = {}

    def add(self, start: int, end: int, confidence: float, value: str | None = None) -> None:
        original = self.text[start:end]
        name = value if value is not None else normalize_name(original)
        if not name:
            return
        existing = self._by_span.get((start, end))
        if existing is not None and existing.confidence >= confidence:
            return
        self._by_span[(start, end)] = ParsedTag(
            type=TagType.PERSON,
            value=name,
            original_text=original,
            display_text=name,
            start_index=start,
            end_index=end,
            confidence=confidence,
            source=SOURCE,
        )

    def tags(self) -> list[ParsedTag]:
        return list(self._by_span.values())


def recognize_people(text: str, now: datetime) -> list[ParsedTag]:
    """Find people referenced in text."""
    people = _PeopleCollector(text)

    for match in MENTION_RE.finditer(text):
        people.add(match.start(), match.end(), MENTION_CONFIDENCE, normalize_name(match.group("name")))

    for match in CONTEXT_RE.finditer(text):
        name = match.group("name")
        if not _is_person_word(name) or name in TASK_WORDS:
            continue
        end = match.end("name")
        # "meet with John Smith": extend over a capitalized surname
        if name[0].isupper() and not _POSSESSIVE_SUFFIX.search(name):
            following = _NEXT_NAME_RE.match(text, end)
            if following:
                surname = following.group("name")
                if surname[0].isupper() and _is_person_word(surname):
                    end = following.end("name")
        people.add(match.start("name"), end, CONTEXT_CONFIDENCE)

    for match in KINSHIP_RE.finditer(text):
        people.add(match.start(), match.end(), KINSHIP_CONFIDENCE)

    for match in POSSESSIVE_RE.finditer(text):
        name = match.group("name")
        if not name[0].isupper() or name.lower() in NOT_PEOPLE:
            continue
        people.add(match.start(), match.end(), POSSESSIVE_CONFIDENCE)

    return people.tags()
