"""Tag model for smart input parsing.

A ParsedTag is a typed span of the source text. Recognizers emit them as
candidates (which may overlap each other); the conflict resolver keeps one
winner per overlapping cluster and the parser wraps the winners in a
ParseResult.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class TagType(str, Enum):
    """Tag taxonomy shared with the tagging service."""

    DATE = "date"
    TIME = "time"
    PRIORITY = "priority"
    LOCATION = "location"
    PERSON = "person"
    LABEL = "label"


class PriorityLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return {"low": 1, "medium": 2, "high": 3}[self.value]


# Presentation hints (Lucide icon names, hex colors)
TYPE_ICONS: dict[TagType, str] = {
    TagType.DATE: "Calendar",
    TagType.TIME: "Clock",
    TagType.LOCATION: "MapPin",
    TagType.PERSON: "User",
    TagType.LABEL: "Tag",
    TagType.PRIORITY: "Flag",
}

TYPE_COLORS: dict[TagType, str] = {
    TagType.DATE: "#3b82f6",  # Blue
    TagType.TIME: "#3b82f6",
    TagType.LOCATION: "#10b981",  # Green
    TagType.PERSON: "#8b5cf6",  # Purple
    TagType.LABEL: "#6b7280",  # Gray
    TagType.PRIORITY: "#f59e0b",
}

PRIORITY_ICONS: dict[PriorityLevel, str] = {
    PriorityLevel.HIGH: "AlertCircle",
    PriorityLevel.MEDIUM: "Flag",
    PriorityLevel.LOW: "Minus",
}

PRIORITY_COLORS: dict[PriorityLevel, str] = {
    PriorityLevel.HIGH: "#ef4444",  # Red
    PriorityLevel.MEDIUM: "#f59e0b",  # Amber
    PriorityLevel.LOW: "#6b7280",  # Gray
}

_WHITESPACE = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


@dataclass
class ParsedTag:
    """A typed, positioned, confidence-scored span of the source text."""

    type: TagType
    value: Any
    original_text: str
    display_text: str
    start_index: int
    end_index: int  # exclusive
    confidence: float
    icon_name: str = ""
    color: str = ""
    source: str = ""
    id: str = ""
    # Other spans this tag accounts for (secondary priority cues). They leave
    # the clean title with the tag but take no part in conflict resolution.
    consumed_spans: tuple[tuple[int, int], ...] = ()

    def __post_init__(self):
        if self.start_index < 0 or self.start_index >= self.end_index:
            raise ValueError(f"Invalid span [{self.start_index}, {self.end_index})")
        if self.end_index - self.start_index != len(self.original_text):
            raise ValueError(
                f"Span [{self.start_index}, {self.end_index}) does not match "
                f"{self.original_text!r}"
            )
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence {self.confidence} outside [0, 1]")
        for start, end in self.consumed_spans:
            if start < 0 or start >= end:
                raise ValueError(f"Invalid consumed span [{start}, {end})")
        if not self.icon_name:
            self.icon_name = self._default_icon()
        if not self.color:
            self.color = self._default_color()

    def _default_icon(self) -> str:
        if self.type == TagType.PRIORITY and isinstance(self.value, PriorityLevel):
            return PRIORITY_ICONS[self.value]
        return TYPE_ICONS[self.type]

    def _default_color(self) -> str:
        if self.type == TagType.PRIORITY and isinstance(self.value, PriorityLevel):
            return PRIORITY_COLORS[self.value]
        return TYPE_COLORS[self.type]

    def overlaps(self, other: "ParsedTag") -> bool:
        return self.start_index < other.end_index and other.start_index < self.end_index

    def length(self) -> int:
        return self.end_index - self.start_index

    def to_dict(self) -> dict:
        """Return the tag as a JSON-friendly dictionary."""
        value = self.value
        if isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        return {
            "id": self.id,
            "type": self.type.value,
            "value": value,
            "originalText": self.original_text,
            "displayText": self.display_text,
            "startIndex": self.start_index,
            "endIndex": self.end_index,
            "confidence": round(self.confidence, 4),
            "iconName": self.icon_name,
            "color": self.color,
            "source": self.source,
            "consumedSpans": [list(span) for span in self.consumed_spans],
        }


# Candidates share the tag shape; they just haven't been through conflict resolution yet.
Candidate = ParsedTag


@dataclass
class ConflictGroup:
    """A cluster of overlapping candidates and the one that won it."""

    winner: ParsedTag
    discarded: list[ParsedTag] = field(default_factory=list)

    @property
    def start_index(self) -> int:
        return min(t.start_index for t in [self.winner, *self.discarded])

    @property
    def end_index(self) -> int:
        return max(t.end_index for t in [self.winner, *self.discarded])

    def to_dict(self) -> dict:
        return {
            "startIndex": self.start_index,
            "endIndex": self.end_index,
            "winner": self.winner.to_dict(),
            "discarded": [t.to_dict() for t in self.discarded],
        }


@dataclass
class ParseResult:
    """Output of a single parse call."""

    clean_title: str
    tags: list[ParsedTag] = field(default_factory=list)
    confidence: float = 1.0
    conflicts: list[ConflictGroup] = field(default_factory=list)
    error: str | None = None

    @classmethod
    def empty(cls, text: str, error: str | None = None) -> "ParseResult":
        """Result with no tags; the title is the raw text, whitespace-collapsed."""
        return cls(clean_title=collapse_whitespace(text), error=error)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    def tags_of(self, tag_type: TagType | str) -> list[ParsedTag]:
        tag_type = TagType(tag_type)
        return [t for t in self.tags if t.type == tag_type]

    def to_dict(self) -> dict:
        return {
            "cleanTitle": self.clean_title,
            "tags": [t.to_dict() for t in self.tags],
            "confidence": round(self.confidence, 4),
            "conflicts": [c.to_dict() for c in self.conflicts],
            "error": self.error,
        }
