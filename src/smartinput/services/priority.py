"""Priority recognizer.

Detects priority markers such as p1/p2/p3, bang-notation ("!!!", "!high")
and urgency keywords, then consolidates every cue into a single tag: the
highest severity wins, then the highest confidence, then a cue outside any
#label or @mention, then the earliest match. The remaining cues ride along
as consumed spans.
"""

import re
from dataclasses import dataclass
from datetime import datetime

from smartinput.services.tags import ParsedTag, PriorityLevel, TagType

SOURCE = "priority-parser"

HIGH = PriorityLevel.HIGH
MEDIUM = PriorityLevel.MEDIUM
LOW = PriorityLevel.LOW

# Standalone runs of "!" (not attached to a word)
_BANG_LEVELS: dict[int, PriorityLevel] = {3: HIGH, 2: MEDIUM, 1: LOW}


@dataclass(frozen=True)
class PriorityPattern:
    regex: re.Pattern
    level: PriorityLevel | None  # None: level depends on the match itself
    confidence: float


def _words(pattern: str) -> re.Pattern:
    return re.compile(rf"\b(?:{pattern})\b", re.IGNORECASE)


PRIORITY_PATTERNS: list[PriorityPattern] = [
    # Explicit Todoist-style markers
    PriorityPattern(_words("p1"), HIGH, 0.95),
    PriorityPattern(_words("p2"), MEDIUM, 0.95),
    PriorityPattern(_words("p3"), LOW, 0.95),
    # Bang notation
    PriorityPattern(re.compile(r"(?<!\S)!(?P<word>high|medium|low)\b", re.IGNORECASE), None, 0.95),
    PriorityPattern(re.compile(r"(?<![\w!])(?P<bangs>!{1,3})(?![\w!])"), None, 0.9),
    # High priority keywords
    PriorityPattern(_words("urgent|critical|asap|emergency|high priority|important"), HIGH, 0.85),
    PriorityPattern(_words("top priority|highest priority|must do"), HIGH, 0.90),
    PriorityPattern(_words("due soon|overdue|time sensitive"), HIGH, 0.80),
    PriorityPattern(_words("high"), HIGH, 0.75),
    # Medium priority keywords
    PriorityPattern(_words("medium priority|normal priority|moderate"), MEDIUM, 0.80),
    PriorityPattern(_words("medium"), MEDIUM, 0.70),
    # Low priority keywords
    PriorityPattern(_words("low priority|when possible|someday|maybe|optional"), LOW, 0.80),
    PriorityPattern(_words("least priority|lowest priority|nice to have"), LOW, 0.85),
    PriorityPattern(_words("no rush|no hurry|eventually"), LOW, 0.75),
    PriorityPattern(_words("low"), LOW, 0.65),
]

DISPLAY_TEXT: dict[PriorityLevel, str] = {
    HIGH: "High Priority",
    MEDIUM: "Medium Priority",
    LOW: "Low Priority",
}


def _level_for(pattern: PriorityPattern, match: re.Match) -> PriorityLevel:
    if pattern.level is not None:
        return pattern.level
    groups = match.groupdict()
    if groups.get("word"):
        return PriorityLevel(groups["word"].lower())
    return _BANG_LEVELS[len(groups["bangs"])]


def adjust_confidence(base: float, match_text: str, text: str) -> float:
    """Adjust a pattern's base confidence for the context it matched in."""
    confidence = base

    # Very short markers in long text are more likely incidental
    if len(match_text) <= 2 and len(text) > 50:
        confidence *= 0.8

    if re.fullmatch(r"p[123]", match_text.strip(), re.IGNORECASE):
        confidence = min(0.98, confidence + 0.1)

    # Phrases are less ambiguous than single words
    if " " in match_text:
        confidence = min(0.95, confidence + 0.05)

    return max(0.1, min(1.0, confidence))


def _in_sigil(text: str, match: re.Match) -> bool:
    """True for cues that are part of a #label or @mention ("#urgent")."""
    return match.start() > 0 and text[match.start() - 1] in "#@"


def recognize_priority(text: str, now: datetime) -> list[ParsedTag]:
    """Return at most one priority candidate for the strongest cue in text.

    The candidate's consumed_spans list every other cue, so "urgent important
    fix" cleans to "fix" rather than leaving "important" behind.
    """
    cues: list[tuple[PriorityLevel, float, re.Match]] = []
    for pattern in PRIORITY_PATTERNS:
        for match in pattern.regex.finditer(text):
            confidence = adjust_confidence(pattern.confidence, match.group(0), text)
            cues.append((_level_for(pattern, match), confidence, match))

    if not cues:
        return []

    # Bare cues outrank equal ones inside "#urgent", which the label also claims
    level, confidence, match = max(
        cues,
        key=lambda cue: (cue[0].rank, cue[1], not _in_sigil(text, cue[2]), -cue[2].start()),
    )
    consumed = sorted({
        other.span()
        for _, _, other in cues
        if not (other.start() < match.end() and match.start() < other.end())
    })
    return [
        ParsedTag(
            type=TagType.PRIORITY,
            value=level,
            original_text=match.group(0),
            display_text=DISPLAY_TEXT[level],
            start_index=match.start(),
            end_index=match.end(),
            confidence=confidence,
            source=SOURCE,
            consumed_spans=tuple(consumed),
        )
    ]
