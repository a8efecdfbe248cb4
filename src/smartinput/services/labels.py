"""Label recognizer.

``#label`` sigils are unambiguous and always recognized. Inferring a task
category from vocabulary ("standup" -> work, "groceries" -> shopping) is
opt-in, since those words usually belong in the title as well.
"""

import re
from dataclasses import dataclass
from datetime import datetime

from smartinput.services.tags import ParsedTag, TagType

SOURCE = "label-parser"

SIGIL_CONFIDENCE = 0.98

LABEL_RE = re.compile(r"(?<![\w#&])#(?P<label>[^\W_][\w/-]*)")

CATEGORY_PATTERNS: dict[str, re.Pattern] = {
    "work": re.compile(
        r"\b(?:work|office|meeting|project|presentation|deadline|client|boss|manager|colleague|"
        r"coworker|email|report|proposal|brief|sprint|scrum|standup|jira|pr|pull request|review|"
        r"deploy|zoom|slack)\b",
        re.IGNORECASE,
    ),
    "personal": re.compile(
        r"\b(?:personal|family|home|house|chores|cleaning|cooking|grocery|shopping|doctor|dentist|"
        r"appointment|kids|children|errand|laundry|garden|pets?)\b",
        re.IGNORECASE,
    ),
    "health": re.compile(
        r"\b(?:doctor|dentist|hospital|clinic|pharmacy|medicine|workout|gym|exercise|yoga|therapy|"
        r"checkup|physio|run|jog|cycle|swim)\b",
        re.IGNORECASE,
    ),
    "shopping": re.compile(
        r"\b(?:buy|purchase|shop|store|mall|grocery|groceries|food|clothes|gift|amazon|online|order|"
        r"cart|checkout|wishlist)\b",
        re.IGNORECASE,
    ),
    "finance": re.compile(
        r"\b(?:bank|atm|money|payment|bill|invoice|taxes|budget|insurance|loan|mortgage|salary|"
        r"payroll|expense|refund)\b",
        re.IGNORECASE,
    ),
    "social": re.compile(
        r"\b(?:friend|friends|dinner|lunch|coffee|party|birthday|wedding|event|meet|hangout|brunch|"
        r"drinks?|movie|concert|game night)\b",
        re.IGNORECASE,
    ),
    "travel": re.compile(
        r"\b(?:flight|plane|airport|hotel|vacation|trip|travel|book|ticket|passport|visa|train|bus|"
        r"uber|lyft|drive|commute|itinerary|boarding pass)\b",
        re.IGNORECASE,
    ),
    "education": re.compile(
        r"\b(?:school|university|college|class|study|homework|exam|test|assignment|library|lecture|"
        r"seminar|course|tutor|thesis)\b",
        re.IGNORECASE,
    ),
}

# Only the strongest category in each group is kept
EXCLUSIVE_CATEGORY_GROUPS: list[tuple[str, ...]] = [
    ("work", "education"),
    ("shopping", "personal"),
]

CATEGORY_ICONS: dict[str, str] = {
    "work": "Briefcase",
    "personal": "Home",
    "health": "Heart",
    "shopping": "ShoppingCart",
    "finance": "DollarSign",
    "social": "Users",
    "travel": "Plane",
    "education": "GraduationCap",
}

CATEGORY_COLORS: dict[str, str] = {
    "work": "#3b82f6",  # Blue
    "personal": "#10b981",  # Green
    "health": "#ef4444",  # Red
    "shopping": "#f59e0b",  # Amber
    "finance": "#059669",  # Emerald
    "social": "#8b5cf6",  # Purple
    "travel": "#06b6d4",  # Cyan
    "education": "#dc2626",  # Red
}


@dataclass
class CategoryScore:
    category: str
    score: float
    first_match: re.Match


def score_categories(text: str) -> list[CategoryScore]:
    """Score each category by how much of its vocabulary appears in text."""
    scores = []
    for category, pattern in CATEGORY_PATTERNS.items():
        matches = list(pattern.finditer(text))
        if not matches:
            continue
        score = len(matches) + (0.2 if any(len(m.group(0)) > 5 for m in matches) else 0)
        scores.append(CategoryScore(category=category, score=score, first_match=matches[0]))
    return scores


def select_categories(scores: list[CategoryScore]) -> list[CategoryScore]:
    """Apply exclusivity groups, keeping category order stable."""
    selected: set[str] = set()
    grouped = {c for group in EXCLUSIVE_CATEGORY_GROUPS for c in group}

    for group in EXCLUSIVE_CATEGORY_GROUPS:
        in_group = [s for s in scores if s.category in group]
        if in_group:
            # max() keeps the first of equal scores, i.e. the group's declared order
            selected.add(max(in_group, key=lambda s: s.score).category)

    for s in scores:
        if s.category not in grouped and s.score >= 1:
            selected.add(s.category)

    return [s for s in scores if s.category in selected]


def _sigil_labels(text: str) -> list[ParsedTag]:
    tags = []
    for match in LABEL_RE.finditer(text):
        label = match.group("label")
        tags.append(
            ParsedTag(
                type=TagType.LABEL,
                value=label,
                original_text=match.group(0),
                display_text=f"#{label}",
                start_index=match.start(),
                end_index=match.end(),
                confidence=SIGIL_CONFIDENCE,
                source=SOURCE,
            )
        )
    return tags


def _category_labels(text: str) -> list[ParsedTag]:
    tags = []
    for s in select_categories(score_categories(text)):
        match = s.first_match
        tags.append(
            ParsedTag(
                type=TagType.LABEL,
                value=s.category,
                original_text=match.group(0),
                display_text=s.category.capitalize(),
                start_index=match.start(),
                end_index=match.end(),
                confidence=min(0.9, 0.5 + s.score * 0.1),
                icon_name=CATEGORY_ICONS[s.category],
                color=CATEGORY_COLORS[s.category],
                source=SOURCE,
            )
        )
    return tags


def recognize_labels(text: str, now: datetime, infer_categories: bool = False) -> list[ParsedTag]:
    """Find #labels, plus inferred category labels when enabled."""
    tags = _sigil_labels(text)
    if infer_categories:
        tags.extend(_category_labels(text))
    return tags
