"""Smart parser: turns free-form task text into a clean title and tags.

    parse("Lunch at Central Park next Friday at noon #urgent @john", now)

runs every recognizer over the text, resolves overlapping candidates, and
strips the winning spans to produce the clean title ("Lunch"). The result is
a pure function of (text, now): no clock reads, no shared state.
"""

import functools
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime

from smartinput import sentry
from smartinput.config import settings
from smartinput.errors import InvalidAnchorError, RecognizerError
from smartinput.services.conflicts import resolve_conflicts
from smartinput.services.dates import recognize_dates
from smartinput.services.labels import recognize_labels
from smartinput.services.people import recognize_people
from smartinput.services.places import recognize_locations
from smartinput.services.priority import recognize_priority
from smartinput.services.tags import ParsedTag, ParseResult, collapse_whitespace

logger = logging.getLogger(__name__)

RecognizeFn = Callable[[str, datetime], list[ParsedTag]]


@dataclass(frozen=True)
class Recognizer:
    name: str
    recognize: RecognizeFn


def default_recognizers(
    infer_categories: bool | None = None,
    infer_venues: bool | None = None,
) -> list[Recognizer]:
    """Recognizers in execution order (which is also the final tie-break order)."""
    if infer_categories is None:
        infer_categories = settings.parser_infer_categories
    if infer_venues is None:
        infer_venues = settings.parser_infer_venues
    return [
        Recognizer("dates", recognize_dates),
        Recognizer("priority", recognize_priority),
        Recognizer(
            "locations",
            functools.partial(recognize_locations, infer_venues=infer_venues),
        ),
        Recognizer("people", recognize_people),
        Recognizer(
            "labels",
            functools.partial(recognize_labels, infer_categories=infer_categories),
        ),
    ]


@dataclass
class DebugParse:
    """Raw per-recognizer candidates alongside the final result."""

    candidates: dict[str, list[ParsedTag]] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)
    result: ParseResult | None = None


def build_clean_title(text: str, tags: Sequence[ParsedTag]) -> str:
    """Remove each tag's span (and its consumed spans) from text and normalize whitespace."""
    spans = sorted(
        span for tag in tags for span in [(tag.start_index, tag.end_index), *tag.consumed_spans]
    )
    pieces = []
    cursor = 0
    for start, end in spans:
        if start > cursor:
            pieces.append(text[cursor:start])
        cursor = max(cursor, end)
    pieces.append(text[cursor:])
    return collapse_whitespace("".join(pieces))


def aggregate_confidence(tags: Sequence[ParsedTag]) -> float:
    """Mean tag confidence; 1.0 when nothing was found."""
    if not tags:
        return 1.0
    return sum(t.confidence for t in tags) / len(tags)


def _validate(text: str, now: datetime) -> None:
    if not isinstance(now, datetime):
        raise InvalidAnchorError(
            f"parse() needs a datetime anchor, got {type(now).__name__}"
        )
    if not isinstance(text, str):
        raise TypeError(f"parse() needs str text, got {type(text).__name__}")


class SmartParser:
    """Runs recognizers, resolves conflicts, and assembles ParseResults."""

    def __init__(
        self,
        recognizers: Sequence[Recognizer] | None = None,
        infer_categories: bool | None = None,
        infer_venues: bool | None = None,
    ):
        """Initialize the parser.

        Args:
            recognizers: Recognizers to run, in order. Defaults to all of them.
            infer_categories: Enable inferred category labels. Defaults to
                settings.parser_infer_categories. Ignored when recognizers is given.
            infer_venues: Tag bare venue nouns ("gym", "office"). Defaults to
                settings.parser_infer_venues. Ignored when recognizers is given.
        """
        if recognizers is None:
            recognizers = default_recognizers(infer_categories, infer_venues)
        self.recognizers = list(recognizers)

    def _collect(self, text: str, now: datetime) -> tuple[dict[str, list[ParsedTag]], dict[str, str]]:
        candidates: dict[str, list[ParsedTag]] = {}
        errors: dict[str, str] = {}
        for recognizer in self.recognizers:
            try:
                candidates[recognizer.name] = list(recognizer.recognize(text, now))
            except Exception as e:
                error = RecognizerError(recognizer.name, e)
                logger.exception(f"Recognizer {recognizer.name} failed")
                sentry.report_recognizer_failure(recognizer.name, e, len(text))
                errors[recognizer.name] = str(error)
                candidates[recognizer.name] = []
        return candidates, errors

    def parse(self, text: str, now: datetime) -> ParseResult:
        """Parse text against the anchor time ``now``.

        Args:
            text: Raw user input
            now: Anchor for relative dates; required

        Returns:
            ParseResult with the clean title, winning tags sorted by start,
            aggregate confidence, conflicts, and the first recognizer error
            (if any)

        Raises:
            InvalidAnchorError: If now is not a datetime
            TypeError: If text is not a string
        """
        _validate(text, now)
        candidates, errors = self._collect(text, now)
        return self._assemble(text, candidates, errors)

    def debug_parse(self, text: str, now: datetime) -> DebugParse:
        """Parse, keeping every recognizer's raw candidates for inspection."""
        _validate(text, now)
        candidates, errors = self._collect(text, now)
        result = self._assemble(text, candidates, errors)
        return DebugParse(candidates=candidates, errors=errors, result=result)

    def _assemble(
        self,
        text: str,
        candidates: dict[str, list[ParsedTag]],
        errors: dict[str, str],
    ) -> ParseResult:
        ordered: list[ParsedTag] = []
        for recognizer in self.recognizers:
            for candidate in candidates.get(recognizer.name, []):
                ordered.append(replace(candidate, id=f"c{len(ordered) + 1}"))

        winners, conflicts = resolve_conflicts(ordered)
        result = ParseResult(
            clean_title=build_clean_title(text, winners),
            tags=winners,
            confidence=aggregate_confidence(winners),
            conflicts=conflicts,
            error=next(iter(errors.values()), None),
        )
        logger.debug(
            f"Parsed {len(text)} chars: {len(ordered)} candidates, "
            f"{len(winners)} tags, {len(conflicts)} conflicts"
        )
        return result


_parser: SmartParser | None = None


def get_parser() -> SmartParser:
    """Get the shared SmartParser, built from settings on first use."""
    global _parser
    if _parser is None:
        _parser = SmartParser()
    return _parser


def reset_parser() -> None:
    """Reset the shared parser (useful for testing)."""
    global _parser
    _parser = None


def parse(text: str, now: datetime) -> ParseResult:
    """Parse text with the shared parser. See SmartParser.parse."""
    return get_parser().parse(text, now)
