"""Live parsing for text inputs.

Binds the smart parser to a text value that changes on every keystroke:

- changes are debounced (settings.parser_debounce_ms) before parsing
- input shorter than settings.parser_min_length is not parsed at all
- every call gets a sequence number and only the latest one may publish;
  an older parse that finishes late is dropped (last call wins)
- failures become an ``error`` on the published state, never an exception

Runs on the asyncio event loop; the parse itself is synchronous and cheap.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from smartinput import sentry
from smartinput.config import settings
from smartinput.services.parser import SmartParser, get_parser
from smartinput.services.tags import ParsedTag, ParseResult, collapse_whitespace
from smartinput.services.timezone import anchor_now

logger = logging.getLogger(__name__)


@dataclass
class LiveParseState:
    """What a text input binds to."""

    result: ParseResult | None = None
    clean_title: str = ""
    tags: list[ParsedTag] = field(default_factory=list)
    confidence: float = 1.0
    is_loading: bool = False
    error: str | None = None

    @property
    def has_conflicts(self) -> bool:
        return self.result is not None and self.result.has_conflicts

    @classmethod
    def from_result(cls, result: ParseResult) -> "LiveParseState":
        return cls(
            result=result,
            clean_title=result.clean_title,
            tags=list(result.tags),
            confidence=result.confidence,
            is_loading=False,
            error=result.error,
        )


class LiveParser:
    """Debounced, last-call-wins wrapper around SmartParser."""

    def __init__(
        self,
        parser: SmartParser | None = None,
        *,
        debounce_ms: int | None = None,
        min_length: int | None = None,
        enabled: bool = True,
        clock: Callable[[], datetime] | None = None,
        on_update: Callable[[LiveParseState], None] | None = None,
    ):
        """Initialize the live parser.

        Args:
            parser: Parser to use. Defaults to the shared parser.
            debounce_ms: Delay before parsing. Defaults to settings.parser_debounce_ms.
            min_length: Shortest input worth parsing. Defaults to settings.parser_min_length.
            enabled: When False every update publishes an empty result.
            clock: Supplies the anchor time for each parse. Defaults to the
                current time in settings.user_timezone.
            on_update: Called with each newly published state.
        """
        self._parser = parser or get_parser()
        self.debounce_ms = settings.parser_debounce_ms if debounce_ms is None else debounce_ms
        self.min_length = settings.parser_min_length if min_length is None else min_length
        self.enabled = enabled
        self._clock = clock or anchor_now
        self._on_update = on_update

        self._sequence = 0
        self._pending: asyncio.Task | None = None
        self._state = LiveParseState()

    @property
    def state(self) -> LiveParseState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    def _next_sequence(self) -> int:
        self._sequence += 1
        if self._pending is not None and not self._pending.done():
            # Only the debounce timer is cancelled; a parse never runs mid-await
            self._pending.cancel()
        self._pending = None
        return self._sequence

    def _publish(self, state: LiveParseState) -> None:
        self._state = state
        if self._on_update is None:
            return
        try:
            self._on_update(state)
        except Exception:
            logger.exception("Live parse listener failed")

    def _should_skip(self, text: str) -> bool:
        return not self.enabled or len(text.strip()) < self.min_length

    def _run(self, text: str, sequence: int) -> LiveParseState:
        try:
            result = self._parser.parse(text, self._clock())
            state = LiveParseState.from_result(result)
        except Exception as e:
            logger.exception("Live parse failed")
            sentry.capture_exception(e)
            state = LiveParseState.from_result(ParseResult.empty(text))
            state.error = str(e) or type(e).__name__

        if sequence != self._sequence:
            logger.debug(f"Dropping stale parse #{sequence} (latest is #{self._sequence})")
            return self._state

        self._publish(state)
        return state

    async def _debounced(self, text: str, sequence: int) -> None:
        await asyncio.sleep(self.debounce_ms / 1000)
        self._run(text, sequence)

    def update(self, text: str) -> asyncio.Task | None:
        """Feed a new text value; parses after the debounce delay.

        Must be called from a running event loop.

        Returns:
            The scheduled task, or None when the text was too short to parse
            (an empty result is published immediately).
        """
        sequence = self._next_sequence()

        if self._should_skip(text):
            self._publish(LiveParseState.from_result(ParseResult.empty(text)))
            return None

        self._publish(
            LiveParseState(
                result=self._state.result,
                clean_title=collapse_whitespace(text),
                tags=self._state.tags,
                confidence=self._state.confidence,
                is_loading=True,
                error=None,
            )
        )
        self._pending = asyncio.get_running_loop().create_task(self._debounced(text, sequence))
        return self._pending

    def parse_now(self, text: str) -> LiveParseState:
        """Parse immediately, superseding any pending debounced parse."""
        sequence = self._next_sequence()
        if self._should_skip(text):
            state = LiveParseState.from_result(ParseResult.empty(text))
            self._publish(state)
            return state
        return self._run(text, sequence)

    def clear(self) -> None:
        """Drop pending work and reset to an empty state."""
        self._next_sequence()
        self._publish(LiveParseState())

    async def wait(self) -> LiveParseState:
        """Wait for pending parses to settle and return the latest state."""
        while self._pending is not None and not self._pending.done():
            await asyncio.wait([self._pending])
        return self._state
