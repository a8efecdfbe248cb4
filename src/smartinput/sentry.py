"""Sentry error reporting for the smart input parser.

Recognizer faults never escape the parser. They are logged and reported here
instead, tagged with the failing recognizer, so they still surface in
production. Nothing leaves the process until init_sentry() has run with a DSN,
and what the user typed is redacted from every event and breadcrumb.

Usage:
    from smartinput.sentry import init_sentry
    init_sentry()  # SENTRY_DSN via settings; stays off when unset
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

if TYPE_CHECKING:
    from sentry_sdk._types import Breadcrumb, BreadcrumbHint, Event, Hint

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"

# Fields that may carry the raw input or pieces of it
_INPUT_KEYS = frozenset(
    ["text", "raw_text", "input", "title", "clean_title", "original_text", "sentry_dsn"]
)

_initialized = False


def init_sentry(
    dsn: str | None = None,
    environment: str | None = None,
    release: str | None = None,
    traces_sample_rate: float = 0.0,
) -> bool:
    """Turn on error reporting.

    Args:
        dsn: Sentry DSN. Defaults to settings.sentry_dsn; empty keeps reporting off.
        environment: Defaults to settings.sentry_environment.
        release: Defaults to "smartinput@<version>".
        traces_sample_rate: Performance tracing sample rate (0.0-1.0).

    Returns:
        True once reporting is on, False when no DSN is configured.
    """
    global _initialized

    if _initialized:
        return True

    from smartinput.config import settings

    dsn = settings.sentry_dsn if dsn is None else dsn
    if not dsn:
        logger.info("Error reporting off: SENTRY_DSN not set")
        return False

    environment = environment or settings.sentry_environment
    if release is None:
        from smartinput import __version__

        release = f"smartinput@{__version__}"

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        traces_sample_rate=traces_sample_rate,
        # Log records become breadcrumbs only; faults are captured explicitly
        integrations=[LoggingIntegration(level=logging.INFO, event_level=None)],
        send_default_pii=False,
        before_send=_before_send,
        before_breadcrumb=_before_breadcrumb,
    )

    _initialized = True
    logger.info(f"Error reporting on: environment={environment}, release={release}")
    return True


def _redact(data: dict[str, Any]) -> None:
    """Replace input-bearing values in place, at any depth."""
    for key, value in data.items():
        if key.lower() in _INPUT_KEYS:
            data[key] = REDACTED
        elif isinstance(value, dict):
            _redact(value)


def _before_send(event: Event, hint: Hint) -> Event | None:
    extra = event.get("extra")
    if isinstance(extra, dict):
        _redact(extra)

    breadcrumbs = event.get("breadcrumbs")
    if isinstance(breadcrumbs, dict):
        for crumb in breadcrumbs.get("values", []):
            if isinstance(crumb.get("data"), dict):
                _redact(crumb["data"])

    return event


def _before_breadcrumb(crumb: Breadcrumb, hint: BreadcrumbHint) -> Breadcrumb | None:
    if isinstance(crumb.get("data"), dict):
        _redact(crumb["data"])
    return crumb


def add_breadcrumb(
    message: str,
    category: str = "parser",
    level: str = "info",
    data: dict[str, Any] | None = None,
) -> None:
    if not _initialized:
        return
    sentry_sdk.add_breadcrumb(message=message, category=category, level=level, data=data or {})


def capture_exception(exception: BaseException | None = None) -> str | None:
    """Report an exception. Returns the event ID, or None while reporting is off."""
    if not _initialized:
        return None
    return sentry_sdk.capture_exception(exception)


def report_recognizer_failure(recognizer: str, error: BaseException, text_length: int) -> str | None:
    """Report a recognizer that raised mid-parse.

    Only the recognizer name and the input length are attached; never the text.

    Returns:
        The event ID, or None while reporting is off.
    """
    if not _initialized:
        return None

    add_breadcrumb(
        f"{recognizer} recognizer failed",
        level="error",
        data={"recognizer": recognizer, "text_length": text_length},
    )
    with sentry_sdk.new_scope() as scope:
        scope.set_tag("recognizer", recognizer)
        return sentry_sdk.capture_exception(error)


def flush(timeout: float = 2.0) -> None:
    """Send queued events before the process exits."""
    if not _initialized:
        return
    sentry_sdk.flush(timeout=timeout)


def is_enabled() -> bool:
    return _initialized
