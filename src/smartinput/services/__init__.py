"""Smart input services.

Recognizers, conflict resolution, the parser and its live binding. Imports are
lazy so importing one piece doesn't pull in the rest.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

_EXPORTS: dict[str, tuple[str, str]] = {
    # Tags
    "Candidate": ("smartinput.services.tags", "Candidate"),
    "ConflictGroup": ("smartinput.services.tags", "ConflictGroup"),
    "ParsedTag": ("smartinput.services.tags", "ParsedTag"),
    "ParseResult": ("smartinput.services.tags", "ParseResult"),
    "PriorityLevel": ("smartinput.services.tags", "PriorityLevel"),
    "TagType": ("smartinput.services.tags", "TagType"),
    # Timezone
    "anchor_now": ("smartinput.services.timezone", "anchor_now"),
    # Relative dates
    "resolve_date": ("smartinput.services.relative_dates", "resolve"),
    "nth_weekday_of_month": ("smartinput.services.relative_dates", "nth_weekday_of_month"),
    # Recognizers
    "recognize_dates": ("smartinput.services.dates", "recognize_dates"),
    "recognize_labels": ("smartinput.services.labels", "recognize_labels"),
    "recognize_locations": ("smartinput.services.places", "recognize_locations"),
    "recognize_people": ("smartinput.services.people", "recognize_people"),
    "recognize_priority": ("smartinput.services.priority", "recognize_priority"),
    # Conflicts
    "resolve_conflicts": ("smartinput.services.conflicts", "resolve_conflicts"),
    # Parser
    "Recognizer": ("smartinput.services.parser", "Recognizer"),
    "SmartParser": ("smartinput.services.parser", "SmartParser"),
    "default_recognizers": ("smartinput.services.parser", "default_recognizers"),
    "get_parser": ("smartinput.services.parser", "get_parser"),
    "parse": ("smartinput.services.parser", "parse"),
    "reset_parser": ("smartinput.services.parser", "reset_parser"),
    # Live parsing
    "LiveParser": ("smartinput.services.live_parser", "LiveParser"),
    "LiveParseState": ("smartinput.services.live_parser", "LiveParseState"),
}

__all__ = list(_EXPORTS.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module_name, attr_name = _EXPORTS[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(list(globals().keys()) + list(_EXPORTS.keys()))
