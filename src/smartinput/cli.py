import argparse
import json
import logging
import sys
from datetime import datetime

from smartinput.config import settings
from smartinput.sentry import flush as sentry_flush
from smartinput.sentry import init_sentry


def setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _anchor(now: str | None, timezone: str | None) -> datetime:
    from smartinput.services.timezone import anchor_now, get_timezone

    if now is None:
        return anchor_now(timezone)

    try:
        anchor = datetime.fromisoformat(now)
    except ValueError:
        print(f"Error: --now must be an ISO 8601 datetime, got {now!r}")
        sys.exit(2)

    if anchor.tzinfo is None and timezone:
        tz = get_timezone(timezone)
        anchor = tz.localize(anchor) if hasattr(tz, "localize") else anchor.replace(tzinfo=tz)
    return anchor


def _print_tag(tag, indent: str = "  ") -> None:
    print(
        f"{indent}[{tag.start_index:>3}, {tag.end_index:>3}) {tag.type.value:<8} "
        f"{tag.display_text!r} ({tag.confidence:.2f}, {tag.source})"
    )


def parse_text(text: str, now: str | None, timezone: str | None, as_json: bool, debug: bool) -> None:
    from smartinput.services.parser import get_parser

    anchor = _anchor(now, timezone)
    parser = get_parser()

    if debug:
        outcome = parser.debug_parse(text, anchor)
        result = outcome.result
    else:
        outcome = None
        result = parser.parse(text, anchor)

    if as_json:
        payload = result.to_dict()
        if outcome is not None:
            payload["candidates"] = {
                name: [c.to_dict() for c in found] for name, found in outcome.candidates.items()
            }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    print(f"Anchor: {anchor.isoformat()}")
    print(f"Title:  {result.clean_title!r}")
    print(f"Confidence: {result.confidence:.2f}\n")

    if result.tags:
        print("Tags:")
        for tag in result.tags:
            _print_tag(tag)
    else:
        print("No tags found")

    if result.conflicts:
        print("\nConflicts:")
        for group in result.conflicts:
            print(f"  [{group.start_index}, {group.end_index}) kept {group.winner.original_text!r}")
            for loser in group.discarded:
                _print_tag(loser, indent="    - ")

    if outcome is not None:
        print("\nCandidates:")
        for name, found in outcome.candidates.items():
            print(f"  {name}: {len(found)}")
            for candidate in found:
                _print_tag(candidate, indent="    ")

    if result.error:
        print(f"\nError: {result.error}")


def check_config() -> None:
    import pytz

    print("Smart Input Configuration Check\n")

    checks = [
        ("User timezone", settings.user_timezone in pytz.all_timezones_set),
        ("Sentry DSN", settings.has_sentry),
    ]
    for name, configured in checks:
        status = "OK" if configured else "MISSING"
        symbol = "+" if configured else "-"
        print(f"  [{symbol}] {name}: {status}")

    print()
    print(f"  Timezone:          {settings.user_timezone}")
    print(f"  Log level:         {settings.log_level}")
    print(f"  Debounce:          {settings.parser_debounce_ms} ms")
    print(f"  Min input length:  {settings.parser_min_length}")
    print(f"  Infer categories:  {settings.parser_infer_categories}")
    print(f"  Infer venues:      {settings.parser_infer_venues}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Smart input parser")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    parse_cmd = subparsers.add_parser("parse", help="Parse task text into a title and tags")
    parse_cmd.add_argument("text", help="Text to parse")
    parse_cmd.add_argument("--now", help="Anchor time (ISO 8601); defaults to the current time")
    parse_cmd.add_argument("--timezone", help="Timezone for the anchor; defaults to USER_TIMEZONE")
    parse_cmd.add_argument("--json", action="store_true", help="Print the result as JSON")
    parse_cmd.add_argument("--debug", action="store_true", help="Show every recognizer's candidates")

    subparsers.add_parser("check-config", help="Check configuration")

    args = parser.parse_args()

    setup_logging()

    # Initialize Sentry for error tracking (disabled if no DSN configured)
    init_sentry(
        dsn=settings.sentry_dsn if settings.has_sentry else None,
        environment=settings.sentry_environment,
    )

    try:
        if args.command == "parse":
            parse_text(args.text, args.now, args.timezone, args.json, args.debug)
        elif args.command == "check-config":
            check_config()
        else:
            parser.print_help()
    finally:
        # Flush any pending Sentry events before exit
        sentry_flush(timeout=2.0)


if __name__ == "__main__":
    main()
