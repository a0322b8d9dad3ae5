#!/usr/bin/env python3
"""Weekly schedule to iCalendar converter.

Reads a schedule document (phases, weekly entries and date overrides),
materializes the concrete occurrences and writes an iCalendar (.ics) feed,
prints a per-day agenda, or dry-runs a prospective override.
"""

import argparse
import json
import logging
import sys
from datetime import date, datetime
from typing import Optional

from planner import (
    CalendarMaterializationService,
    MaterializedEntry,
    build_override,
)
from storage import load_document
from transformer import ICalTransformer

WEEKDAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def parse_date(date_str: str) -> date:
    """Parse date string in YYYY-MM-DD format."""
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Invalid date format: '{date_str}'. Expected YYYY-MM-DD."
        )


def parse_clock(value: str) -> int:
    """Parse HH:MM into minutes since midnight."""
    try:
        parsed = datetime.strptime(value, "%H:%M")
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Invalid time format: '{value}'. Expected HH:MM."
        )
    return parsed.hour * 60 + parsed.minute


def format_clock(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


def format_entry(entry: MaterializedEntry, conflicting: bool = False) -> str:
    line = (
        f"  {format_clock(entry.start_time_minutes)}-"
        f"{format_clock(entry.end_time_minutes)}  {entry.name}"
    )
    if entry.override_type is not None:
        line += f"  [{entry.override_type.value}]"
    if conflicting:
        line += "  (conflict)"
    return line


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Materialize a weekly schedule and export it to iCalendar format.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  schedule2ical feed family.json -o family.ics
  schedule2ical feed family.json --start-date 2024-09-01 --end-date 2024-12-31
  schedule2ical agenda family.json --start-date 2024-07-01 --end-date 2024-07-07
  schedule2ical check family.json --date 2024-07-01 --type ONE_TIME --name Dentist --start 07:30 --duration 30
        """
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    feed = subparsers.add_parser("feed", help="Write an .ics feed")
    feed.add_argument("schedule_file", help="Path to the schedule JSON document")
    feed.add_argument(
        "--start-date",
        type=parse_date,
        default=None,
        help="First day of the feed (format: YYYY-MM-DD). "
             "Default: earliest phase start, or today"
    )
    feed.add_argument(
        "--end-date",
        type=parse_date,
        default=None,
        help="Last day of the feed (format: YYYY-MM-DD). "
             "Default: latest phase end, or the horizon"
    )
    feed.add_argument(
        "-o", "--output",
        default="schedule.ics",
        help="Output file path (default: schedule.ics)"
    )
    feed.add_argument(
        "--base-url",
        default=None,
        help="Link event descriptions back to <base-url>/schedule/<id>"
    )
    feed.add_argument(
        "--horizon-days",
        type=int,
        default=ICalTransformer.DEFAULT_HORIZON_DAYS,
        help="Feed length, counted from the start date, when no phase end covers it "
             f"(default: {ICalTransformer.DEFAULT_HORIZON_DAYS})"
    )

    agenda = subparsers.add_parser("agenda", help="Print the materialized agenda")
    agenda.add_argument("schedule_file", help="Path to the schedule JSON document")
    agenda.add_argument(
        "--start-date",
        type=parse_date,
        required=True,
        help="First day (format: YYYY-MM-DD)"
    )
    agenda.add_argument(
        "--end-date",
        type=parse_date,
        default=None,
        help="Last day (format: YYYY-MM-DD). Default: the start date"
    )
    agenda.add_argument("--json", action="store_true", help="Print JSON instead of text")

    check = subparsers.add_parser("check", help="Dry-run a prospective override")
    check.add_argument("schedule_file", help="Path to the schedule JSON document")
    check.add_argument("--date", type=parse_date, required=True, help="Override date (YYYY-MM-DD)")
    check.add_argument(
        "--type",
        required=True,
        choices=["SKIP", "MODIFY", "ONE_TIME"],
        help="Override type"
    )
    check.add_argument("--base-entry-id", default=None, help="Entry targeted by SKIP/MODIFY")
    check.add_argument("--name", default=None, help="Event name")
    check.add_argument("--start", type=parse_clock, default=None, help="Start time (HH:MM)")
    check.add_argument("--duration", type=int, default=None, help="Duration in minutes")

    return parser


def run_feed(args: argparse.Namespace) -> None:
    # Ensure output file has .ics extension
    output_path = args.output
    if not output_path.lower().endswith(".ics"):
        output_path = f"{output_path}.ics"

    document = load_document(args.schedule_file)
    transformer = ICalTransformer(base_url=args.base_url, horizon_days=args.horizon_days)
    start_date, end_date = transformer.feed_window(document.schedule, start_date=args.start_date)
    start_date = args.start_date or start_date
    end_date = args.end_date or end_date
    if start_date > end_date:
        raise ValueError("Start date must not be after end date.")

    calendar = transformer.transform(document.schedule, document.overrides, start_date, end_date)
    transformer.save(output_path)

    events = calendar.walk("VEVENT")
    print(f"Schedule '{document.schedule.name}': {len(events)} events.")
    if not events:
        print("Warning: No events in this period. The output file will be empty.")
    print(f"Feed saved to: {output_path}")
    print(f"Period: {start_date} to {end_date}")


def run_agenda(args: argparse.Namespace) -> None:
    end_date = args.end_date or args.start_date
    if args.start_date > end_date:
        raise ValueError("Start date must not be after end date.")

    document = load_document(args.schedule_file)
    service = CalendarMaterializationService()
    by_date = service.materialize_schedule_for_date_range(
        document.schedule, args.start_date, end_date, document.overrides
    )

    if args.json:
        payload = {
            day: [entry.to_dict() for entry in entries]
            for day, entries in by_date.items()
        }
        print(json.dumps(payload, indent=2))
        return

    for day, entries in by_date.items():
        weekday = WEEKDAY_NAMES[date.fromisoformat(day).isoweekday() % 7]
        print(f"{day} ({weekday})")
        if not entries:
            print("  (no entries)")
            continue
        conflicting = set()
        for pair in service.find_conflicts(entries):
            conflicting.update((pair.entry1.id, pair.entry2.id))
        for entry in entries:
            print(format_entry(entry, entry.id in conflicting))


def run_check(args: argparse.Namespace) -> None:
    document = load_document(args.schedule_file)
    override_data = {
        "name": args.name,
        "start_time_minutes": args.start,
        "duration_minutes": args.duration,
    }
    override_data = {key: value for key, value in override_data.items() if value is not None}
    override = build_override(
        id="preview",
        schedule_id=document.schedule.id,
        override_date=args.date.isoformat(),
        override_type=args.type,
        base_entry_id=args.base_entry_id,
        override_data=override_data or None,
    )

    result = CalendarMaterializationService().validate_override_for_date(
        document.schedule, args.date, override, document.overrides
    )
    if result.valid:
        print(f"OK: no conflicts on {args.date}.")
        return

    print(f"Conflicts on {args.date}:")
    for entry in result.conflicts:
        print(format_entry(entry))
    sys.exit(2)


COMMANDS = {
    "feed": run_feed,
    "agenda": run_agenda,
    "check": run_check,
}


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the command-line tool."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        COMMANDS[args.command](args)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user.", file=sys.stderr)
        sys.exit(130)
    except FileNotFoundError as e:
        print(f"Error: File not found: {e.filename}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: An unexpected error occurred: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
