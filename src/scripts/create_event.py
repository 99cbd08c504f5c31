#!/usr/bin/env python3
"""
Create an event from the command line.

Usage:
    uv run python src/scripts/create_event.py --title "Tech Talk" \
        --start 2025-06-01T10:00:00Z --end 2025-06-01T11:00:00Z \
        --organizer "Ada Lovelace" --organizer-email ada@college.edu --reminder-minutes 30
"""

import argparse
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DB_PATH, DEFAULT_REMINDER_MINUTES
from core.database import SqliteEventStore, get_connection
from models.events import Event


def parse_timestamp(value: str) -> datetime:
    """Parse ISO 8601 timestamp, treating a missing zone as UTC."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def main(args: argparse.Namespace):
    """Main entry point."""
    event = Event(
        id="",
        title=args.title,
        description=args.description,
        location=args.location,
        start_time=parse_timestamp(args.start),
        end_time=parse_timestamp(args.end),
        organizer=args.organizer,
        organizer_email=args.organizer_email,
        reminder_minutes=args.reminder_minutes,
        created_by=args.created_by,
    )

    conn = get_connection(DB_PATH)
    try:
        created = SqliteEventStore(conn).create_event(event)
    except ValueError as e:
        print("Invalid event:")
        for line in str(e).split("\n"):
            print(f"  - {line}")
        sys.exit(1)
    finally:
        conn.close()

    print(f"Created event: {created.title} (ID: {created.id})")
    print(f"  Reminder at: {created.reminder_time.isoformat()}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a college event")
    parser.add_argument("--title", required=True)
    parser.add_argument("--start", required=True, help="Start time (ISO 8601)")
    parser.add_argument("--end", required=True, help="End time (ISO 8601)")
    parser.add_argument("--organizer", default="")
    parser.add_argument("--organizer-email", required=True)
    parser.add_argument("--description")
    parser.add_argument("--location")
    parser.add_argument("--reminder-minutes", type=int, default=DEFAULT_REMINDER_MINUTES)
    parser.add_argument("--created-by", help="Owning user id")

    main(parser.parse_args())
