#!/usr/bin/env python3
"""
Send reminders for events whose reminder window is open.

Meant to be run from cron every minute, or left running with --loop.
The interval must stay below the look-ahead horizon (REMINDER_LOOKAHEAD_MINUTES)
or reminder windows shorter than the gap can be missed.

Usage:
    uv run python src/scripts/send_reminders.py
    uv run python src/scripts/send_reminders.py --loop --interval 60
"""

import argparse
import asyncio
import sys
import time
import traceback
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.logging import RunLog, log_run
from core.config import DB_PATH, LOOKAHEAD_MINUTES, POLL_INTERVAL_SECONDS
from core.database import EventStoreError, SqliteEventStore, SqliteReminderLog, get_connection
from services.email import GraphEmailTransport, send_error_email
from services.reminders import DispatchSummary, ReminderDispatcher


async def run_once(transport=None) -> DispatchSummary:
    """Run a single dispatch pass and record it in the run log."""
    start_time = time.time()
    run_log = RunLog(trigger="script")
    conn = get_connection(DB_PATH)

    try:
        dispatcher = ReminderDispatcher(
            event_store=SqliteEventStore(conn),
            reminder_log=SqliteReminderLog(conn),
            transport=transport or GraphEmailTransport(),
        )
        summary = await dispatcher.run()

        run_log.status_code = 200
        run_log.events_processed = summary.processed
        run_log.reminders_sent = summary.sent
        run_log.reminders_failed = len(summary.failures)
        for event_id in summary.sent_event_ids:
            run_log.details.append(("reminder_sent", event_id))
        for failure in summary.failures:
            kind = "sent_unrecorded" if failure.delivered else "send_failed"
            run_log.details.append((kind, f"{failure.event_id}: {failure.error}"))
        for rejected in summary.rejected:
            run_log.details.append(
                ("rejected_event", f"{rejected.event_id}: {'; '.join(rejected.errors)}")
            )
        return summary

    except EventStoreError as e:
        run_log.status_code = 500
        run_log.error_code = "EVENT_STORE_ERROR"
        run_log.error_message = str(e)
        raise

    finally:
        run_log.processing_time_ms = int((time.time() - start_time) * 1000)
        try:
            log_run(conn, run_log)
        except Exception as e:
            print(f"Failed to log reminder run: {e}")
        conn.close()


async def main(loop: bool = False, interval: int = POLL_INTERVAL_SECONDS):
    """Main entry point."""
    if interval >= LOOKAHEAD_MINUTES * 60:
        print(
            f"Warning: interval {interval}s is not shorter than the "
            f"{LOOKAHEAD_MINUTES} minute look-ahead; some reminders may be missed"
        )

    if not loop:
        try:
            await run_once()
            print("\nDone!")
        except Exception as e:
            print(f"\nError: {e}")
            traceback.print_exc()
            await send_error_email(e)
            raise
        return

    while True:
        try:
            await run_once()
        except Exception as e:
            # Keep polling; the next pass retries anything this one missed
            print(f"\nError: {e}")
            traceback.print_exc()
            await send_error_email(e)
        await asyncio.sleep(interval)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Send due event reminders")
    parser.add_argument(
        "--loop",
        action="store_true",
        help="Keep polling instead of running once.",
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=POLL_INTERVAL_SECONDS,
        help=f"Seconds between polls with --loop. Defaults to {POLL_INTERVAL_SECONDS}.",
    )
    args = parser.parse_args()

    asyncio.run(main(args.loop, args.interval))
