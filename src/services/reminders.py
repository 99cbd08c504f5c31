"""
Reminder dispatch job.

Finds events whose reminder window is open, claims each one in the reminder
log, emails the organizer, and marks the reminder sent only after the email
transport confirms. Failed sends are released with backoff and retried on a
later run.

Store calls are blocking sqlite3 work and run in worker threads so a locked
database does not stall the event loop.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

from core.config import (
    CLAIM_TIMEOUT_MINUTES,
    DISPLAY_TIMEZONE,
    LOOKAHEAD_MINUTES,
    MAX_SEND_ATTEMPTS,
    RETRY_BACKOFF_MINUTES,
    SEND_TIMEOUT_SECONDS,
)
from core.database import ReminderLogError
from core.validation import validate_event
from models.events import Event, ReminderRecord
from services.email import format_reminder_email


class EventStore(Protocol):
    def query_reminder_candidates(self, now: datetime, horizon: timedelta) -> list[Event]: ...


class ReminderLog(Protocol):
    def find_sent(self, event_id: str) -> ReminderRecord | None: ...

    def claim(
        self, event: Event, now: datetime, claim_timeout: timedelta, max_attempts: int
    ) -> str | None: ...

    def mark_sent(self, event_id: str, token: str, sent_at: datetime) -> bool: ...

    def release(
        self, event_id: str, token: str, error: str, now: datetime, backoff: timedelta
    ) -> int | None: ...


class EmailTransport(Protocol):
    async def send(self, to: str, subject: str, html_body: str): ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ReminderFailure:
    """
    A reminder that did not complete.

    attempts is None when the failure was not counted against the event
    (reminder log error, or the claim was lost). delivered is True when the
    email went out but could not be recorded as sent.
    """

    event_id: str
    error: str
    attempts: int | None
    delivered: bool = False


@dataclass
class RejectedEvent:
    event_id: str
    errors: list[str]


@dataclass
class DispatchSummary:
    """Outcome of one dispatch run. processed counts candidates, not sends."""

    processed: int = 0
    sent: int = 0
    skipped: int = 0
    not_due: int = 0
    failures: list[ReminderFailure] = field(default_factory=list)
    rejected: list[RejectedEvent] = field(default_factory=list)
    sent_event_ids: list[str] = field(default_factory=list)


class ReminderDispatcher:
    """Runs the reminder job against injected stores, transport and clock."""

    def __init__(
        self,
        event_store: EventStore,
        reminder_log: ReminderLog,
        transport: EmailTransport,
        clock: Callable[[], datetime] = utc_now,
        lookahead: timedelta = timedelta(minutes=LOOKAHEAD_MINUTES),
        send_timeout: float = SEND_TIMEOUT_SECONDS,
        max_attempts: int = MAX_SEND_ATTEMPTS,
        retry_backoff: timedelta = timedelta(minutes=RETRY_BACKOFF_MINUTES),
        claim_timeout: timedelta = timedelta(minutes=CLAIM_TIMEOUT_MINUTES),
        display_timezone: str = DISPLAY_TIMEZONE,
    ):
        self.event_store = event_store
        self.reminder_log = reminder_log
        self.transport = transport
        self.clock = clock
        self.lookahead = lookahead
        self.send_timeout = send_timeout
        self.max_attempts = max_attempts
        self.retry_backoff = retry_backoff
        self.claim_timeout = claim_timeout
        self.display_timezone = display_timezone

    async def run(self) -> DispatchSummary:
        """
        Run one dispatch pass.

        Raises:
            EventStoreError: if the candidate query fails (nothing is sent)
        """
        now = self.clock()
        summary = DispatchSummary()

        print("Checking for events that need reminders...")
        events = await asyncio.to_thread(
            self.event_store.query_reminder_candidates, now, self.lookahead
        )
        summary.processed = len(events)
        print(f"Found {len(events)} candidate event(s)")

        for event in events:
            await self._process_event(event, now, summary)

        print(
            f"Processed {summary.processed}: sent={summary.sent} skipped={summary.skipped} "
            f"not_due={summary.not_due} failed={len(summary.failures)} "
            f"rejected={len(summary.rejected)}"
        )
        return summary

    async def _process_event(self, event: Event, now: datetime, summary: DispatchSummary):
        errors = validate_event(event)
        if errors:
            print(f"  Warning: rejecting event {event.id}: {'; '.join(errors)}")
            summary.rejected.append(RejectedEvent(event_id=event.id, errors=errors))
            return

        if not event.is_due(now):
            summary.not_due += 1
            return

        subject, html_body = format_reminder_email(event, self.display_timezone)

        try:
            if await asyncio.to_thread(self.reminder_log.find_sent, event.id):
                summary.skipped += 1
                return
            token = await asyncio.to_thread(
                self.reminder_log.claim, event, now, self.claim_timeout, self.max_attempts
            )
        except ReminderLogError as e:
            print(f"  Failed to check reminder log for {event.id}: {e}")
            summary.failures.append(ReminderFailure(event_id=event.id, error=str(e), attempts=None))
            return

        if token is None:
            # Another run holds it, it is backing off, or attempts are exhausted
            summary.skipped += 1
            return

        print(f"  Sending reminder for event: {event.title} ({event.id})")

        try:
            await asyncio.wait_for(
                self.transport.send(event.organizer_email, subject, html_body),
                timeout=self.send_timeout,
            )
        except asyncio.TimeoutError:
            await self._record_failure(
                event, token, f"Send timed out after {self.send_timeout}s", now, summary
            )
            return
        except Exception as e:
            await self._record_failure(event, token, f"{type(e).__name__}: {e}", now, summary)
            return

        summary.sent += 1
        summary.sent_event_ids.append(event.id)

        try:
            recorded = await asyncio.to_thread(self.reminder_log.mark_sent, event.id, token, now)
        except ReminderLogError as e:
            # Claim stays held, so no run resends until it goes stale
            print(f"  Warning: reminder for {event.id} sent but not recorded: {e}")
            summary.failures.append(
                ReminderFailure(
                    event_id=event.id,
                    error=f"Sent but not recorded: {e}",
                    attempts=None,
                    delivered=True,
                )
            )
            return

        if recorded:
            print(f"  Reminder sent to {event.organizer_email}")
        else:
            # Claim expired mid-send and was taken over by another run
            print(f"  Warning: reminder for {event.id} sent but claim was lost before recording")

    async def _record_failure(
        self, event: Event, token: str, error: str, now: datetime, summary: DispatchSummary
    ):
        try:
            attempts = await asyncio.to_thread(
                self.reminder_log.release, event.id, token, error, now, self.retry_backoff
            )
        except ReminderLogError as e:
            print(f"  Failed to send reminder for {event.id}: {error} (release failed: {e})")
            summary.failures.append(
                ReminderFailure(event_id=event.id, error=f"{error}; {e}", attempts=None)
            )
            return

        if attempts is None:
            print(f"  Failed to send reminder for {event.id}: {error} (claim was lost)")
            error = f"{error}; claim was lost before release"
        else:
            print(f"  Failed to send reminder for {event.id} (attempt {attempts}): {error}")
            if attempts >= self.max_attempts:
                print(f"  Giving up on {event.id} after {attempts} attempts")
        summary.failures.append(
            ReminderFailure(event_id=event.id, error=error, attempts=attempts)
        )
