"""
SQLite database operations for events and the reminder log.
"""

import sqlite3
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path

from core.config import DB_PATH
from core.validation import validate_event
from models.events import Event, ReminderRecord


class EventStoreError(Exception):
    """Raised when the event store cannot be queried."""


class ReminderLogError(Exception):
    """Raised when the reminder log cannot be read or written."""


def get_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    """Get a database connection."""
    # FastAPI may open the connection in a worker thread and use it on the loop thread
    conn = sqlite3.connect(db_path or DB_PATH, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_schema(conn: sqlite3.Connection):
    """Create tables and indexes if they don't exist."""
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS events (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            description TEXT,
            location TEXT,
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL,
            remind_at TEXT NOT NULL,
            organizer TEXT NOT NULL DEFAULT '',
            organizer_email TEXT NOT NULL,
            reminder_minutes INTEGER NOT NULL DEFAULT 60,
            created_by TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # UNIQUE(event_id) is what makes claiming a reminder atomic
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS event_reminders (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            event_id TEXT UNIQUE NOT NULL,
            recipient_email TEXT NOT NULL,
            scheduled_for TEXT NOT NULL,
            sent INTEGER NOT NULL DEFAULT 0,
            sent_at TEXT,
            attempts INTEGER NOT NULL DEFAULT 0,
            last_error TEXT,
            next_attempt_at TEXT,
            claim_token TEXT,
            claimed_at TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # Dispatch run logging
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS reminder_runs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            run_id TEXT UNIQUE NOT NULL,
            timestamp TEXT NOT NULL,
            trigger TEXT NOT NULL,
            client_ip TEXT,
            status_code INTEGER NOT NULL,
            error_code TEXT,
            error_message TEXT,
            processing_time_ms INTEGER NOT NULL,
            events_processed INTEGER,
            reminders_sent INTEGER,
            reminders_failed INTEGER
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS reminder_run_details (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            run_id TEXT NOT NULL,
            detail_type TEXT NOT NULL CHECK(detail_type IN ('reminder_sent', 'send_failed', 'rejected_event')),
            message TEXT NOT NULL,
            FOREIGN KEY (run_id) REFERENCES reminder_runs(run_id)
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_events_start_time ON events(start_time)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_events_remind_at ON events(remind_at)")
    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_reminder_runs_timestamp ON reminder_runs(timestamp)"
    )
    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_reminder_run_details_run ON reminder_run_details(run_id)"
    )

    conn.commit()


# =============================================================================
# TIMESTAMP HELPERS
# =============================================================================


def to_db_timestamp(dt: datetime) -> str:
    """
    Serialize an aware datetime as UTC ISO 8601 with fixed precision.

    Example: 2025-06-01T10:00:00.000000+00:00 (string order matches time order)
    """
    if dt.tzinfo is None:
        raise ValueError(f"Timestamp must include a timezone: {dt!r}")
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_timestamp(value: str | None) -> datetime | None:
    """Parse a stored timestamp back into an aware datetime."""
    if not value:
        return None
    return datetime.fromisoformat(value)


def row_to_event(row: sqlite3.Row) -> Event:
    """Convert an events row into an Event."""
    return Event(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        location=row["location"],
        start_time=from_db_timestamp(row["start_time"]),
        end_time=from_db_timestamp(row["end_time"]),
        organizer=row["organizer"],
        organizer_email=row["organizer_email"],
        reminder_minutes=row["reminder_minutes"],
        created_by=row["created_by"],
    )


def row_to_reminder(row: sqlite3.Row) -> ReminderRecord:
    """Convert an event_reminders row into a ReminderRecord."""
    return ReminderRecord(
        event_id=row["event_id"],
        recipient_email=row["recipient_email"],
        scheduled_for=from_db_timestamp(row["scheduled_for"]),
        sent=bool(row["sent"]),
        sent_at=from_db_timestamp(row["sent_at"]),
        attempts=row["attempts"],
        last_error=row["last_error"],
        next_attempt_at=from_db_timestamp(row["next_attempt_at"]),
    )


# =============================================================================
# EVENT STORE
# =============================================================================


class SqliteEventStore:
    """Events table access. Events are created and deleted, never updated."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def _select(self, sql: str, params: tuple = ()) -> list[Event]:
        try:
            cursor = self.conn.cursor()
            cursor.row_factory = sqlite3.Row
            cursor.execute(sql, params)
            return [row_to_event(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise EventStoreError(f"Event store query failed: {e}") from e

    def create_event(self, event: Event) -> Event:
        """
        Validate and insert an event, assigning a new id.

        Raises:
            ValueError: if the event is invalid (all problems listed, one per line)
        """
        errors = validate_event(event)
        if errors:
            raise ValueError("\n".join(errors))

        event = replace(event, id=event.id or str(uuid.uuid4()))
        try:
            self.conn.execute(
                """
                INSERT INTO events (
                    id, title, description, location, start_time, end_time,
                    remind_at, organizer, organizer_email, reminder_minutes, created_by
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.id,
                    event.title.strip(),
                    event.description,
                    event.location,
                    to_db_timestamp(event.start_time),
                    to_db_timestamp(event.end_time),
                    to_db_timestamp(event.reminder_time),
                    event.organizer or "",
                    event.organizer_email.strip(),
                    event.reminder_minutes,
                    event.created_by,
                ),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            raise EventStoreError(f"Failed to create event: {e}") from e
        return event

    def get_event(self, event_id: str) -> Event | None:
        events = self._select("SELECT * FROM events WHERE id = ?", (event_id,))
        return events[0] if events else None

    def list_events(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> list[Event]:
        """List events ordered by start time, optionally bounded by start time."""
        sql = "SELECT * FROM events WHERE 1 = 1"
        params: list[str] = []
        if start:
            sql += " AND start_time >= ?"
            params.append(to_db_timestamp(start))
        if end:
            sql += " AND start_time <= ?"
            params.append(to_db_timestamp(end))
        sql += " ORDER BY start_time"
        return self._select(sql, tuple(params))

    def query_events_starting_between(self, start: datetime, end: datetime) -> list[Event]:
        """Events whose start time falls in [start, end]."""
        return self.list_events(start, end)

    def query_reminder_candidates(self, now: datetime, horizon: timedelta) -> list[Event]:
        """
        Events that have not started and whose reminder window opens by now + horizon.

        Includes events already inside their window; the caller decides which are due.
        """
        return self._select(
            """
            SELECT * FROM events
            WHERE start_time >= ? AND remind_at <= ?
            ORDER BY start_time
            """,
            (to_db_timestamp(now), to_db_timestamp(now + horizon)),
        )

    def delete_event(self, event_id: str, user_id: str) -> bool:
        """
        Delete an event owned by user_id, along with its reminder log.

        Returns False if the event does not exist.

        Raises:
            PermissionError: if user_id did not create the event
        """
        event = self.get_event(event_id)
        if event is None:
            return False
        if event.created_by != user_id:
            raise PermissionError(f"User {user_id} cannot delete event {event_id}")

        try:
            self.conn.execute("DELETE FROM event_reminders WHERE event_id = ?", (event_id,))
            self.conn.execute("DELETE FROM events WHERE id = ?", (event_id,))
            self.conn.commit()
        except sqlite3.Error as e:
            raise EventStoreError(f"Failed to delete event: {e}") from e
        return True


# =============================================================================
# REMINDER LOG
# =============================================================================


class SqliteReminderLog:
    """
    Reminder log with an atomic claim on event_id.

    A row is inserted (or taken over) by claim() before sending, flipped to
    sent=1 by mark_sent() once the transport confirms, and released with an
    attempt count and backoff by release() on failure. Sent rows are final.

    Every method raises ReminderLogError when the database fails.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def _fetch_one(self, sql: str, params: tuple) -> sqlite3.Row | None:
        cursor = self.conn.cursor()
        cursor.row_factory = sqlite3.Row
        cursor.execute(sql, params)
        return cursor.fetchone()

    def _failed(self, action: str, error: sqlite3.Error) -> ReminderLogError:
        try:
            self.conn.rollback()
        except sqlite3.Error:
            pass
        return ReminderLogError(f"Reminder log {action} failed: {error}")

    def get(self, event_id: str) -> ReminderRecord | None:
        try:
            row = self._fetch_one(
                "SELECT * FROM event_reminders WHERE event_id = ?", (event_id,)
            )
        except sqlite3.Error as e:
            raise self._failed("lookup", e) from e
        return row_to_reminder(row) if row else None

    def find_sent(self, event_id: str) -> ReminderRecord | None:
        """Return the sent reminder for an event, if there is one."""
        try:
            row = self._fetch_one(
                "SELECT * FROM event_reminders WHERE event_id = ? AND sent = 1",
                (event_id,),
            )
        except sqlite3.Error as e:
            raise self._failed("lookup", e) from e
        return row_to_reminder(row) if row else None

    def claim(
        self,
        event: Event,
        now: datetime,
        claim_timeout: timedelta,
        max_attempts: int,
    ) -> str | None:
        """
        Atomically claim the right to send the reminder for an event.

        Succeeds when no row exists yet, or when the existing row is unsent,
        not held by a live claim, past its backoff, and under max_attempts.

        Returns:
            Claim token, or None if the event cannot be claimed right now
        """
        token = str(uuid.uuid4())
        now_str = to_db_timestamp(now)
        stale_before = to_db_timestamp(now - claim_timeout)

        try:
            self.conn.execute(
                """
                INSERT INTO event_reminders (
                    event_id, recipient_email, scheduled_for, sent, attempts,
                    claim_token, claimed_at
                ) VALUES (?, ?, ?, 0, 0, ?, ?)
                ON CONFLICT(event_id) DO UPDATE SET
                    claim_token = excluded.claim_token,
                    claimed_at = excluded.claimed_at,
                    recipient_email = excluded.recipient_email
                WHERE event_reminders.sent = 0
                  AND (event_reminders.claimed_at IS NULL OR event_reminders.claimed_at <= ?)
                  AND (event_reminders.next_attempt_at IS NULL OR event_reminders.next_attempt_at <= ?)
                  AND event_reminders.attempts < ?
                """,
                (
                    event.id,
                    event.organizer_email,
                    to_db_timestamp(event.reminder_time),
                    token,
                    now_str,
                    stale_before,
                    now_str,
                    max_attempts,
                ),
            )
            self.conn.commit()

            row = self._fetch_one(
                "SELECT claim_token FROM event_reminders WHERE event_id = ?", (event.id,)
            )
        except sqlite3.Error as e:
            raise self._failed("claim", e) from e

        if row and row["claim_token"] == token:
            return token
        return None

    def mark_sent(self, event_id: str, token: str, sent_at: datetime) -> bool:
        """Mark a claimed reminder as sent. Returns False if the claim was lost."""
        try:
            cursor = self.conn.execute(
                """
                UPDATE event_reminders
                SET sent = 1, sent_at = ?, claim_token = NULL, claimed_at = NULL, last_error = NULL
                WHERE event_id = ? AND claim_token = ? AND sent = 0
                """,
                (to_db_timestamp(sent_at), event_id, token),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            raise self._failed("mark sent", e) from e
        return cursor.rowcount == 1

    def release(
        self,
        event_id: str,
        token: str,
        error: str,
        now: datetime,
        backoff: timedelta,
    ) -> int | None:
        """
        Release a claim after a failed send and schedule the next attempt.

        Backoff doubles with each attempt: backoff, 2*backoff, 4*backoff, ...

        Returns:
            Attempt count after this failure, or None if the claim was lost
        """
        try:
            row = self._fetch_one(
                "SELECT attempts FROM event_reminders WHERE event_id = ? AND claim_token = ? AND sent = 0",
                (event_id, token),
            )
            if row is None:
                return None

            attempts = row["attempts"] + 1
            next_attempt_at = now + backoff * (2 ** (attempts - 1))
            self.conn.execute(
                """
                UPDATE event_reminders
                SET attempts = ?, last_error = ?, next_attempt_at = ?,
                    claim_token = NULL, claimed_at = NULL
                WHERE event_id = ? AND claim_token = ? AND sent = 0
                """,
                (attempts, error, to_db_timestamp(next_attempt_at), event_id, token),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            raise self._failed("release", e) from e
        return attempts
