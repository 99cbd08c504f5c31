"""SQLite logging of reminder dispatch runs."""

import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class RunLog:
    """Captured dispatch run data for logging."""

    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    trigger: str = ""  # "api" or "script"
    client_ip: str | None = None
    status_code: int = 0
    error_code: str | None = None
    error_message: str | None = None
    processing_time_ms: int = 0
    events_processed: int | None = None
    reminders_sent: int | None = None
    reminders_failed: int | None = None
    details: list[tuple[str, str]] = field(default_factory=list)  # (type, message)


def log_run(conn: sqlite3.Connection, log: RunLog) -> None:
    """Write dispatch run log to SQLite database."""
    cursor = conn.cursor()

    # Insert main run record
    cursor.execute(
        """
        INSERT INTO reminder_runs (
            run_id, timestamp, trigger, client_ip, status_code, error_code,
            error_message, processing_time_ms, events_processed,
            reminders_sent, reminders_failed
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """,
        (
            log.run_id,
            log.timestamp,
            log.trigger,
            log.client_ip,
            log.status_code,
            log.error_code,
            log.error_message,
            log.processing_time_ms,
            log.events_processed,
            log.reminders_sent,
            log.reminders_failed,
        ),
    )

    # Insert detail records
    for detail_type, message in log.details:
        cursor.execute(
            """
            INSERT INTO reminder_run_details (run_id, detail_type, message)
            VALUES (?, ?, ?)
        """,
            (log.run_id, detail_type, message),
        )

    conn.commit()
