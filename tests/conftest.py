"""
Pytest configuration and shared fixtures.
"""

import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.database import SqliteEventStore, SqliteReminderLog, get_connection, init_schema  # noqa: E402
from models.events import Event  # noqa: E402


class FakeTransport:
    """In-memory email transport that records sends and can fail or stall."""

    def __init__(self, fail_with: Exception | None = None, delay: float = 0):
        self.fail_with = fail_with
        self.delay = delay
        self.attempts: list[str] = []
        self.sent: list[tuple[str, str, str]] = []  # (to, subject, html_body)

    async def send(self, to: str, subject: str, html_body: str):
        self.attempts.append(to)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append((to, subject, html_body))


class FixedClock:
    """Settable time source."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def db_conn(tmp_path):
    """Connection to a fresh database with the schema applied."""
    conn = get_connection(tmp_path / "events.db")
    init_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def event_store(db_conn):
    return SqliteEventStore(db_conn)


@pytest.fixture
def reminder_log(db_conn):
    return SqliteReminderLog(db_conn)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def clock():
    """Clock set to 09:31 UTC on the day of the sample Tech Talk."""
    return FixedClock(datetime(2025, 6, 1, 9, 31, tzinfo=timezone.utc))


@pytest.fixture
def sample_event():
    """Tech Talk at 10:00 UTC with a 30 minute reminder (not yet stored)."""
    return Event(
        id="",
        title="Tech Talk",
        description="Intro to distributed systems",
        location="Room 101",
        start_time=datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc),
        end_time=datetime(2025, 6, 1, 11, 0, tzinfo=timezone.utc),
        organizer="Ada Lovelace",
        organizer_email="a@b.edu",
        reminder_minutes=30,
        created_by="user-1",
    )


@pytest.fixture
def make_event():
    """Factory for events relative to a given start time."""

    def _make(start_time: datetime, **overrides) -> Event:
        fields = {
            "id": "",
            "title": "Club Meeting",
            "start_time": start_time,
            "end_time": start_time + timedelta(hours=1),
            "organizer": "Grace Hopper",
            "organizer_email": "grace@college.edu",
            "created_by": "user-2",
        }
        fields.update(overrides)
        return Event(**fields)

    return _make
