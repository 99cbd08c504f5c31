import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from conftest import FakeTransport
from core.database import EventStoreError, SqliteEventStore, get_connection, init_schema
from scripts import send_reminders


@pytest.fixture
def script_db(tmp_path, monkeypatch):
    db_path = tmp_path / "script.db"
    conn = get_connection(db_path)
    init_schema(conn)
    monkeypatch.setattr(send_reminders, "DB_PATH", db_path)
    yield conn
    conn.close()


def test_run_once_sends_and_logs(script_db, make_event):
    # Starts in ten minutes, so the default 60 minute window is open now
    start = datetime.now(timezone.utc) + timedelta(minutes=10)
    SqliteEventStore(script_db).create_event(make_event(start))
    transport = FakeTransport()

    summary = asyncio.run(send_reminders.run_once(transport))

    assert summary.sent == 1
    assert transport.sent[0][0] == "grace@college.edu"
    row = script_db.execute(
        "SELECT trigger, status_code, reminders_sent FROM reminder_runs"
    ).fetchone()
    assert tuple(row) == ("script", 200, 1)


def test_main_reports_crash_and_reraises(monkeypatch):
    notified = []

    async def failing_run_once(transport=None):
        raise RuntimeError("database locked")

    async def fake_error_email(error, transport=None):
        notified.append(str(error))

    monkeypatch.setattr(send_reminders, "run_once", failing_run_once)
    monkeypatch.setattr(send_reminders, "send_error_email", fake_error_email)

    with pytest.raises(RuntimeError):
        asyncio.run(send_reminders.main())

    assert notified == ["database locked"]


class StopPolling(BaseException):
    """Ends a --loop run from inside a test."""


def test_loop_keeps_polling_after_a_failed_pass(monkeypatch):
    calls = []
    notified = []

    async def flaky_run_once(transport=None):
        calls.append(len(calls) + 1)
        if len(calls) == 1:
            raise EventStoreError("database is locked")
        if len(calls) == 3:
            raise StopPolling()

    async def fake_error_email(error, transport=None):
        notified.append(str(error))

    monkeypatch.setattr(send_reminders, "run_once", flaky_run_once)
    monkeypatch.setattr(send_reminders, "send_error_email", fake_error_email)

    with pytest.raises(StopPolling):
        asyncio.run(send_reminders.main(loop=True, interval=0))

    assert calls == [1, 2, 3]
    assert notified == ["database is locked"]
