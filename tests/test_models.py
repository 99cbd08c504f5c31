from datetime import datetime, timedelta, timezone

from models.events import Event

START = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def make(reminder_minutes=60):
    return Event(
        id="e1",
        title="Seminar",
        start_time=START,
        end_time=START + timedelta(hours=1),
        organizer="Org",
        organizer_email="org@college.edu",
        reminder_minutes=reminder_minutes,
    )


def test_default_reminder_minutes_is_sixty():
    event = Event(
        id="e1",
        title="Seminar",
        start_time=START,
        end_time=START + timedelta(hours=1),
        organizer="Org",
        organizer_email="org@college.edu",
    )
    assert event.reminder_minutes == 60
    assert event.reminder_time == START - timedelta(minutes=60)


def test_window_is_inclusive_at_both_ends():
    event = make(60)
    assert event.is_due(START - timedelta(minutes=60))
    assert event.is_due(START - timedelta(minutes=30))
    assert event.is_due(START)


def test_not_due_outside_window():
    event = make(60)
    assert not event.is_due(START - timedelta(minutes=60, microseconds=1))
    assert not event.is_due(START + timedelta(microseconds=1))
    assert not event.is_due(START - timedelta(hours=2))
