from datetime import datetime, timedelta

from core.validation import is_valid_email, validate_event


def test_valid_event_has_no_errors(sample_event):
    assert validate_event(sample_event) == []


def test_email_shapes():
    assert is_valid_email("a@b.edu")
    assert is_valid_email("  first.last@dept.college.edu ")
    assert not is_valid_email("")
    assert not is_valid_email(None)
    assert not is_valid_email("no-at-sign.edu")
    assert not is_valid_email("a@b")
    assert not is_valid_email("a b@c.edu")


def test_missing_and_bad_fields_are_all_reported(sample_event):
    sample_event.title = "  "
    sample_event.organizer_email = ""
    sample_event.reminder_minutes = 0

    errors = validate_event(sample_event)

    assert "Missing title" in errors
    assert "Missing organizer email" in errors
    assert any("Reminder minutes" in e for e in errors)


def test_invalid_email_reported(sample_event):
    sample_event.organizer_email = "not-an-email"
    assert validate_event(sample_event) == ["Invalid organizer email 'not-an-email'"]


def test_non_integer_reminder_minutes_rejected(sample_event):
    sample_event.reminder_minutes = True
    assert any("Reminder minutes" in e for e in validate_event(sample_event))

    sample_event.reminder_minutes = -5
    assert any("Reminder minutes" in e for e in validate_event(sample_event))


def test_start_must_precede_end(sample_event):
    sample_event.end_time = sample_event.start_time
    assert validate_event(sample_event) == ["Start time must be before end time"]

    sample_event.end_time = sample_event.start_time - timedelta(minutes=1)
    assert validate_event(sample_event) == ["Start time must be before end time"]


def test_naive_timestamps_rejected(sample_event):
    sample_event.start_time = datetime(2025, 6, 1, 10, 0)
    assert validate_event(sample_event) == ["Start and end times must include a timezone"]
