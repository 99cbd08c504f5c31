"""
Event validation.
"""

import re

from models.events import Event

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def is_valid_email(value: str | None) -> bool:
    """Check that value looks like an email address."""
    if not value:
        return False
    return bool(EMAIL_PATTERN.match(value.strip()))


def validate_event(event: Event) -> list[str]:
    """
    Validate an event and return a list of problems (empty when valid).

    Checks:
    1. Title and organizer email are present
    2. Reminder lead time is a positive integer
    3. Timestamps are timezone-aware and start precedes end
    """
    errors = []

    # Check 1: Required fields
    if not event.title or not event.title.strip():
        errors.append("Missing title")
    if not event.organizer_email:
        errors.append("Missing organizer email")
    elif not is_valid_email(event.organizer_email):
        errors.append(f"Invalid organizer email '{event.organizer_email}'")

    # Check 2: Reminder lead time (bool is an int subclass, reject it explicitly)
    minutes = event.reminder_minutes
    if not isinstance(minutes, int) or isinstance(minutes, bool) or minutes <= 0:
        errors.append(f"Reminder minutes must be a positive integer, got '{minutes}'")

    # Check 3: Timestamps
    if event.start_time is None or event.end_time is None:
        errors.append("Missing start or end time")
        return errors

    if event.start_time.tzinfo is None or event.end_time.tzinfo is None:
        errors.append("Start and end times must include a timezone")
        return errors

    if event.start_time >= event.end_time:
        errors.append("Start time must be before end time")

    return errors
