"""
Data models for events and reminder records.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from core.config import DEFAULT_REMINDER_MINUTES


@dataclass
class Event:
    """A scheduled college event."""

    id: str
    title: str
    start_time: datetime
    end_time: datetime
    organizer: str
    organizer_email: str
    description: str | None = None
    location: str | None = None
    reminder_minutes: int = DEFAULT_REMINDER_MINUTES
    created_by: str | None = None

    @property
    def reminder_time(self) -> datetime:
        """When the reminder window opens (start minus lead time)."""
        return self.start_time - timedelta(minutes=self.reminder_minutes)

    def is_due(self, now: datetime) -> bool:
        """True while now is inside [reminder_time, start_time], both ends inclusive."""
        return self.reminder_time <= now <= self.start_time


@dataclass
class ReminderRecord:
    """Reminder log entry for one event."""

    event_id: str
    recipient_email: str
    scheduled_for: datetime
    sent: bool = False
    sent_at: datetime | None = None
    attempts: int = 0
    last_error: str | None = None
    next_attempt_at: datetime | None = None
