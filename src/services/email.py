"""
Email rendering and sending for event reminders.
"""

import traceback
from datetime import datetime
from html import escape
from zoneinfo import ZoneInfo

from msgraph.generated.models.body_type import BodyType
from msgraph.generated.models.email_address import EmailAddress
from msgraph.generated.models.item_body import ItemBody
from msgraph.generated.models.message import Message
from msgraph.generated.models.recipient import Recipient
from msgraph.generated.users.item.send_mail.send_mail_post_request_body import (
    SendMailPostRequestBody,
)

from core.config import DISPLAY_TIMEZONE, ERROR_EMAIL, FROM_EMAIL, FROM_NAME
from core.graph_client import get_graph_client
from models.events import Event

REMINDER_STYLE = """
    body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .event-card { background: #f9fafb; border-left: 4px solid #4F46E5; padding: 20px; margin: 20px 0; border-radius: 4px; }
    .event-title { color: #4F46E5; font-size: 24px; margin: 0 0 10px 0; }
    .event-detail { margin: 10px 0; }
    .label { font-weight: bold; color: #666; }
    .footer { margin-top: 30px; font-size: 12px; color: #666; }
"""


def format_start_time(dt: datetime, tz_name: str = DISPLAY_TIMEZONE) -> str:
    """Format start time for display (e.g., 'Sunday, June 1, 2025 at 10:00 AM UTC')."""
    local = dt.astimezone(ZoneInfo(tz_name))
    hour = local.hour % 12 or 12  # platform-safe, no zero-padding
    am_pm = "AM" if local.hour < 12 else "PM"
    return (
        f"{local.strftime('%A, %B')} {local.day}, {local.year} "
        f"at {hour}:{local.strftime('%M')} {am_pm} {local.tzname()}"
    )


def format_reminder_email(event: Event, tz_name: str = DISPLAY_TIMEZONE) -> tuple[str, str]:
    """
    Render the reminder email for an event.

    Returns:
        Tuple of (subject, html_body)
    """
    subject = f"Reminder: {event.title} - Starting Soon!"

    details = [f'<h2 class="event-title">{escape(event.title)}</h2>']
    if event.description:
        details.append(f"<p>{escape(event.description)}</p>")
    details.append(
        '<div class="event-detail"><span class="label">Date &amp; Time:</span> '
        f"{escape(format_start_time(event.start_time, tz_name))}</div>"
    )
    if event.location:
        details.append(
            '<div class="event-detail"><span class="label">Location:</span> '
            f"{escape(event.location)}</div>"
        )
    details.append(
        '<div class="event-detail"><span class="label">Organizer:</span> '
        f"{escape(event.organizer or '')}</div>"
    )

    lines = [
        "<!DOCTYPE html>",
        "<html>",
        f"<head><style>{REMINDER_STYLE}</style></head>",
        "<body>",
        '<div class="container">',
        "<h1>Event Reminder</h1>",
        f"<p>This is a reminder that your event is starting in {event.reminder_minutes} minutes!</p>",
        '<div class="event-card">',
        *details,
        "</div>",
        "<p>Don't forget to prepare for the event!</p>",
        f'<div class="footer"><p>{escape(FROM_NAME)}</p></div>',
        "</div>",
        "</body>",
        "</html>",
    ]
    return subject, "\n".join(lines)


class GraphEmailTransport:
    """Sends HTML email from a Graph mailbox. send() raises on failure."""

    def __init__(self, client=None, from_email: str = FROM_EMAIL):
        self._client = client
        self.from_email = from_email

    @property
    def client(self):
        if self._client is None:
            self._client = get_graph_client()
        return self._client

    async def send(self, to: str, subject: str, html_body: str):
        message = Message(
            subject=subject,
            body=ItemBody(content_type=BodyType.Html, content=html_body),
            from_=Recipient(email_address=EmailAddress(address=self.from_email, name=FROM_NAME)),
            to_recipients=[Recipient(email_address=EmailAddress(address=to))],
        )
        request_body = SendMailPostRequestBody(message=message, save_to_sent_items=True)
        await self.client.users.by_user_id(self.from_email).send_mail.post(request_body)


async def send_error_email(error: Exception, transport: GraphEmailTransport | None = None):
    """Send error notification email. Never raises."""
    if not ERROR_EMAIL:
        print("ERROR_EMAIL not configured, skipping error email")
        return

    subject = "Event Reminders - Dispatch Error"
    body = (
        "<p>An error occurred while sending event reminders:</p>"
        f"<pre>{escape(str(error))}\n\n{escape(traceback.format_exc())}</pre>"
    )

    try:
        await (transport or GraphEmailTransport()).send(ERROR_EMAIL, subject, body)
        print(f"Sent error email to {ERROR_EMAIL}")
    except Exception as e:
        print(f"Failed to send error email: {e}")
