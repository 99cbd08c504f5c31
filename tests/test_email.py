import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from msgraph.generated.models.body_type import BodyType

from services import email
from services.email import GraphEmailTransport, format_reminder_email, format_start_time


def test_format_start_time_utc():
    dt = datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)
    assert format_start_time(dt, "UTC") == "Sunday, June 1, 2025 at 10:00 AM UTC"


def test_format_start_time_converts_zone():
    dt = datetime(2025, 6, 1, 22, 5, tzinfo=timezone.utc)
    assert format_start_time(dt, "America/New_York") == "Sunday, June 1, 2025 at 6:05 PM EDT"


def test_reminder_email_contents(sample_event):
    subject, body = format_reminder_email(sample_event, "UTC")

    assert subject == "Reminder: Tech Talk - Starting Soon!"
    assert "starting in 30 minutes" in body
    assert "Intro to distributed systems" in body
    assert "Sunday, June 1, 2025 at 10:00 AM UTC" in body
    assert "Room 101" in body
    assert "Ada Lovelace" in body


def test_optional_fields_omitted(sample_event):
    sample_event.description = None
    sample_event.location = None

    _, body = format_reminder_email(sample_event, "UTC")

    assert "Location:" not in body
    assert "<p>Intro" not in body


def test_values_are_html_escaped(sample_event):
    sample_event.title = "<script>alert(1)</script>"
    sample_event.location = "Hall & Annex"

    _, body = format_reminder_email(sample_event, "UTC")

    assert "<script>" not in body
    assert "&lt;script&gt;" in body
    assert "Hall &amp; Annex" in body


def test_graph_transport_posts_html_mail():
    client = MagicMock()
    post = AsyncMock()
    client.users.by_user_id.return_value.send_mail.post = post
    transport = GraphEmailTransport(client=client, from_email="events@college.edu")

    asyncio.run(transport.send("a@b.edu", "Hello", "<p>Hi</p>"))

    client.users.by_user_id.assert_called_once_with("events@college.edu")
    request_body = post.await_args.args[0]
    message = request_body.message
    assert message.subject == "Hello"
    assert message.body.content_type == BodyType.Html
    assert message.to_recipients[0].email_address.address == "a@b.edu"


def test_error_email_skipped_without_address(monkeypatch, capsys):
    monkeypatch.setattr(email, "ERROR_EMAIL", "")
    transport = MagicMock()
    transport.send = AsyncMock()

    asyncio.run(email.send_error_email(RuntimeError("boom"), transport))

    transport.send.assert_not_awaited()
    assert "skipping error email" in capsys.readouterr().out


def test_error_email_failure_is_swallowed(monkeypatch, capsys):
    monkeypatch.setattr(email, "ERROR_EMAIL", "ops@college.edu")
    transport = MagicMock()
    transport.send = AsyncMock(side_effect=ConnectionError("down"))

    asyncio.run(email.send_error_email(RuntimeError("boom"), transport))

    transport.send.assert_awaited_once()
    assert transport.send.await_args.args[0] == "ops@college.edu"
    assert "Failed to send error email: down" in capsys.readouterr().out
