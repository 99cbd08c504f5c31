"""Reminder dispatch endpoint, triggered by an external scheduler."""

import asyncio
import sqlite3
import time
from datetime import datetime
from typing import Callable

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, Response

from api.dependencies import get_clock, get_db_connection, get_email_transport, verify_api_key
from api.logging import RunLog, log_run
from api.models.responses import (
    DispatchResponse,
    ErrorCodes,
    ErrorResponse,
    FailedReminder,
    RejectedEvent,
)
from core.config import CORS_HEADERS
from core.database import EventStoreError, SqliteEventStore, SqliteReminderLog
from services.reminders import EmailTransport, ReminderDispatcher

router = APIRouter(prefix="/v1")


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@router.options("/send-event-reminder")
async def send_event_reminder_preflight():
    """Answer CORS pre-flight requests."""
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@router.post("/send-event-reminder", response_model=DispatchResponse)
async def send_event_reminder(
    request: Request,
    conn: sqlite3.Connection = Depends(get_db_connection),
    transport: EmailTransport = Depends(get_email_transport),
    clock: Callable[[], datetime] = Depends(get_clock),
    _api_key: str = Depends(verify_api_key),
):
    """
    Send reminders for events whose reminder window is open.

    Returns 200 with a run summary, or 500 if the event store cannot be queried.
    """
    start_time = time.time()
    run_log = RunLog(trigger="api", client_ip=get_client_ip(request))

    dispatcher = ReminderDispatcher(
        event_store=SqliteEventStore(conn),
        reminder_log=SqliteReminderLog(conn),
        transport=transport,
        clock=clock,
    )

    try:
        summary = await dispatcher.run()

        run_log.status_code = 200
        run_log.events_processed = summary.processed
        run_log.reminders_sent = summary.sent
        run_log.reminders_failed = len(summary.failures)
        for event_id in summary.sent_event_ids:
            run_log.details.append(("reminder_sent", event_id))
        for failure in summary.failures:
            kind = "sent_unrecorded" if failure.delivered else "send_failed"
            run_log.details.append((kind, f"{failure.event_id}: {failure.error}"))
        for rejected in summary.rejected:
            run_log.details.append(
                ("rejected_event", f"{rejected.event_id}: {'; '.join(rejected.errors)}")
            )

        body = DispatchResponse(
            processed=summary.processed,
            sent=summary.sent,
            skipped=summary.skipped,
            not_due=summary.not_due,
            failed=[
                FailedReminder(
                    event_id=f.event_id,
                    error=f.error,
                    attempts=f.attempts,
                    delivered=f.delivered,
                )
                for f in summary.failures
            ],
            rejected=[
                RejectedEvent(event_id=r.event_id, errors=r.errors) for r in summary.rejected
            ],
        )
        return JSONResponse(status_code=200, content=body.model_dump(), headers=CORS_HEADERS)

    except EventStoreError as e:
        print(f"Error in send-event-reminder: {e}")
        run_log.status_code = 500
        run_log.error_code = ErrorCodes.EVENT_STORE_ERROR
        run_log.error_message = str(e)

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                error=str(e),
                code=ErrorCodes.EVENT_STORE_ERROR,
                details=[],
            ).model_dump(),
            headers=CORS_HEADERS,
        )

    finally:
        run_log.processing_time_ms = int((time.time() - start_time) * 1000)
        # Always log the run
        try:
            await asyncio.to_thread(log_run, conn, run_log)
        except Exception as e:
            # Don't fail the request if logging fails
            print(f"Failed to log reminder run: {e}")
