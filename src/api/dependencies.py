"""FastAPI dependencies for authentication and shared resources."""

import secrets
import sqlite3
from datetime import datetime
from typing import Callable, Iterator

from fastapi import Header, HTTPException, status

from api.models.responses import ErrorCodes
from core import config
from core.database import get_connection
from services.email import GraphEmailTransport
from services.reminders import EmailTransport, utc_now


async def verify_api_key(x_api_key: str = Header(..., alias="X-API-Key")) -> str:
    """
    Verify API key from X-API-Key header.

    Raises:
        HTTPException: 401 if key is invalid, 500 if no key is configured
    """
    if not config.REMINDER_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "API key not configured on server",
                "code": ErrorCodes.INTERNAL_ERROR,
                "details": [],
            },
        )

    # Use constant-time comparison to prevent timing attacks
    if not secrets.compare_digest(x_api_key, config.REMINDER_API_KEY):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "Invalid or missing API key",
                "code": ErrorCodes.UNAUTHORIZED,
                "details": [],
            },
        )

    return x_api_key


def get_db_connection() -> Iterator[sqlite3.Connection]:
    """Open a database connection for the duration of a request."""
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


def get_email_transport() -> EmailTransport:
    return GraphEmailTransport()


def get_clock() -> Callable[[], datetime]:
    return utc_now
