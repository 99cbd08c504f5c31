"""Health check endpoint."""

import sqlite3
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_db_connection
from api.models.responses import HealthResponse
from core.config import API_VERSION

router = APIRouter()


def check_database(conn: sqlite3.Connection) -> str | None:
    """Return an error message if the events tables are unreachable."""
    try:
        conn.execute("SELECT 1 FROM events LIMIT 1")
        conn.execute("SELECT 1 FROM event_reminders LIMIT 1")
    except sqlite3.Error as e:
        return str(e)
    return None


@router.get("/health", response_model=HealthResponse)
async def health_check(conn: sqlite3.Connection = Depends(get_db_connection)):
    """
    Health check endpoint for monitoring.

    Returns 200 if healthy, 503 if unhealthy.
    """
    error = check_database(conn)
    timestamp = datetime.now(timezone.utc).isoformat()

    if error is None:
        return HealthResponse(
            status="healthy",
            version=API_VERSION,
            database_available=True,
            timestamp=timestamp,
        )
    else:
        return JSONResponse(
            status_code=503,
            content=HealthResponse(
                status="unhealthy",
                version=API_VERSION,
                database_available=False,
                timestamp=timestamp,
                error=f"Database not available: {error}",
            ).model_dump(),
        )
