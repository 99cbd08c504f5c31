"""Pydantic response models for API endpoints."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    database_available: bool
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class FailedReminder(BaseModel):
    event_id: str
    error: str
    attempts: int | None
    delivered: bool = False


class RejectedEvent(BaseModel):
    event_id: str
    errors: list[str]


class DispatchResponse(BaseModel):
    """Reminder dispatch run summary. processed counts candidate events."""

    success: bool = True
    processed: int
    sent: int
    skipped: int
    not_due: int
    failed: list[FailedReminder] = []
    rejected: list[RejectedEvent] = []


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    details: list[str] = []


class ErrorCodes:
    """Error code constants."""

    UNAUTHORIZED = "UNAUTHORIZED"
    EVENT_STORE_ERROR = "EVENT_STORE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
