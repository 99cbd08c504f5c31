"""API Pydantic models."""

from .responses import (
    DispatchResponse,
    ErrorCodes,
    ErrorResponse,
    FailedReminder,
    HealthResponse,
    RejectedEvent,
)

__all__ = [
    "DispatchResponse",
    "ErrorCodes",
    "ErrorResponse",
    "FailedReminder",
    "HealthResponse",
    "RejectedEvent",
]
