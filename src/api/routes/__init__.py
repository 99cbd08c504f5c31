"""API route modules."""

from .health import router as health_router
from .reminders import router as reminders_router

__all__ = ["health_router", "reminders_router"]
