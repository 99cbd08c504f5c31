"""
Configuration constants and environment setup.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = Path(
    os.environ.get("EVENTS_DB_PATH", str(PROJECT_ROOT / "data" / "db" / "college-events.db"))
)

# =============================================================================
# EMAIL CONFIGURATION
# =============================================================================

FROM_EMAIL = os.environ.get("REMINDER_FROM_EMAIL", "events@college.edu")
FROM_NAME = "College Events"
ERROR_EMAIL = os.environ.get("REMINDER_ERROR_EMAIL", "")  # empty disables crash emails
DISPLAY_TIMEZONE = os.environ.get("REMINDER_DISPLAY_TIMEZONE", "UTC")

# =============================================================================
# REMINDER CONFIGURATION
# =============================================================================

DEFAULT_REMINDER_MINUTES = 60

# Candidates are events whose reminder window opens within this horizon.
# POLL_INTERVAL_SECONDS must stay below it or windows can be missed.
LOOKAHEAD_MINUTES = int(os.environ.get("REMINDER_LOOKAHEAD_MINUTES", "5"))
POLL_INTERVAL_SECONDS = int(os.environ.get("REMINDER_POLL_INTERVAL_SECONDS", "60"))

SEND_TIMEOUT_SECONDS = float(os.environ.get("REMINDER_SEND_TIMEOUT_SECONDS", "30"))
MAX_SEND_ATTEMPTS = int(os.environ.get("REMINDER_MAX_SEND_ATTEMPTS", "5"))
RETRY_BACKOFF_MINUTES = int(os.environ.get("REMINDER_RETRY_BACKOFF_MINUTES", "1"))
CLAIM_TIMEOUT_MINUTES = int(os.environ.get("REMINDER_CLAIM_TIMEOUT_MINUTES", "10"))

# =============================================================================
# MS GRAPH CREDENTIALS (from environment)
# =============================================================================

GRAPH_TENANT_ID = os.environ.get("MICROSOFT_GRAPH_TENANT_ID", "")
GRAPH_APP_ID = os.environ.get("MICROSOFT_GRAPH_APP_ID", "")
GRAPH_CLIENT_SECRET = os.environ.get("MICROSOFT_GRAPH_CLIENT_SECRET", "")

# =============================================================================
# API CONFIGURATION
# =============================================================================

REMINDER_API_KEY = os.environ.get("REMINDER_API_KEY", "")
API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_DEBUG = os.environ.get("API_DEBUG", "false").lower() == "true"
API_VERSION = "1.0.0"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type, x-api-key",
}
