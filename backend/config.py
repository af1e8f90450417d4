"""Process-level configuration for the portfolio dashboard backend."""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load environment variables from a .env file if present.
load_dotenv()

API_HOST = os.getenv("DASHBOARD_API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("DASHBOARD_API_PORT", "8000"))
API_RELOAD = os.getenv("DASHBOARD_API_RELOAD", "true").strip().lower() in {"1", "true", "yes", "on"}
LOG_LEVEL = os.getenv("DASHBOARD_LOG_LEVEL", "INFO").upper()
