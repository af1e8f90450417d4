from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv

# Load environment variables once so both Streamlit and tests share the same defaults.
PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")
load_dotenv()

LOGIN_PATH = "/api/auth/login"
USER_PATH = "/api/auth/user"
LOGOUT_PATH = "/api/auth/logout"


@dataclass(frozen=True)
class AppConfig:
    """Frontend configuration derived from the environment."""

    api_base_url: str
    fallback_api_urls: Tuple[str, ...]
    public_api_url: str
    session_cookie_name: str = "portfolio_session"
    request_timeout: float = 10.0

    @property
    def api_base_url_candidates(self) -> Tuple[str, ...]:
        """Primary API base URL followed by fallbacks."""
        return tuple(dict.fromkeys((self.api_base_url, *self.fallback_api_urls)))

    @property
    def login_url(self) -> str:
        """Browser-facing URL that starts the Google sign-in redirect."""
        return f"{self.public_api_url.rstrip('/')}{LOGIN_PATH}"

    @property
    def user_url(self) -> str:
        """Browser-facing identity endpoint; calling it renews the session cookie."""
        return f"{self.public_api_url.rstrip('/')}{USER_PATH}"

    @property
    def logout_url(self) -> str:
        return f"{self.public_api_url.rstrip('/')}{LOGOUT_PATH}"


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Return the cached application configuration."""
    primary = os.getenv("DASHBOARD_API_BASE_URL", "").strip()
    fallback_env = os.getenv("DASHBOARD_API_FALLBACKS", "").strip()

    fallbacks = []
    if fallback_env:
        fallbacks.extend(url.strip() for url in fallback_env.split(",") if url.strip())

    # These fallbacks mirror docker-compose defaults and local development.
    fallbacks.extend(
        [
            "http://backend:8000",
            "http://localhost:8000",
        ]
    )

    base_url = primary or fallbacks[0]
    public_url = os.getenv("DASHBOARD_PUBLIC_API_URL", "").strip() or primary or "http://localhost:8000"

    return AppConfig(
        api_base_url=base_url,
        fallback_api_urls=tuple(dict.fromkeys(fallbacks)),  # preserve order, remove duplicates
        public_api_url=public_url.rstrip("/"),
        session_cookie_name=os.getenv("SESSION_COOKIE_NAME", "").strip() or "portfolio_session",
    )


def get_api_base_url_candidates() -> Tuple[str, ...]:
    """Convenience helper for the API client."""
    return get_config().api_base_url_candidates
