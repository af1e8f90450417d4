"""Configuration helpers for the authentication subsystem."""

from __future__ import annotations

import os
import secrets
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from functools import lru_cache
from typing import Optional, Tuple
from urllib.parse import urlparse

from dotenv import load_dotenv

from .errors import ConfigurationError

load_dotenv()

GOOGLE_DISCOVERY_URL = "https://accounts.google.com/.well-known/openid-configuration"
CALLBACK_PATH = "/api/auth/callback"
LOGIN_ROUTE = "/login"
LANDING_ROUTE = "/dashboard"


class Environment(str, Enum):
    """Deployment environments with distinct security policy."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"


def _bool_env(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _optional_env(name: str) -> Optional[str]:
    return (os.getenv(name, "") or "").strip() or None


def parse_frontend_url(value: Optional[str]) -> str:
    """Return the absolute frontend base URL without a trailing slash.

    Raises:
        ConfigurationError: if the value is not an absolute http(s) URL.
    """
    candidate = (value or "").strip()
    parsed = urlparse(candidate)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ConfigurationError(f"FRONTEND_BASE_URL must be an absolute http(s) URL, got {candidate!r}")
    return candidate.rstrip("/")


def _parse_environment(value: Optional[str]) -> Environment:
    candidate = (value or Environment.DEVELOPMENT.value).strip().lower()
    try:
        return Environment(candidate)
    except ValueError as exc:
        raise ConfigurationError(f"DASHBOARD_ENV must be 'development' or 'production', got {candidate!r}") from exc


def _positive_int_env(name: str, default: int) -> int:
    raw = (os.getenv(name, "") or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class AuthSettings:
    """Security policy and provider settings for one deployment."""

    environment: Environment
    frontend_base_url: str
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = field(default=None, repr=False)
    google_redirect_uri: Optional[str] = None
    google_discovery_url: str = GOOGLE_DISCOVERY_URL
    require_provider: bool = False
    trust_proxy_headers: bool = False
    session_cookie_name: str = "portfolio_session"
    session_cookie_secure: bool = False
    session_cookie_domain: Optional[str] = None
    session_ttl: timedelta = timedelta(days=30)
    pending_login_ttl: timedelta = timedelta(minutes=10)
    provider_timeout_seconds: float = 10.0
    session_store: str = "memory"
    state_signing_secret: str = field(default_factory=lambda: secrets.token_urlsafe(32), repr=False)

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def provider_configured(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)

    @property
    def frontend_origin(self) -> str:
        parsed = urlparse(self.frontend_base_url)
        return f"{parsed.scheme}://{parsed.netloc}"

    @property
    def cors_methods(self) -> Tuple[str, ...]:
        if self.is_production:
            return ("GET", "POST")
        return ("GET", "POST", "PUT", "DELETE")

    @property
    def state_cookie_name(self) -> str:
        return f"{self.session_cookie_name}_oauth_state"

    @property
    def login_failure_url(self) -> str:
        return f"{self.frontend_base_url}{LOGIN_ROUTE}?error=authentication_failed"


def ensure_provider_configured(settings: AuthSettings) -> None:
    """Refuse to start when the deployment mandates a provider that has no credentials."""

    if settings.require_provider and not settings.provider_configured:
        raise ConfigurationError(
            "GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET are required when AUTH_REQUIRE_PROVIDER is enabled"
        )


@lru_cache(maxsize=1)
def load_auth_settings() -> AuthSettings:
    """Load authentication settings from the environment.

    Raises:
        ConfigurationError: if the frontend URL or any numeric setting is invalid.
    """
    environment = _parse_environment(os.getenv("DASHBOARD_ENV"))
    frontend_base_url = parse_frontend_url(os.getenv("FRONTEND_BASE_URL", "http://localhost:8501"))
    production = environment == Environment.PRODUCTION

    store = (os.getenv("SESSION_STORE", "memory") or "memory").strip().lower()
    if store not in {"memory", "sql"}:
        raise ConfigurationError(f"SESSION_STORE must be 'memory' or 'sql', got {store!r}")

    return AuthSettings(
        environment=environment,
        frontend_base_url=frontend_base_url,
        google_client_id=_optional_env("GOOGLE_CLIENT_ID"),
        google_client_secret=_optional_env("GOOGLE_CLIENT_SECRET"),
        google_redirect_uri=_optional_env("GOOGLE_REDIRECT_URI"),
        google_discovery_url=_optional_env("GOOGLE_DISCOVERY_URL") or GOOGLE_DISCOVERY_URL,
        require_provider=_bool_env("AUTH_REQUIRE_PROVIDER", default=production),
        trust_proxy_headers=_bool_env("TRUST_PROXY_HEADERS", default=False),
        session_cookie_name=_optional_env("SESSION_COOKIE_NAME") or "portfolio_session",
        session_cookie_secure=_bool_env("SESSION_COOKIE_SECURE", default=production),
        session_cookie_domain=_optional_env("SESSION_COOKIE_DOMAIN"),
        session_ttl=timedelta(days=_positive_int_env("SESSION_TTL_DAYS", 30)),
        pending_login_ttl=timedelta(seconds=_positive_int_env("AUTH_PENDING_LOGIN_TTL_SECONDS", 600)),
        provider_timeout_seconds=float(_positive_int_env("AUTH_PROVIDER_TIMEOUT_SECONDS", 10)),
        session_store=store,
        state_signing_secret=_optional_env("AUTH_STATE_SECRET") or secrets.token_urlsafe(32),
    )
