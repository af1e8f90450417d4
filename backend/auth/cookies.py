"""Cookie helpers for session management."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from fastapi import Request, Response
from itsdangerous import BadSignature, URLSafeTimedSerializer

from .config import AuthSettings

LOGGER = logging.getLogger(__name__)

STATE_COOKIE_PATH = "/api/auth"
SESSION_COOKIE_PATH = "/"
SESSION_COOKIE_SAMESITE = "lax"
STATE_COOKIE_SALT = "oauth-state-binding"


def _max_age(lifetime: timedelta) -> int:
    return max(int(lifetime.total_seconds()), 0)


def read_session_cookie(request: Request, settings: AuthSettings) -> Optional[str]:
    return request.cookies.get(settings.session_cookie_name)


def _state_serializer(settings: AuthSettings) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.state_signing_secret, salt=STATE_COOKIE_SALT)


def read_state_cookie(request: Request, settings: AuthSettings) -> Optional[str]:
    """Return the login state this browser was bound to, or None if absent, forged or stale."""
    raw = request.cookies.get(settings.state_cookie_name)
    if not raw:
        return None
    try:
        return _state_serializer(settings).loads(raw, max_age=_max_age(settings.pending_login_ttl))
    except BadSignature as exc:
        LOGGER.warning("Rejected login state cookie: %s", exc.__class__.__name__)
        return None


def attach_session_cookie(response: Response, session_id: str, lifetime: timedelta, settings: AuthSettings) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        domain=settings.session_cookie_domain,
        path=SESSION_COOKIE_PATH,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=SESSION_COOKIE_SAMESITE,
        max_age=_max_age(lifetime),
    )


def clear_session_cookie(response: Response, settings: AuthSettings) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        domain=settings.session_cookie_domain,
        path=SESSION_COOKIE_PATH,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=SESSION_COOKIE_SAMESITE,
    )


def attach_state_cookie(response: Response, state: str, settings: AuthSettings) -> None:
    response.set_cookie(
        key=settings.state_cookie_name,
        value=_state_serializer(settings).dumps(state),
        path=STATE_COOKIE_PATH,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=SESSION_COOKIE_SAMESITE,
        max_age=_max_age(settings.pending_login_ttl),
    )


def clear_state_cookie(response: Response, settings: AuthSettings) -> None:
    response.delete_cookie(
        key=settings.state_cookie_name,
        path=STATE_COOKIE_PATH,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=SESSION_COOKIE_SAMESITE,
    )
