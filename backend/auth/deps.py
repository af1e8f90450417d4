"""FastAPI dependencies for session-aware routes."""

from __future__ import annotations

from fastapi import Depends, Request

from .service import AuthService
from .store import Session


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def require_session(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
) -> Session:
    return auth_service.resolve_session(request)
