"""Authentication service coordinating the provider, sessions, and cookies."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from fastapi import Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from .config import AuthSettings
from .cookies import (
    attach_session_cookie,
    attach_state_cookie,
    clear_session_cookie,
    clear_state_cookie,
    read_session_cookie,
    read_state_cookie,
)
from .errors import AuthenticationFailure, ProviderNotConfigured, Unauthorized
from .forwarding import callback_redirect_uri, client_address, frontend_url, sanitize_return_path
from .oidc import IdentityProvider
from .store import Session, SessionStore

LOGGER = logging.getLogger(__name__)


class SessionState(str, Enum):
    ANONYMOUS = "anonymous"
    LOGIN_PENDING = "login_pending"
    AUTHENTICATED = "authenticated"
    LOGGED_OUT = "logged_out"
    EXPIRED = "expired"


def mark_no_store(response: Response) -> None:
    response.headers["Cache-Control"] = "no-store"


class AuthService:
    """Central authority for the login, callback, identity and logout flows."""

    def __init__(
        self,
        settings: AuthSettings,
        store: SessionStore,
        provider: Optional[IdentityProvider] = None,
    ) -> None:
        self._settings = settings
        self._store = store
        self._provider = provider

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def provider(self) -> Optional[IdentityProvider]:
        return self._provider

    def _log_transition(self, request: Request, source: SessionState, target: SessionState) -> None:
        LOGGER.info(
            "Session transition %s -> %s (client=%s)",
            source.value,
            target.value,
            client_address(request, trust_proxy_headers=self._settings.trust_proxy_headers),
        )

    def _failure_redirect(self) -> RedirectResponse:
        response = RedirectResponse(self._settings.login_failure_url, status_code=status.HTTP_302_FOUND)
        clear_state_cookie(response, self._settings)
        mark_no_store(response)
        return response

    async def begin_login(self, request: Request, return_url: Optional[str] = None) -> Response:
        """Send the browser to the identity provider.

        Raises:
            ProviderNotConfigured: when no provider is configured for this deployment.
        """
        if self._provider is None:
            LOGGER.warning("Login requested but no identity provider is configured")
            raise ProviderNotConfigured()

        return_path = sanitize_return_path(return_url)
        redirect_uri = callback_redirect_uri(request, self._settings)
        try:
            authorization = await self._provider.begin_authorization(return_path, redirect_uri=redirect_uri)
        except AuthenticationFailure as exc:
            LOGGER.warning("Login initiation failed: %s", exc.reason)
            return self._failure_redirect()

        response = authorization.redirect()
        attach_state_cookie(response, authorization.state, self._settings)
        mark_no_store(response)
        self._log_transition(request, SessionState.ANONYMOUS, SessionState.LOGIN_PENDING)
        return response

    async def complete_login(self, request: Request) -> Response:
        """Finish the provider callback.

        Success materializes a Session and lands on the frontend with the
        session cookie set. Every failure lands on the login route with a
        generic indicator; the reason is only logged.
        """
        if self._provider is None:
            LOGGER.warning("Callback received but no identity provider is configured")
            return self._failure_redirect()

        try:
            completed = await self._provider.complete_authorization(
                request.query_params,
                bound_state=read_state_cookie(request, self._settings),
                redirect_uri=callback_redirect_uri(request, self._settings),
            )
        except AuthenticationFailure as exc:
            LOGGER.warning("Login callback rejected: %s", exc.reason)
            self._log_transition(request, SessionState.LOGIN_PENDING, SessionState.ANONYMOUS)
            return self._failure_redirect()

        try:
            session_id = self._store.create(completed.claim)
        except SQLAlchemyError:
            LOGGER.exception("Failed to persist session for a completed login")
            return self._failure_redirect()

        response = RedirectResponse(
            frontend_url(self._settings, completed.return_path),
            status_code=status.HTTP_302_FOUND,
        )
        attach_session_cookie(response, session_id, self._store.ttl, self._settings)
        clear_state_cookie(response, self._settings)
        mark_no_store(response)
        self._log_transition(request, SessionState.LOGIN_PENDING, SessionState.AUTHENTICATED)
        return response

    def resolve_session(self, request: Request) -> Session:
        """Return the live session behind the request's cookie, extending it.

        Raises:
            Unauthorized: when the cookie is absent, unknown, or expired.
        """
        token = read_session_cookie(request, self._settings)
        session = self._store.lookup(token)
        if session is None:
            if token:
                self._log_transition(request, SessionState.AUTHENTICATED, SessionState.EXPIRED)
            raise Unauthorized()
        return session

    def renew_session_cookie(self, response: Response, session: Session) -> None:
        attach_session_cookie(response, session.session_id, self._store.remaining(session), self._settings)
        mark_no_store(response)

    def logout(self, request: Request) -> Response:
        """Destroy the caller's session, if any, and return to the frontend root."""
        token = read_session_cookie(request, self._settings)
        self._store.destroy(token)
        response = RedirectResponse(frontend_url(self._settings, "/"), status_code=status.HTTP_303_SEE_OTHER)
        clear_session_cookie(response, self._settings)
        mark_no_store(response)
        if token:
            self._log_transition(request, SessionState.AUTHENTICATED, SessionState.LOGGED_OUT)
        return response
