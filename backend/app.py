"""FastAPI application for the portfolio dashboard backend."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .auth import auth_router
from .auth.config import AuthSettings, ensure_provider_configured, load_auth_settings
from .auth.errors import ProviderNotConfigured, Unauthorized
from .auth.oidc import GoogleIdentityProvider, IdentityProvider
from .auth.pending import PendingLoginStore
from .auth.service import AuthService
from .auth.store import SessionStore, build_session_store
from .config import API_HOST, API_PORT, API_RELOAD, LOG_LEVEL
from .forecast import router as forecast_router
from .logging_config import configure_logging

configure_logging(LOG_LEVEL)
LOGGER = logging.getLogger(__name__)


def _build_provider(settings: AuthSettings) -> Optional[IdentityProvider]:
    ensure_provider_configured(settings)
    if not settings.provider_configured:
        LOGGER.warning("Google credentials absent; /api/auth/login will answer 400")
        return None
    return GoogleIdentityProvider(settings, PendingLoginStore(ttl=settings.pending_login_ttl))


def _install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ProviderNotConfigured)
    async def provider_not_configured(_: Request, exc: ProviderNotConfigured) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(exc)})

    @app.exception_handler(Unauthorized)
    async def unauthorized(_: Request, __: Unauthorized) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": "Unauthorized"},
            headers={"Cache-Control": "no-store"},
        )


def create_app(
    settings: Optional[AuthSettings] = None,
    store: Optional[SessionStore] = None,
    provider: Optional[IdentityProvider] = None,
) -> FastAPI:
    """Assemble the API.

    Raises:
        ConfigurationError: when the frontend URL is invalid, or the deployment
            mandates a provider whose credentials are missing.
    """
    settings = settings or load_auth_settings()
    if provider is None:
        provider = _build_provider(settings)
    if store is None:
        store = build_session_store(settings.session_store, ttl=settings.session_ttl)
    auth_service = AuthService(settings, store, provider)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        auth_service.store.open()
        LOGGER.info(
            "Auth ready (env=%s, store=%s, provider=%s)",
            settings.environment.value,
            type(auth_service.store).__name__,
            auth_service.provider.display_name if auth_service.provider else "none",
        )
        try:
            yield
        finally:
            auth_service.store.close()
            LOGGER.info("Session store closed")

    app = FastAPI(
        title="Portfolio Dashboard API",
        version="1.0.0",
        description="Cookie-session authentication and sample data for the portfolio dashboard.",
        lifespan=lifespan,
    )
    app.state.auth_service = auth_service

    # Credentialed CORS is only ever granted to the single configured frontend origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_credentials=True,
        allow_methods=list(settings.cors_methods),
        allow_headers=["Content-Type", "Authorization"],
    )
    _install_exception_handlers(app)

    app.include_router(auth_router)
    app.include_router(forecast_router)

    @app.get("/health", tags=["health"])
    def healthcheck() -> dict[str, str]:
        """Report a simple OK status used for readiness checks."""
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    LOGGER.info("Launching Uvicorn development server on %s:%s", API_HOST, API_PORT)
    uvicorn.run("backend.app:app", host=API_HOST, port=API_PORT, reload=API_RELOAD, log_level=LOG_LEVEL.lower())
