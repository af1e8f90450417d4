"""Request-origin resolution and redirect-target hygiene."""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse

from fastapi import Request

from .config import CALLBACK_PATH, LANDING_ROUTE, AuthSettings


def _first_forwarded_value(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    first = value.split(",", 1)[0].strip()
    return first or None


def request_origin(request: Request, *, trust_proxy_headers: bool) -> str:
    """Return ``scheme://host`` as the browser saw it.

    ``X-Forwarded-Proto`` and ``X-Forwarded-Host`` are honoured only when the
    deployment sits behind a trusted reverse proxy; otherwise they are ignored.
    """
    scheme = request.url.scheme
    host = request.headers.get("host") or request.url.netloc
    if trust_proxy_headers:
        forwarded_proto = _first_forwarded_value(request.headers.get("x-forwarded-proto"))
        forwarded_host = _first_forwarded_value(request.headers.get("x-forwarded-host"))
        if forwarded_proto in {"http", "https"}:
            scheme = forwarded_proto
        if forwarded_host:
            host = forwarded_host
    return f"{scheme}://{host}"


def client_address(request: Request, *, trust_proxy_headers: bool) -> Optional[str]:
    if trust_proxy_headers:
        forwarded_for = _first_forwarded_value(request.headers.get("x-forwarded-for"))
        if forwarded_for:
            return forwarded_for
    return request.client.host if request.client else None


def callback_redirect_uri(request: Request, settings: AuthSettings) -> str:
    """Return the redirect URI registered with the provider for this request."""
    if settings.google_redirect_uri:
        return settings.google_redirect_uri
    origin = request_origin(request, trust_proxy_headers=settings.trust_proxy_headers)
    return f"{origin}{CALLBACK_PATH}"


def sanitize_return_path(value: Optional[str]) -> str:
    """Reduce a caller-supplied return target to a same-site relative path.

    Anything that could leave the frontend origin (absolute URLs,
    protocol-relative ``//host``, backslash tricks, control characters)
    collapses to the default landing route.
    """
    candidate = (value or "").strip()
    if not candidate or not candidate.startswith("/"):
        return LANDING_ROUTE
    if candidate.startswith("//") or "\\" in candidate:
        return LANDING_ROUTE
    if any(ord(char) < 0x20 or ord(char) == 0x7F for char in candidate):
        return LANDING_ROUTE
    parsed = urlparse(candidate)
    if parsed.scheme or parsed.netloc:
        return LANDING_ROUTE
    return candidate


def frontend_url(settings: AuthSettings, path: str) -> str:
    return f"{settings.frontend_base_url}{path}"
