from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import pandas as pd
import requests

from .config import get_api_base_url_candidates, get_config
from .models import UserProfile, build_forecast_frame


class BackendError(Exception):
    """Raised when the backend API is unreachable or returns an error."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.cause = cause


def is_backend_unavailable_error(error: Optional[BackendError]) -> bool:
    """Return True if the error likely represents a transient backend outage."""
    if error is None:
        return False

    if error.status_code in {502, 503, 504}:
        return True

    cause = getattr(error, "cause", None)
    transient_exceptions: Iterable[type[BaseException]] = (
        requests.exceptions.ConnectionError,
        requests.exceptions.Timeout,
        requests.exceptions.ConnectTimeout,
        requests.exceptions.ReadTimeout,
    )
    return isinstance(cause, tuple(transient_exceptions))


def is_unauthorized_error(error: Optional[BackendError]) -> bool:
    return error is not None and error.status_code == 401


def _session_headers(session_token: Optional[str]) -> Dict[str, str]:
    if not session_token:
        return {}
    return {"Cookie": f"{get_config().session_cookie_name}={session_token}"}


def _request(
    path: str,
    *,
    method: str = "GET",
    timeout: Optional[float] = None,
    session_token: Optional[str] = None,
    **kwargs: Any,
) -> Any:
    """Execute an HTTP request against the backend service."""
    config = get_config()
    timeout = timeout or config.request_timeout
    headers = {**_session_headers(session_token), **kwargs.pop("headers", {})}
    last_exc: Optional[BaseException] = None

    for base_url in get_api_base_url_candidates():
        url = f"{base_url.rstrip('/')}{path}"
        try:
            response = requests.request(method=method.upper(), url=url, timeout=timeout, headers=headers, **kwargs)
            response.raise_for_status()
        except requests.exceptions.HTTPError as exc:
            detail = ""
            if exc.response is not None:
                status_code = exc.response.status_code
                try:
                    payload = exc.response.json()
                except ValueError:
                    payload = None

                if isinstance(payload, dict):
                    detail_value = payload.get("error") or payload.get("detail")
                    if detail_value:
                        detail = str(detail_value)
                if not detail:
                    text = exc.response.text.strip()
                    if text:
                        detail = text
            else:
                status_code = None

            message = f"Backend request failed: {exc}"
            if detail:
                message = f"{message} - {detail}"
            raise BackendError(message, status_code=status_code, cause=exc) from exc
        except requests.exceptions.RequestException as exc:
            last_exc = exc
            continue
        else:
            break
    else:
        raise BackendError(f"Backend request failed: {last_exc}", cause=last_exc) from last_exc

    if response.status_code == 204 or 300 <= response.status_code < 400 or method.upper() == "HEAD":
        return {}

    try:
        return response.json()
    except ValueError as exc:
        raise BackendError("Backend returned an invalid JSON response.", cause=exc) from exc


def get_current_user(session_token: Optional[str]) -> UserProfile:
    """Ask the backend who owns ``session_token``.

    Raises:
        BackendError: with ``status_code`` 401 when there is no live session,
            or for any transport or payload problem.
    """
    if not session_token:
        raise BackendError("No session cookie present", status_code=401)
    payload = _request("/api/auth/user", session_token=session_token)
    try:
        return UserProfile.from_dict(payload)
    except ValueError as exc:
        raise BackendError("Backend returned an invalid user payload.", cause=exc) from exc


def logout(session_token: Optional[str]) -> None:
    """End the server-side session; the backend answers with a redirect we do not follow."""
    _request("/api/auth/logout", method="POST", session_token=session_token, allow_redirects=False)


def get_weather_forecast() -> pd.DataFrame:
    payload = _request("/weatherforecast")
    if not isinstance(payload, list):
        raise BackendError("Backend returned an unexpected forecast payload.")
    return build_forecast_frame(payload)
