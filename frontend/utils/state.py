from __future__ import annotations

from typing import Callable, Optional

import streamlit as st

from frontend.core.session import ClientSessionCache

SESSION_CACHE_KEY = "client_session_cache"
COOKIE_CLEAR_KEY = "session_cookie_clear_pending"


def trigger_rerun() -> None:
    """Trigger a Streamlit rerun using the most compatible API."""
    rerun_fn = getattr(st, "rerun", None) or getattr(st, "experimental_rerun", None)
    if rerun_fn:
        rerun_fn()


def get_session_cache(factory: Callable[[], ClientSessionCache]) -> ClientSessionCache:
    """Return this browser session's cache, creating it on first use."""
    cache = st.session_state.get(SESSION_CACHE_KEY)
    if cache is None:
        cache = factory()
        st.session_state[SESSION_CACHE_KEY] = cache
    return cache


def read_cookie(name: str) -> Optional[str]:
    """Read a cookie the browser sent with the current Streamlit request."""
    context = getattr(st, "context", None)
    cookies = getattr(context, "cookies", None)
    if not cookies:
        return None
    return cookies.get(name)


def get_query_param(name: str) -> Optional[str]:
    value = st.query_params.get(name)
    return value or None


def clear_query_param(name: str) -> None:
    if name in st.query_params:
        del st.query_params[name]


def request_cookie_clear() -> None:
    """Ask the next run to clear the session cookie from the browser."""
    st.session_state[COOKIE_CLEAR_KEY] = True


def consume_cookie_clear() -> bool:
    return bool(st.session_state.pop(COOKIE_CLEAR_KEY, False))
