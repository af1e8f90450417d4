from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Dict

import streamlit as st

# Ensure the project root is available on sys.path for `frontend.*` imports.
APP_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = APP_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

from frontend.core.api import BackendError, get_weather_forecast, is_backend_unavailable_error
from frontend.core.config import AppConfig, get_config
from frontend.core.routes import DASHBOARD_PAGE, HOME_PAGE, LOGIN_PAGE, PAGE_ROUTES, redirect_target, route_by_title
from frontend.core.session import ClientSessionCache, build_session_cache
from frontend.utils import browser
from frontend.utils import state as app_state
from frontend.utils.logging import get_logger


LOGGER = get_logger("frontend.app")

LOGIN_ERROR_PARAM = "error"
REDIRECT_USER_PARAM = "user"


def _session_cache(config: AppConfig) -> ClientSessionCache:
    return app_state.get_session_cache(
        lambda: build_session_cache(lambda: app_state.read_cookie(config.session_cookie_name))
    )


def render_login(config: AppConfig) -> None:
    st.title("Portfolio Dashboard")
    st.caption("Sign in to see your dashboard.")

    if app_state.get_query_param(LOGIN_ERROR_PARAM) == "authentication_failed":
        st.error("Sign-in didn't complete. Please try again.")

    st.link_button("Sign in with Google", config.login_url, type="primary")


def render_forecast() -> None:
    st.subheader("Weather forecast")
    try:
        frame = get_weather_forecast()
    except BackendError as exc:
        LOGGER.warning("Unable to fetch forecast: %s", exc)
        if is_backend_unavailable_error(exc):
            st.info("The API is starting up. Refresh in a moment to load the forecast.")
        else:
            st.warning(f"Forecast unavailable. Details: {exc}")
        return
    st.dataframe(frame, hide_index=True, use_container_width=True)


def render_dashboard(cache: ClientSessionCache) -> None:
    user = cache.user
    if user is None:
        return

    header, action = st.columns([4, 1])
    with header:
        if user.picture_url:
            st.image(user.picture_url, width=64)
        else:
            st.subheader(user.initials)
        st.title(f"Welcome, {user.name}")
        st.caption(user.email)
    with action:
        if st.button("Sign out", use_container_width=True):
            cache.logout()
            app_state.request_cookie_clear()
            app_state.trigger_rerun()

    st.divider()
    render_forecast()


def home_page() -> None:
    """Root URL; main() always switches visitors to the login or dashboard page before it runs."""


def login_page() -> None:
    render_login(get_config())


def dashboard_page() -> None:
    render_dashboard(_session_cache(get_config()))


PAGE_FUNCTIONS: Dict[str, Callable[[], None]] = {
    HOME_PAGE: home_page,
    LOGIN_PAGE: login_page,
    DASHBOARD_PAGE: dashboard_page,
}


def build_pages() -> Dict[str, st.Page]:
    pages = {}
    for route in PAGE_ROUTES:
        options = {"title": route.title, "icon": route.icon, "default": route.default}
        if route.url_path:
            options["url_path"] = route.url_path
        pages[route.name] = st.Page(PAGE_FUNCTIONS[route.name], **options)
    return pages


def sync_identity(cache: ClientSessionCache) -> None:
    raw_user = app_state.get_query_param(REDIRECT_USER_PARAM)
    if raw_user:
        cache.adopt_from_redirect(raw_user, clear_address=lambda: app_state.clear_query_param(REDIRECT_USER_PARAM))
    else:
        cache.refresh()


def main() -> None:
    st.set_page_config(
        page_title="Portfolio Dashboard",
        page_icon="📈",
        layout="wide",
    )

    config = get_config()
    cache = _session_cache(config)
    pages = build_pages()
    current = st.navigation(list(pages.values()), position="hidden")

    sync_identity(cache)
    target = redirect_target(route_by_title(current.title).name, cache.is_authenticated)
    if target is not None:
        st.switch_page(pages[target])

    if cache.is_authenticated:
        browser.renew_session_cookie(config.user_url)
    elif app_state.consume_cookie_clear():
        browser.clear_session_cookie(config.logout_url)

    current.run()


if __name__ == "__main__":
    main()
