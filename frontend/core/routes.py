from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

HOME_PAGE = "home"
LOGIN_PAGE = "login"
DASHBOARD_PAGE = "dashboard"


@dataclass(frozen=True)
class PageRoute:
    """A Streamlit page and the URL path the backend redirects to."""

    name: str
    title: str
    icon: str
    url_path: str
    default: bool = False


# The backend lands successful sign-ins on /dashboard and failures on /login.
PAGE_ROUTES: Tuple[PageRoute, ...] = (
    PageRoute(HOME_PAGE, "Portfolio Dashboard", "📈", url_path="", default=True),
    PageRoute(LOGIN_PAGE, "Sign in", "🔐", url_path=LOGIN_PAGE),
    PageRoute(DASHBOARD_PAGE, "Dashboard", "📊", url_path=DASHBOARD_PAGE),
)


def route_by_title(title: str) -> PageRoute:
    for route in PAGE_ROUTES:
        if route.title == title:
            return route
    raise KeyError(title)


def redirect_target(current: str, is_authenticated: bool) -> Optional[str]:
    """Return the page a visitor on ``current`` should be sent to, or None to stay."""
    wanted = DASHBOARD_PAGE if is_authenticated else LOGIN_PAGE
    return None if current == wanted else wanted
