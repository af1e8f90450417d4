"""Credentialed calls made from the visitor's browser rather than the Streamlit server.

Streamlit talks to the API server-to-server, so any ``Set-Cookie`` the API
answers with lands in ``requests`` and never reaches the browser. The session
cookie is renewed (and cleared on logout) by having the browser itself call
the API with ``credentials: "include"``.
"""

from __future__ import annotations

import json

import streamlit.components.v1 as components


def build_credentialed_fetch_script(url: str, method: str = "GET") -> str:
    """Return an HTML snippet that calls ``url`` with the browser's cookies attached."""
    url_js = json.dumps(url)
    method_js = json.dumps(method.upper())
    return f"""
    <script>
    (function() {{
      fetch({url_js}, {{
        method: {method_js},
        credentials: "include",
        redirect: "manual",
        cache: "no-store"
      }}).catch(function() {{}});
    }})();
    </script>
    """


def _render_script(script: str) -> None:
    components.html(script, height=0)


def renew_session_cookie(user_url: str) -> None:
    """Ask the API, from the browser, who is signed in so the sliding cookie is re-issued."""
    _render_script(build_credentialed_fetch_script(user_url))


def clear_session_cookie(logout_url: str) -> None:
    """Post the logout from the browser so the API's cookie-clearing response reaches it."""
    _render_script(build_credentialed_fetch_script(logout_url, method="POST"))
