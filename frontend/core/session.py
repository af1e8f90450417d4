"""Browser-side, non-authoritative view of who is signed in.

The backend owns the session; this module only remembers the last answer it
gave so the UI can render without asking again, and tells interested views
whenever that answer changes.
"""

from __future__ import annotations

import json
import threading
from typing import Callable, Dict, Generic, Optional, TypeVar

from frontend.utils.logging import get_logger

from . import api
from .api import BackendError, is_unauthorized_error
from .models import UserProfile

LOGGER = get_logger(__name__)

T = TypeVar("T")


class CurrentValue(Generic[T]):
    """Latest-value cell that replays its current value to new subscribers."""

    def __init__(self, initial: Optional[T] = None) -> None:
        self._value = initial
        self._subscribers: Dict[int, Callable[[Optional[T]], None]] = {}
        self._next_token = 0
        self._lock = threading.RLock()

    @property
    def value(self) -> Optional[T]:
        with self._lock:
            return self._value

    def publish(self, value: Optional[T]) -> None:
        with self._lock:
            self._value = value
            subscribers = list(self._subscribers.values())
        for callback in subscribers:
            self._notify(callback, value)

    def subscribe(self, callback: Callable[[Optional[T]], None]) -> Callable[[], None]:
        """Register ``callback``, call it once with the current value, and return an unsubscribe function."""
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._subscribers[token] = callback
            current = self._value
        self._notify(callback, current)

        def unsubscribe() -> None:
            with self._lock:
                self._subscribers.pop(token, None)

        return unsubscribe

    @staticmethod
    def _notify(callback: Callable[[Optional[T]], None], value: Optional[T]) -> None:
        try:
            callback(value)
        except Exception:  # pylint: disable=broad-except
            LOGGER.exception("Session subscriber raised; continuing with remaining subscribers")


class ClientSessionCache:
    """Holds the signed-in :class:`UserProfile` or ``None`` ("absent").

    Overlapping ``refresh`` calls are not serialised: whichever response
    resolves last is the one that stays published.
    """

    def __init__(
        self,
        fetch_user: Callable[[], UserProfile],
        post_logout: Callable[[], None],
    ) -> None:
        self._fetch_user = fetch_user
        self._post_logout = post_logout
        self._current: CurrentValue[UserProfile] = CurrentValue()
        self._adopted = False

    @property
    def user(self) -> Optional[UserProfile]:
        return self._current.value

    @property
    def is_authenticated(self) -> bool:
        return self._current.value is not None

    def subscribe(self, callback: Callable[[Optional[UserProfile]], None]) -> Callable[[], None]:
        return self._current.subscribe(callback)

    def refresh(self) -> Optional[UserProfile]:
        """Ask the backend who is signed in; any failure publishes absent."""
        try:
            user = self._fetch_user()
        except BackendError as exc:
            if is_unauthorized_error(exc):
                LOGGER.info("No live session; treating browser as signed out")
            else:
                LOGGER.warning("Identity query failed; treating browser as signed out: %s", exc)
            user = None
        self._current.publish(user)
        return user

    def adopt_from_redirect(self, raw: Optional[str], clear_address: Callable[[], None]) -> Optional[UserProfile]:
        """Take identity data handed over on the post-login redirect, then confirm it.

        The handed-over profile is published provisionally so views can render
        at once, and the backend's answer to a fresh identity query replaces it.
        Only the first handover is ever published. ``clear_address`` is always
        invoked when data was present so the parameter does not linger in
        history or bookmarks. Returns the confirmed user, or None.
        """
        if not raw:
            return None
        provisional: Optional[UserProfile] = None
        try:
            if self._adopted:
                LOGGER.info("Ignoring repeated redirect identity data")
            else:
                self._adopted = True
                try:
                    provisional = UserProfile.from_dict(json.loads(raw))
                except ValueError as exc:
                    LOGGER.warning("Discarding malformed redirect identity data: %s", exc)
                else:
                    self._current.publish(provisional)
        finally:
            clear_address()

        confirmed = self.refresh()
        if provisional is not None and (confirmed is None or confirmed.email != provisional.email):
            LOGGER.warning("Redirect identity data did not match the live session; using the backend's answer")
        return confirmed

    def logout(self) -> None:
        """End the session server-side, then publish absent whatever the outcome."""
        try:
            self._post_logout()
        except BackendError as exc:
            LOGGER.warning("Logout request failed; clearing local session view anyway: %s", exc)
        finally:
            self._current.publish(None)


def build_session_cache(token_source: Callable[[], Optional[str]]) -> ClientSessionCache:
    """Wire a cache to the backend API, reading the session cookie at call time."""
    return ClientSessionCache(
        fetch_user=lambda: api.get_current_user(token_source()),
        post_logout=lambda: api.logout(token_source()),
    )
