"""Correlation state kept between login initiation and the provider callback."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from .crypto import generate_pkce_verifier, generate_token
from .store import Clock, normalize_dt, utc_now

DEFAULT_PENDING_LOGIN_TTL = timedelta(minutes=10)


@dataclass(frozen=True)
class PendingLogin:
    """One in-flight login: its state nonce, OIDC nonce, PKCE verifier and landing path."""

    state: str
    nonce: str
    code_verifier: str
    return_path: str
    issued_at: datetime


class PendingLoginStore:
    """Single-use registry of pending logins.

    ``claim`` removes the entry under a lock, so a state presented twice
    (including by two concurrent callbacks) is honoured at most once.
    """

    def __init__(self, *, ttl: timedelta = DEFAULT_PENDING_LOGIN_TTL, clock: Optional[Clock] = None) -> None:
        self._ttl = ttl
        self._clock = clock or utc_now
        self._pending: Dict[str, PendingLogin] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def _now(self) -> datetime:
        return normalize_dt(self._clock())

    def _expired(self, pending: PendingLogin, now: datetime) -> bool:
        return now - pending.issued_at > self._ttl

    def issue(self, return_path: str) -> PendingLogin:
        now = self._now()
        pending = PendingLogin(
            state=generate_token(),
            nonce=generate_token(16),
            code_verifier=generate_pkce_verifier(),
            return_path=return_path,
            issued_at=now,
        )
        with self._lock:
            for state in [key for key, value in self._pending.items() if self._expired(value, now)]:
                del self._pending[state]
            self._pending[pending.state] = pending
        return pending

    def claim(self, state: Optional[str]) -> Optional[PendingLogin]:
        """Atomically remove and return the pending login for ``state``.

        Returns None when the state is unknown, already claimed, or expired.
        """
        if not state:
            return None
        now = self._now()
        with self._lock:
            pending = self._pending.pop(state, None)
        if pending is None or self._expired(pending, now):
            return None
        return pending
