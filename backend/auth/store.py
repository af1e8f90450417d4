"""Authoritative storage of authenticated sessions keyed by opaque token."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from sqlalchemy import delete
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .. import db
from .crypto import generate_token
from .identity import IdentityClaim
from .models import AuthSessionRecord

LOGGER = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = timedelta(days=30)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_dt(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class Session:
    """Server-side record proving a browser completed login."""

    session_id: str
    subject_name: str
    subject_email: str
    subject_picture_url: Optional[str]
    issued_at: datetime
    expires_at: datetime
    sliding_expiration: bool = True

    @property
    def claim(self) -> IdentityClaim:
        return IdentityClaim(
            name=self.subject_name,
            email=self.subject_email,
            picture_url=self.subject_picture_url,
        )


class SessionStore(ABC):
    """Interface shared by every session backend.

    ``lookup`` extends a sliding session as a side effect; the read and the
    extension happen atomically per token.
    """

    def __init__(self, *, ttl: timedelta = DEFAULT_SESSION_TTL, clock: Optional[Clock] = None) -> None:
        self._ttl = ttl
        self._clock = clock or utc_now

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def _now(self) -> datetime:
        return normalize_dt(self._clock())

    def remaining(self, session: Session) -> timedelta:
        """Time left before ``session`` expires, measured on this store's clock."""
        return max(session.expires_at - self._now(), timedelta(0))

    def open(self) -> None:
        """Prepare the backend at process start."""

    def close(self) -> None:
        """Release backend resources at process shutdown."""

    @abstractmethod
    def create(self, claim: IdentityClaim) -> str:
        """Store a new session for ``claim`` and return its token, dropping expired sessions."""

    @abstractmethod
    def lookup(self, session_id: Optional[str]) -> Optional[Session]:
        """Return the live session for ``session_id`` or None; never raises for unknown tokens."""

    @abstractmethod
    def destroy(self, session_id: Optional[str]) -> None:
        """Remove a session; unknown tokens are a no-op."""

    @abstractmethod
    def purge_expired(self) -> int:
        """Drop every expired session and return how many were removed."""


class InMemorySessionStore(SessionStore):
    """Process-local store for development and single-worker deployments."""

    def __init__(self, *, ttl: timedelta = DEFAULT_SESSION_TTL, clock: Optional[Clock] = None) -> None:
        super().__init__(ttl=ttl, clock=clock)
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def create(self, claim: IdentityClaim) -> str:
        now = self._now()
        session_id = generate_token()
        record = Session(
            session_id=session_id,
            subject_name=claim.name,
            subject_email=claim.email,
            subject_picture_url=claim.picture_url,
            issued_at=now,
            expires_at=now + self._ttl,
            sliding_expiration=True,
        )
        with self._lock:
            self._prune_locked(now)
            self._sessions[session_id] = record
        return session_id

    def lookup(self, session_id: Optional[str]) -> Optional[Session]:
        if not session_id:
            return None
        now = self._now()
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                return None
            if now > record.expires_at:
                del self._sessions[session_id]
                return None
            if record.sliding_expiration:
                record.expires_at = now + self._ttl
            return replace(record)

    def destroy(self, session_id: Optional[str]) -> None:
        if not session_id:
            return
        with self._lock:
            self._sessions.pop(session_id, None)

    def _prune_locked(self, now: datetime) -> int:
        expired = [key for key, record in self._sessions.items() if now > record.expires_at]
        for key in expired:
            del self._sessions[key]
        return len(expired)

    def purge_expired(self) -> int:
        now = self._now()
        with self._lock:
            return self._prune_locked(now)

    def close(self) -> None:
        with self._lock:
            self._sessions.clear()


class SqlSessionStore(SessionStore):
    """Session store persisted through SQLAlchemy so sessions survive restarts."""

    def __init__(
        self,
        *,
        engine: Optional[Engine] = None,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(ttl=ttl, clock=clock)
        self._engine = engine
        self._session_factory: Optional[sessionmaker] = None
        # Serialises read-then-extend inside this process; row locks cover other processes.
        self._lock = threading.Lock()

    def _get_engine(self) -> Engine:
        return self._engine if self._engine is not None else db.get_engine()

    def _factory(self) -> sessionmaker:
        if self._session_factory is None:
            if self._engine is None:
                self._session_factory = db.get_session_factory()
            else:
                self._session_factory = db.build_session_factory(self._engine)
        return self._session_factory

    def open(self) -> None:
        db.init_database(self._get_engine())
        LOGGER.info("SQL session store ready")

    def close(self) -> None:
        if self._engine is None:
            db.dispose_engine()
        else:
            self._engine.dispose()

    @staticmethod
    def _to_session(record: AuthSessionRecord) -> Session:
        return Session(
            session_id=record.id,
            subject_name=record.subject_name,
            subject_email=record.subject_email,
            subject_picture_url=record.subject_picture_url,
            issued_at=normalize_dt(record.issued_at),
            expires_at=normalize_dt(record.expires_at),
            sliding_expiration=bool(record.sliding_expiration),
        )

    def create(self, claim: IdentityClaim) -> str:
        now = self._now()
        session_id = generate_token()
        with db.session_scope(self._factory()) as session:
            session.execute(delete(AuthSessionRecord).where(AuthSessionRecord.expires_at < now))
            session.add(
                AuthSessionRecord(
                    id=session_id,
                    subject_name=claim.name,
                    subject_email=claim.email,
                    subject_picture_url=claim.picture_url,
                    issued_at=now,
                    expires_at=now + self._ttl,
                    sliding_expiration=True,
                )
            )
        return session_id

    def lookup(self, session_id: Optional[str]) -> Optional[Session]:
        if not session_id:
            return None
        now = self._now()
        with self._lock, db.session_scope(self._factory()) as session:
            record = session.get(AuthSessionRecord, session_id, with_for_update=True)
            if record is None:
                return None
            if now > normalize_dt(record.expires_at):
                session.delete(record)
                return None
            if record.sliding_expiration:
                record.expires_at = now + self._ttl
            return self._to_session(record)

    def destroy(self, session_id: Optional[str]) -> None:
        if not session_id:
            return
        with db.session_scope(self._factory()) as session:
            session.execute(delete(AuthSessionRecord).where(AuthSessionRecord.id == session_id))

    def purge_expired(self) -> int:
        now = self._now()
        with db.session_scope(self._factory()) as session:
            result = session.execute(delete(AuthSessionRecord).where(AuthSessionRecord.expires_at < now))
            return int(result.rowcount or 0)


def build_session_store(kind: str, *, ttl: timedelta = DEFAULT_SESSION_TTL) -> SessionStore:
    """Return the session backend named by ``kind`` (``memory`` or ``sql``)."""
    if kind == "sql":
        return SqlSessionStore(ttl=ttl)
    return InMemorySessionStore(ttl=ttl)
