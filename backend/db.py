"""Database engine and session management for the dashboard backend."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from functools import lru_cache
from typing import Generator

from dotenv import load_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

# Load environment from .env if available so database configuration is discoverable.
load_dotenv()

LOGGER = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base declarative class used by all ORM models."""


def _build_sqlite_url() -> str:
    """Construct the default SQLite connection string."""
    sqlite_path_env = os.getenv("DASHBOARD_SQLITE_PATH", "data/dashboard.db")
    if sqlite_path_env == ":memory:":
        return "sqlite:///:memory:"

    project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    sqlite_path = os.path.expanduser(sqlite_path_env)
    if not os.path.isabs(sqlite_path):
        sqlite_path = os.path.normpath(os.path.join(project_root, sqlite_path))

    directory = os.path.dirname(sqlite_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    return f"sqlite:///{sqlite_path}"


def _build_database_url() -> str:
    url = os.getenv("DASHBOARD_DB_URL", "").strip()
    if url:
        return url
    return _build_sqlite_url()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Create the process-wide engine on first use."""
    database_url = _build_database_url()
    engine_kwargs = {
        "future": True,
        "pool_pre_ping": True,
    }
    if database_url.startswith("sqlite"):
        # SQLite requires disabling same-thread checks for multi-threaded FastAPI workers.
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    LOGGER.info("Creating database engine for %s", database_url.split("://", 1)[0])
    return create_engine(database_url, **engine_kwargs)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
        future=True,
    )


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    return build_session_factory(get_engine())


@contextmanager
def session_scope(factory: sessionmaker | None = None) -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations."""
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_database(engine: Engine | None = None) -> None:
    """Ensure all ORM tables are created in the configured database."""
    # Import models within the function to avoid circular imports.
    from .auth import models  # noqa: F401  # pylint: disable=unused-import

    engine = engine or get_engine()
    if engine.dialect.name == "sqlite" and engine.url.database not in (None, "", ":memory:"):
        with engine.begin() as conn:
            # WAL lets concurrent readers proceed while a session expiry is being extended.
            conn.execute(text("PRAGMA journal_mode=WAL"))
            conn.execute(text("PRAGMA synchronous=NORMAL"))

    Base.metadata.create_all(bind=engine)


def dispose_engine() -> None:
    """Release pooled connections at shutdown."""
    if get_engine.cache_info().currsize:
        get_engine().dispose()
