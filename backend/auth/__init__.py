"""Cookie-session authentication for the portfolio dashboard backend."""

from .routes import router as auth_router
from .service import AuthService, SessionState
from .store import InMemorySessionStore, SessionStore, SqlSessionStore

__all__ = [
    "AuthService",
    "InMemorySessionStore",
    "SessionState",
    "SessionStore",
    "SqlSessionStore",
    "auth_router",
]
