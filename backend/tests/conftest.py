from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterator, List, Optional
from urllib.parse import parse_qs, urlencode, urlparse

import pytest
from fastapi.testclient import TestClient

from backend.app import create_app
from backend.auth import config as auth_config
from backend.auth.config import AuthSettings, Environment
from backend.auth.errors import AuthenticationFailure
from backend.auth.identity import IdentityClaim
from backend.auth.oidc import IdentityProvider
from backend.auth.pending import PendingLogin, PendingLoginStore
from backend.auth.store import InMemorySessionStore

ADA = IdentityClaim(name="Ada Lovelace", email="ada@example.com")


class FakeClock:
    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class StubIdentityProvider(IdentityProvider):
    """Provider double that attests ``claim`` for any authorization code."""

    display_name = "Stub"

    def __init__(
        self,
        claim: IdentityClaim = ADA,
        *,
        pending_logins: Optional[PendingLoginStore] = None,
        failure: Optional[AuthenticationFailure] = None,
    ) -> None:
        super().__init__(pending_logins or PendingLoginStore())
        self.claim = claim
        self.failure = failure
        self.exchanged_codes: List[str] = []
        self.redirect_uris: List[str] = []

    async def build_authorization_url(self, pending: PendingLogin, *, redirect_uri: str) -> str:
        self.redirect_uris.append(redirect_uri)
        return f"https://idp.test/authorize?{urlencode({'state': pending.state, 'redirect_uri': redirect_uri})}"

    async def exchange_code(self, code: str, pending: PendingLogin, *, redirect_uri: str) -> IdentityClaim:
        self.exchanged_codes.append(code)
        if self.failure is not None:
            raise self.failure
        return self.claim


def state_from_location(location: str) -> str:
    return parse_qs(urlparse(location).query)["state"][0]


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Iterator[None]:
    auth_config.load_auth_settings.cache_clear()
    yield
    auth_config.load_auth_settings.cache_clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def dev_settings() -> AuthSettings:
    return AuthSettings(environment=Environment.DEVELOPMENT, frontend_base_url="http://localhost:8501")


@pytest.fixture
def prod_settings() -> AuthSettings:
    return AuthSettings(
        environment=Environment.PRODUCTION,
        frontend_base_url="https://portfolio.example.com",
        google_client_id="client-id",
        google_client_secret="client-secret",
        require_provider=True,
        session_cookie_secure=True,
    )


@pytest.fixture
def provider() -> StubIdentityProvider:
    return StubIdentityProvider()


@pytest.fixture
def session_store(clock: FakeClock) -> InMemorySessionStore:
    return InMemorySessionStore(clock=clock)


@pytest.fixture
def client(dev_settings, session_store, provider) -> Iterator[TestClient]:
    app = create_app(settings=dev_settings, store=session_store, provider=provider)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_provider():
    return StubIdentityProvider


@pytest.fixture
def make_clock():
    return FakeClock


@pytest.fixture
def start_login():
    """Begin a login through ``client`` and return the correlation state."""

    def _start(client: TestClient, **params: str) -> str:
        response = client.get("/api/auth/login", params=params, follow_redirects=False)
        assert response.status_code == 302
        return state_from_location(response.headers["location"])

    return _start


@pytest.fixture
def sign_in(start_login):
    """Run a full login plus callback and return the callback response."""

    def _sign_in(client: TestClient, code: str = "auth-code", **params: str):
        state = start_login(client, **params)
        return client.get("/api/auth/callback", params={"state": state, "code": code}, follow_redirects=False)

    return _sign_in
