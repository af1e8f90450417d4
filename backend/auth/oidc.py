"""Identity provider adapters for the redirect-based OpenID Connect exchange."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode

import httpx
from fastapi import status
from fastapi.responses import RedirectResponse
from jose import jwk, jwt
from jose.exceptions import JOSEError

from .config import AuthSettings
from .crypto import generate_pkce_challenge, tokens_match
from .errors import AuthenticationFailure, ConfigurationError, TransportError
from .identity import IdentityClaim, claim_from_provider
from .pending import PendingLogin, PendingLoginStore

LOGGER = logging.getLogger(__name__)

OIDC_SCOPES = "openid email profile"


@dataclass(frozen=True)
class AuthorizationRequest:
    """Where to send the browser to start a login, and the state it carries."""

    url: str
    state: str

    def redirect(self) -> RedirectResponse:
        return RedirectResponse(self.url, status_code=status.HTTP_302_FOUND)


@dataclass(frozen=True)
class CompletedAuthorization:
    claim: IdentityClaim
    return_path: str


class IdentityProvider(ABC):
    """Provider-neutral half of the authorization-code exchange.

    The base class owns the PendingLogin lifecycle: every callback consumes
    its state exactly once, whether or not the rest of the exchange succeeds.
    Subclasses only build the authorization URL and turn a code into a claim.
    """

    display_name = "Identity provider"

    def __init__(self, pending_logins: PendingLoginStore) -> None:
        self._pending_logins = pending_logins

    @property
    def pending_logins(self) -> PendingLoginStore:
        return self._pending_logins

    @abstractmethod
    async def build_authorization_url(self, pending: PendingLogin, *, redirect_uri: str) -> str:
        """Return the provider URL that starts the login described by ``pending``."""

    @abstractmethod
    async def exchange_code(self, code: str, pending: PendingLogin, *, redirect_uri: str) -> IdentityClaim:
        """Redeem ``code`` with the provider and return the subject's claim."""

    async def begin_authorization(self, return_path: str, *, redirect_uri: str) -> AuthorizationRequest:
        pending = self._pending_logins.issue(return_path)
        try:
            url = await self.build_authorization_url(pending, redirect_uri=redirect_uri)
        except httpx.HTTPError as exc:
            self._pending_logins.claim(pending.state)
            raise TransportError(f"Provider metadata unavailable: {exc.__class__.__name__}") from exc
        except Exception:
            self._pending_logins.claim(pending.state)
            raise
        return AuthorizationRequest(url=url, state=pending.state)

    async def complete_authorization(
        self,
        params: Mapping[str, str],
        *,
        bound_state: Optional[str],
        redirect_uri: str,
    ) -> CompletedAuthorization:
        """Validate the callback and return the attested identity.

        Raises:
            AuthenticationFailure: for an unknown, reused, expired or unbound
                state, a provider-side error, or a failed code exchange.
        """
        state = params.get("state")
        pending = self._pending_logins.claim(state)
        if pending is None:
            raise AuthenticationFailure("Unknown, reused or expired state")
        if not tokens_match(pending.state, bound_state):
            raise AuthenticationFailure("State is not bound to this browser")

        provider_error = params.get("error")
        if provider_error:
            raise AuthenticationFailure(f"Provider denied the request: {provider_error}")
        code = params.get("code")
        if not code:
            raise AuthenticationFailure("Callback is missing the authorization code")

        try:
            claim = await self.exchange_code(code, pending, redirect_uri=redirect_uri)
        except AuthenticationFailure:
            raise
        except httpx.TimeoutException as exc:
            raise TransportError("Provider exchange timed out") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Provider exchange failed: {exc.__class__.__name__}") from exc
        except (JOSEError, ValueError, KeyError) as exc:
            raise AuthenticationFailure(f"Provider response rejected: {exc}") from exc
        return CompletedAuthorization(claim=claim, return_path=pending.return_path)


class GoogleIdentityProvider(IdentityProvider):
    """Google sign-in using the authorization-code flow with PKCE."""

    display_name = "Google"

    def __init__(
        self,
        settings: AuthSettings,
        pending_logins: PendingLoginStore,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not settings.provider_configured:
            raise ConfigurationError("Google client credentials are not configured")
        super().__init__(pending_logins)
        self._settings = settings
        self._transport = transport
        self._metadata_cache: Dict[str, Any] | None = None
        self._metadata_cached_at: Optional[datetime] = None
        self._jwks_cache: Dict[str, Any] | None = None
        self._jwks_cached_at: Optional[datetime] = None
        self._cache_lock = asyncio.Lock()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._settings.provider_timeout_seconds, transport=self._transport)

    async def _fetch_json(self, url: str) -> Dict[str, Any]:
        async with self._client() as client:
            response = await client.get(url)
            response.raise_for_status()
            payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"Expected a JSON object from {url}")
        return payload

    async def _metadata(self) -> Dict[str, Any]:
        async with self._cache_lock:
            now = datetime.now(timezone.utc)
            if self._metadata_cache and self._metadata_cached_at and now - self._metadata_cached_at < timedelta(hours=1):
                return self._metadata_cache
            self._metadata_cache = await self._fetch_json(self._settings.google_discovery_url)
            self._metadata_cached_at = now
            return self._metadata_cache

    async def _jwks(self) -> Dict[str, Any]:
        metadata = await self._metadata()
        async with self._cache_lock:
            now = datetime.now(timezone.utc)
            if self._jwks_cache and self._jwks_cached_at and now - self._jwks_cached_at < timedelta(hours=4):
                return self._jwks_cache
            jwks_uri = metadata.get("jwks_uri")
            if not jwks_uri:
                raise ValueError("Discovery document has no jwks_uri")
            self._jwks_cache = await self._fetch_json(jwks_uri)
            self._jwks_cached_at = now
            return self._jwks_cache

    async def build_authorization_url(self, pending: PendingLogin, *, redirect_uri: str) -> str:
        metadata = await self._metadata()
        authorization_endpoint = metadata.get("authorization_endpoint")
        if not authorization_endpoint:
            raise ValueError("Discovery document has no authorization_endpoint")
        query = {
            "client_id": self._settings.google_client_id,
            "response_type": "code",
            "redirect_uri": redirect_uri,
            "scope": OIDC_SCOPES,
            "state": pending.state,
            "nonce": pending.nonce,
            "code_challenge": generate_pkce_challenge(pending.code_verifier),
            "code_challenge_method": "S256",
            "prompt": "select_account",
        }
        return f"{authorization_endpoint}?{urlencode(query)}"

    async def exchange_code(self, code: str, pending: PendingLogin, *, redirect_uri: str) -> IdentityClaim:
        metadata = await self._metadata()
        token_endpoint = metadata.get("token_endpoint")
        if not token_endpoint:
            raise ValueError("Discovery document has no token_endpoint")
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "client_id": self._settings.google_client_id,
            "client_secret": self._settings.google_client_secret,
            "code_verifier": pending.code_verifier,
        }
        async with self._client() as client:
            response = await client.post(token_endpoint, data=data)
        if response.status_code != 200:
            raise AuthenticationFailure(f"Token exchange rejected (status={response.status_code})")
        tokens = response.json()
        id_token = tokens.get("id_token")
        if not id_token:
            raise AuthenticationFailure("Token response carries no id_token")

        claims = await self.decode_id_token(id_token, nonce=pending.nonce, access_token=tokens.get("access_token"))
        if claims.get("email_verified") is False:
            raise AuthenticationFailure("Provider reports the e-mail address as unverified")
        return claim_from_provider(claims)

    async def decode_id_token(
        self, id_token: str, *, nonce: str, access_token: Optional[str] = None
    ) -> Dict[str, Any]:
        """Verify ``id_token`` and return its claims.

        ``access_token`` is checked against the ``at_hash`` claim when Google includes one.
        """
        metadata = await self._metadata()
        issuer = str(metadata.get("issuer") or "")
        if not issuer:
            raise ValueError("Discovery document has no issuer")
        keys = await self._jwks()
        header = jwt.get_unverified_header(id_token)
        kid = header.get("kid")
        if not kid:
            raise AuthenticationFailure("ID token has no key id")
        key_data = next((key for key in keys.get("keys", []) if key.get("kid") == kid), None)
        if not key_data:
            raise AuthenticationFailure("ID token signed with an unknown key")
        public_key = jwk.construct(key_data, algorithm="RS256").to_pem().decode("utf-8")
        # Google issues both the bare host and the https form as `iss`.
        issuers = [issuer, issuer.removeprefix("https://")]
        claims = jwt.decode(
            id_token,
            public_key,
            algorithms=["RS256"],
            audience=self._settings.google_client_id,
            issuer=issuers,
            access_token=access_token,
        )
        if not tokens_match(nonce, claims.get("nonce")):
            raise AuthenticationFailure("ID token nonce mismatch")
        return claims
