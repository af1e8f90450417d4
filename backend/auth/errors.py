"""Error taxonomy for the authentication session protocol."""

from __future__ import annotations


class AuthError(Exception):
    """Base class for every authentication protocol error."""


class ConfigurationError(AuthError):
    """Raised when provider credentials or the frontend URL are missing or invalid."""


class ProviderNotConfigured(ConfigurationError):
    """Raised when a login is attempted while no identity provider is configured."""

    def __init__(self, provider_name: str = "Google") -> None:
        super().__init__(f"{provider_name} authentication not configured")
        self.provider_name = provider_name


class AuthenticationFailure(AuthError):
    """Raised when a provider callback cannot be turned into an identity claim.

    ``reason`` is for server logs only and must never be sent to the browser.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class TransportError(AuthenticationFailure):
    """Raised when the identity provider cannot be reached or times out."""


class Unauthorized(AuthError):
    """Raised when a protected query carries no valid session."""
