"""Identity claims attested by the external provider."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

EMAIL_CLAIM_URI = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/emailaddress"
NAME_CLAIM_URI = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/name"


@dataclass(frozen=True)
class IdentityClaim:
    """The provider's attestation about the signed-in subject."""

    name: str
    email: str
    picture_url: Optional[str] = None


def _first_text(claims: Mapping[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = claims.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def claim_from_provider(claims: Mapping[str, Any]) -> IdentityClaim:
    """Map provider-specific claim keys into an :class:`IdentityClaim`.

    Raises:
        ValueError: if no e-mail address is present.
    """
    email = _first_text(claims, "email", EMAIL_CLAIM_URI)
    if not email:
        raise ValueError("Provider claims carry no e-mail address")

    name = _first_text(claims, "name", NAME_CLAIM_URI)
    if not name:
        given = _first_text(claims, "given_name") or ""
        family = _first_text(claims, "family_name") or ""
        name = f"{given} {family}".strip() or email

    return IdentityClaim(name=name, email=email, picture_url=_first_text(claims, "picture"))
