"""Pydantic schemas for authentication routes."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .identity import IdentityClaim


class UserResponse(BaseModel):
    name: str
    email: str
    picture: Optional[str] = Field(default=None, description="Avatar URL, when the provider supplies one")

    @classmethod
    def from_claim(cls, claim: IdentityClaim) -> "UserResponse":
        return cls(name=claim.name, email=claim.email, picture=claim.picture_url)


class ErrorResponse(BaseModel):
    error: str
