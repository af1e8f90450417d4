"""SQLAlchemy models for the authentication subsystem."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Index, String, Text, func, true

from ..db import Base


class AuthSessionRecord(Base):
    """Persisted authenticated session keyed by its opaque cookie token."""

    __tablename__ = "auth_sessions"

    id = Column(String(72), primary_key=True)
    subject_name = Column(String(320), nullable=False)
    subject_email = Column(String(320), nullable=False)
    subject_picture_url = Column(Text, nullable=True)
    issued_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    sliding_expiration = Column(Boolean, nullable=False, server_default=true())
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


Index("ix_auth_sessions_expiry", AuthSessionRecord.expires_at)
