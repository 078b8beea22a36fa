"""
SQLAlchemy ORM models.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserConnection(Base):
    """One external account linked to a user, at most one per provider."""

    __tablename__ = "user_connections"
    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_user_connections_user_provider"),
        Index("ix_user_connections_user_id", "user_id"),
    )

    connection_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # Issued by the auth layer; not a foreign key.
    user_id = Column(String(64), nullable=False)
    provider = Column(String(32), nullable=False)
    username = Column(String(128), nullable=False)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text)
    scope = Column(Text)
    connected_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
