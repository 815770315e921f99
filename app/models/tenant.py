"""Tenant SQLAlchemy model.

Every chat table is scoped by ``tenant_id`` pointing at :class:`Organization`.
The DDL is kept in sync with ``app/migrations/001_create_chat_tables.py``.
"""

from __future__ import annotations

import datetime as dt
import uuid

from sqlalchemy import DateTime, Index, String, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from . import Base


def _utcnow() -> dt.datetime:
    """Return the current UTC timestamp with timezone awareness."""

    return dt.datetime.now(dt.timezone.utc)


class Organization(Base):
    """Represents a tenant organization in the platform.

    Attributes:
        id: Primary key generated via ``gen_random_uuid`` in Postgres.
        name: Display name of the organization.
        subdomain: Unique subdomain used for tenant isolation.
        timezone: IANA zone of the tenant's business hours. ``None`` falls
            back to ``CHAT_BUSINESS_TIMEZONE``.
    """

    __tablename__ = "organizations"
    __table_args__ = (
        Index("ix_organizations_subdomain_unique", "subdomain", unique=True),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    subdomain: Mapped[str] = mapped_column(String(length=255), nullable=False)
    timezone: Mapped[str | None] = mapped_column(String(length=64), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )


__all__ = ["Organization"]
