"""Database connection and tenant lookup helpers."""

from __future__ import annotations

from uuid import UUID

import psycopg

from .config import get_settings
from .tenant_context import get_current_tenant_id


def connect(
    database_url: str | None = None, *, autocommit: bool = False
) -> psycopg.Connection:
    """Open a psycopg connection to ``database_url`` or ``DATABASE_URL``."""

    url = database_url or get_settings().database_url
    if not url:
        raise RuntimeError("DATABASE_URL is not configured.")
    return psycopg.connect(url, autocommit=autocommit)


def get_required_tenant_id(tenant_id: str | UUID | None = None) -> UUID:
    """Return the current tenant identifier or raise ``RuntimeError``."""

    effective = tenant_id or get_current_tenant_id()
    if effective is None:
        raise RuntimeError("Tenant context missing")
    if isinstance(effective, UUID):
        return effective
    try:
        return UUID(str(effective))
    except ValueError as exc:
        raise RuntimeError("Invalid tenant identifier") from exc
