"""Runtime helpers for storing the tenant being served.

This module exposes a small API around a :class:`contextvars.ContextVar`
that keeps track of the current tenant while a request or an automation run
is working on its behalf. HTTP routes populate it from the ``X-Tenant-Id``
header, and the automation sweep sets it once per tenant it visits. Each
``set_tenant_context`` call returns a token that must be passed back to
``reset_tenant_context`` when the unit of work ends. Other layers (for
example the database helpers or log formatting) call
``get_current_tenant_id`` without needing the original request.
"""

from __future__ import annotations

from contextvars import ContextVar, Token
from typing import TypedDict

__all__ = [
    "TenantRuntimeContext",
    "get_current_actor",
    "get_current_tenant_id",
    "reset_tenant_context",
    "set_tenant_context",
]


class TenantRuntimeContext(TypedDict):
    """Values stored in the tenant context."""

    tenant_id: str
    actor: str


_tenant_context: ContextVar[TenantRuntimeContext | None] = ContextVar(
    "tenant_runtime_context", default=None
)


def set_tenant_context(tenant_id: str, actor: str) -> Token[TenantRuntimeContext | None]:
    """Persist the tenant metadata in the context variable.

    Args:
        tenant_id: Identifier of the tenant being served.
        actor: Who acts for the tenant, e.g. ``"api"`` or ``"automation"``.

    Returns:
        ``Token`` returned by :meth:`contextvars.ContextVar.set`. Callers must
        later pass this token to :func:`reset_tenant_context`.
    """

    return _tenant_context.set({"tenant_id": tenant_id, "actor": actor})


def reset_tenant_context(token: Token[TenantRuntimeContext | None]) -> None:
    """Restore the tenant context to the state prior to ``set_tenant_context``."""

    _tenant_context.reset(token)


def get_current_tenant_id() -> str | None:
    """Return the tenant identifier for the current execution context.

    ``None`` means no tenant has been selected, e.g. during the cross-tenant
    part of an automation sweep.
    """

    context = _tenant_context.get()
    if context is None:
        return None
    return context["tenant_id"]


def get_current_actor() -> str | None:
    context = _tenant_context.get()
    if context is None:
        return None
    return context["actor"]
