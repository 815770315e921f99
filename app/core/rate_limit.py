"""Shared SlowAPI limiter keyed by client IP."""

from __future__ import annotations

from fastapi import Request
from slowapi import Limiter

from .config import get_settings


def get_client_ip(request: Request) -> str:
    """Extract a best-effort client IP for rate limiting.

    Prefer ``X-Forwarded-For`` (first hop) if present, otherwise use the
    socket peer address.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client is None:
        return "unknown"
    return request.client.host


def assignment_rate_limit() -> str:
    return get_settings().assign_rate_limit


limiter = Limiter(key_func=get_client_ip)
