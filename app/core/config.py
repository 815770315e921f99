"""Environment driven settings for the chat automation engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

DEFAULT_BUSINESS_TIMEZONE = "America/Sao_Paulo"
DEFAULT_SYSTEM_SENDER_NAME = "Sistema"


def _to_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise RuntimeError(f"Expected an integer setting, got {value!r}") from exc


@dataclass(slots=True, frozen=True)
class AutomationSettings:
    """Configuration derived from the environment.

    Attributes:
        database_url: PostgreSQL DSN used by the psycopg record store.
        business_timezone: IANA zone used for business hours when the tenant
            has no timezone of its own.
        system_sender_name: ``sender_name`` stamped on automated messages.
        sweep_interval_seconds: Default pause between sweeps for ``sweep.py``.
        assign_rate_limit: slowapi limit applied to the assignment endpoint.
    """

    database_url: str | None
    business_timezone: str = DEFAULT_BUSINESS_TIMEZONE
    system_sender_name: str = DEFAULT_SYSTEM_SENDER_NAME
    sweep_interval_seconds: int = 60
    assign_rate_limit: str = "30/minute"

    @classmethod
    def from_env(cls) -> "AutomationSettings":
        return cls(
            database_url=os.getenv("DATABASE_URL") or None,
            business_timezone=os.getenv("CHAT_BUSINESS_TIMEZONE", DEFAULT_BUSINESS_TIMEZONE),
            system_sender_name=os.getenv(
                "CHAT_SYSTEM_SENDER_NAME", DEFAULT_SYSTEM_SENDER_NAME
            ),
            sweep_interval_seconds=_to_int(os.getenv("CHAT_SWEEP_INTERVAL_SECONDS"), 60),
            assign_rate_limit=os.getenv("CHAT_ASSIGN_RATE_LIMIT", "30/minute"),
        )


@lru_cache(maxsize=1)
def get_settings() -> AutomationSettings:
    """Return cached settings; call :func:`reset_settings_cache` after env changes."""

    return AutomationSettings.from_env()


def reset_settings_cache() -> None:
    get_settings.cache_clear()
