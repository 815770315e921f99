"""Tenant business-hours calendar."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .models import BusinessHoursWindow

logger = logging.getLogger(__name__)


def resolve_timezone(name: str | None, fallback: str) -> tzinfo:
    """Return the zone called ``name``, else ``fallback``, else UTC."""

    for candidate in (name, fallback):
        if not candidate:
            continue
        try:
            return ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("unknown timezone %r, trying fallback", candidate)
    return timezone.utc


def day_of_week(moment: datetime) -> int:
    """Weekday numbered from Sunday = 0, as stored in ``chat_business_hours``."""

    return (moment.weekday() + 1) % 7


def is_open(
    windows: Iterable[BusinessHoursWindow], now: datetime, tz: tzinfo
) -> bool:
    """Return whether ``now`` falls inside any active window.

    A tenant without any window is always open. Comparison happens at minute
    resolution, inclusive on both ends, so a ``09:00-18:00`` window is open
    from 09:00:00 until 18:00:59.
    """

    windows = list(windows)
    if not windows:
        return True
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(tz)
    dow = day_of_week(local)
    current = local.time().replace(second=0, microsecond=0)
    for window in windows:
        if not window.is_active or window.day_of_week != dow:
            continue
        start = window.start_time.replace(second=0, microsecond=0)
        end = window.end_time.replace(second=0, microsecond=0)
        if start <= current <= end:
            return True
    return False
