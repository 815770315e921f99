"""Read-only assignability check for waiting rooms.

The resolver answers whether a room *could* be handed to a human right now
by walking the routing graph ``category -> team -> attendant``:

1. A room that is already active with an attendant short-circuits.
2. Outside the tenant's business hours nothing else is evaluated.
3. The room's category (or the tenant default) selects the routed teams.
4. The first team whose assignment config is enabled and has at least one
   eligible attendant with spare capacity (or allows over-capacity) makes
   the room assignable.

It never writes: claiming a room for a specific attendant is done by
:class:`~app.chat.lifecycle.RoomLifecycleService`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from uuid import UUID

from . import business_hours
from .models import ROOM_ACTIVE, EligibilityResult, Room, TeamRoute
from .store import ChatStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EligibilityResolver:
    """Evaluates business hours and routing capacity for a room."""

    def __init__(
        self,
        store: ChatStore,
        *,
        default_timezone: str,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._default_timezone = default_timezone
        self._clock = clock or _utcnow

    def resolve(self, room: Room) -> EligibilityResult:
        if room.attendant_id is not None and room.status == ROOM_ACTIVE:
            attendant = self._store.get_attendant(room.attendant_id)
            return EligibilityResult(
                already_assigned=True,
                attendant_name=attendant.display_name if attendant else None,
            )

        if not self.is_within_business_hours(room.tenant_id):
            return EligibilityResult(outside_hours=True)

        category_id = self._resolve_category(room)
        if category_id is None:
            logger.info(
                "room %s has no category and tenant has no default",
                room.id,
                extra={"tenant_id": str(room.tenant_id), "room_id": str(room.id)},
            )
            return EligibilityResult(all_busy=True)

        for route in self._store.resolve_category_routing(category_id):
            if self._team_can_take(route):
                return EligibilityResult(all_busy=False)
        return EligibilityResult(all_busy=True)

    def is_within_business_hours(self, tenant_id: UUID) -> bool:
        windows = self._store.list_business_hours(tenant_id)
        if not windows:
            return True
        tz = business_hours.resolve_timezone(
            self._store.get_tenant_timezone(tenant_id), self._default_timezone
        )
        return business_hours.is_open(windows, self._clock(), tz)

    # Helpers ------------------------------------------------------------------
    def _resolve_category(self, room: Room) -> UUID | None:
        if room.category_id is not None:
            return room.category_id
        default = self._store.get_default_category(room.tenant_id)
        return default.id if default else None

    def _team_can_take(self, route: TeamRoute) -> bool:
        config = route.config
        if not config.enabled:
            return False
        attendants = self._store.list_team_attendants(
            route.team.id, online_only=config.online_only
        )
        if not attendants:
            return False
        if config.allow_over_capacity:
            return True
        return any(a.active_conversations < config.capacity_limit for a in attendants)
