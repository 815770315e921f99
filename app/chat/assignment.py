"""Room creation hook: welcome greeting plus assignability report."""

from __future__ import annotations

import logging
from uuid import UUID

from .eligibility import EligibilityResolver
from .emitter import SystemMessageEmitter
from .models import RULE_WELCOME, EligibilityResult, Room
from .store import ChatStore

logger = logging.getLogger(__name__)


class AssignmentService:
    """Runs once per newly created room for the intake flow."""

    def __init__(
        self,
        store: ChatStore,
        resolver: EligibilityResolver,
        emitter: SystemMessageEmitter,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._emitter = emitter

    def on_room_created(self, room_id: UUID) -> EligibilityResult:
        room = self._store.get_room(room_id)
        if room is None:
            # Intake must never hang on a missing room; report it as not assignable.
            logger.warning("room %s not found during assignment", room_id)
            return EligibilityResult(all_busy=True)

        self._greet(room)
        return self._resolver.resolve(room)

    def _greet(self, room: Room) -> bool:
        try:
            rules = self._store.list_auto_rules(
                room.tenant_id, (RULE_WELCOME,), enabled_only=True
            )
            if not rules:
                return False
            return self._emitter.emit_once(
                room, RULE_WELCOME, rules[0].message_content, per_episode=False
            )
        except Exception:
            logger.exception(
                "welcome message failed for room %s",
                room.id,
                extra={"tenant_id": str(room.tenant_id), "room_id": str(room.id)},
            )
            return False
