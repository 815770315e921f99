"""Agent driven room transitions and their capacity bookkeeping."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from uuid import UUID

from .capacity import CapacityTracker
from .emitter import SystemMessageEmitter
from .models import (
    RESOLUTION_PENDING,
    RESOLUTION_RESOLVED,
    ROOM_ACTIVE,
    ROOM_CLOSED,
    ROOM_WAITING,
    RULE_ATTENDANT_ASSIGNED,
    RULE_TRANSFER_NOTICE,
    Room,
)
from .store import ChatStore

logger = logging.getLogger(__name__)

RESOLUTION_STATUSES = (RESOLUTION_RESOLVED, RESOLUTION_PENDING)


class RoomNotFoundError(LookupError):
    """Raised when a room could not be located."""


class AttendantNotFoundError(LookupError):
    """Raised when an attendant does not exist for the room's tenant."""


class RoomStateConflictError(RuntimeError):
    """Raised when a room is not in a state that allows the transition."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RoomLifecycleService:
    """Claim, reassign, close and delete rooms.

    Every transition is a conditional update guarded by the status observed
    when the room was read; the capacity tracker is called only after the
    guarded write succeeded, once per affected attendant.
    """

    def __init__(
        self,
        store: ChatStore,
        capacity: CapacityTracker,
        emitter: SystemMessageEmitter,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._capacity = capacity
        self._emitter = emitter
        self._clock = clock or _utcnow

    def claim(self, room_id: UUID, attendant_id: UUID) -> Room:
        room = self._require_room(room_id)
        if room.status != ROOM_WAITING or room.attendant_id is not None:
            raise RoomStateConflictError(f"Room {room_id} is not waiting for an attendant")
        self._require_attendant(room, attendant_id)
        updated = self._store.update_room(
            room_id,
            {"status": ROOM_ACTIVE, "attendant_id": attendant_id, "assigned_at": self._clock()},
            expected_status=ROOM_WAITING,
        )
        if not updated:
            raise RoomStateConflictError(f"Room {room_id} was claimed concurrently")
        self._capacity.increment(attendant_id)
        claimed = self._require_room(room_id)
        self._notify(claimed, RULE_ATTENDANT_ASSIGNED)
        return claimed

    def reassign(self, room_id: UUID, attendant_id: UUID) -> Room:
        room = self._require_room(room_id)
        if not room.is_open or room.attendant_id is None:
            raise RoomStateConflictError(f"Room {room_id} has no attendant to replace")
        if room.attendant_id == attendant_id:
            return room
        self._require_attendant(room, attendant_id)
        updated = self._store.update_room(
            room_id,
            {"attendant_id": attendant_id, "assigned_at": self._clock()},
            expected_status=room.status,
        )
        if not updated:
            raise RoomStateConflictError(f"Room {room_id} changed state during reassignment")
        self._capacity.reassign(room.attendant_id, attendant_id)
        reassigned = self._require_room(room_id)
        self._notify(reassigned, RULE_TRANSFER_NOTICE)
        return reassigned

    def close(
        self,
        room_id: UUID,
        resolution_status: str = RESOLUTION_RESOLVED,
        note: str | None = None,
    ) -> Room:
        if resolution_status not in RESOLUTION_STATUSES:
            raise ValueError(f"Unknown resolution status {resolution_status!r}")
        room = self._require_room(room_id)
        if not room.is_open:
            raise RoomStateConflictError(f"Room {room_id} is already closed")
        updated = self._store.update_room(
            room_id,
            {
                "status": ROOM_CLOSED,
                "resolution_status": resolution_status,
                "resolution_note": note,
                "closed_at": self._clock(),
            },
            expected_status=room.status,
        )
        if not updated:
            raise RoomStateConflictError(f"Room {room_id} changed state before closing")
        if room.attendant_id is not None:
            self._capacity.decrement(room.attendant_id)
        return self._require_room(room_id)

    def delete(self, room_id: UUID) -> None:
        room = self._require_room(room_id)
        if not self._store.delete_room(room_id, expected_status=room.status):
            raise RoomStateConflictError(f"Room {room_id} changed state before deletion")
        if room.is_open and room.attendant_id is not None:
            self._capacity.decrement(room.attendant_id)

    # Helpers ------------------------------------------------------------------
    def _require_room(self, room_id: UUID) -> Room:
        room = self._store.get_room(room_id)
        if room is None:
            raise RoomNotFoundError(f"Room {room_id} not found")
        return room

    def _require_attendant(self, room: Room, attendant_id: UUID) -> None:
        attendant = self._store.get_attendant(attendant_id)
        if attendant is None or attendant.tenant_id != room.tenant_id:
            raise AttendantNotFoundError(f"Attendant {attendant_id} not found")

    def _notify(self, room: Room, rule_type: str) -> None:
        try:
            rules = self._store.list_auto_rules(room.tenant_id, (rule_type,), enabled_only=True)
            if rules:
                self._emitter.emit_once(room, rule_type, rules[0].message_content)
        except Exception:
            logger.exception(
                "%s notice failed for room %s",
                rule_type,
                room.id,
                extra={"tenant_id": str(room.tenant_id), "room_id": str(room.id)},
            )
