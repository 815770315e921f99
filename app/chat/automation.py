"""Periodic sweep that fires time based auto rules on idle rooms."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from uuid import UUID

from ..core.tenant_context import reset_tenant_context, set_tenant_context
from .capacity import CapacityTracker
from .emitter import SystemMessageEmitter
from .models import (
    RESOLUTION_PENDING,
    ROOM_ACTIVE,
    ROOM_CLOSED,
    RULE_ATTENDANT_ABSENCE,
    RULE_AUTO_CLOSE,
    RULE_INACTIVITY_WARNING,
    RULE_INACTIVITY_WARNING_2,
    SENDER_ATTENDANT,
    SENDER_VISITOR,
    TIMED_RULE_TYPES,
    AutoRule,
    ChatMessage,
    Room,
    SweepResult,
)
from .store import ChatStore

logger = logging.getLogger(__name__)

AUTOMATION_ACTOR = "automation"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def rule_applies(rule_type: str, room: Room, last_message: ChatMessage) -> bool:
    """Return whether ``rule_type`` may fire given who spoke last."""

    if rule_type == RULE_ATTENDANT_ABSENCE:
        # Visitor is waiting on the attendant.
        return (
            room.status == ROOM_ACTIVE
            and room.attendant_id is not None
            and last_message.sender_type == SENDER_VISITOR
        )
    if rule_type in (RULE_INACTIVITY_WARNING, RULE_INACTIVITY_WARNING_2):
        # Attendant is waiting on the visitor.
        return room.status == ROOM_ACTIVE and last_message.sender_type == SENDER_ATTENDANT
    if rule_type == RULE_AUTO_CLOSE:
        return True
    return False


def elapsed_minutes(since: datetime, now: datetime) -> float:
    if since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    return (now - since).total_seconds() / 60


class AutomationSweeper:
    """Stateless sweep over every open room of every tenant with timed rules.

    Each run re-derives its state from the store. A rule fires at most once per
    idle episode because :class:`SystemMessageEmitter` checks the message
    history before inserting. Failures are isolated per room and rule, and a
    tenant that fails outright does not stop the remaining tenants.
    """

    def __init__(
        self,
        store: ChatStore,
        emitter: SystemMessageEmitter,
        capacity: CapacityTracker,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._emitter = emitter
        self._capacity = capacity
        self._clock = clock or _utcnow

    def run(self) -> SweepResult:
        result = SweepResult()
        rules = self._store.list_auto_rules(
            None, TIMED_RULE_TYPES, enabled_only=True, timed_only=True
        )
        if not rules:
            logger.debug("no timed auto rules configured")
            return result

        now = self._clock()
        for tenant_id, tenant_rules in self._group_by_tenant(rules).items():
            token = set_tenant_context(str(tenant_id), AUTOMATION_ACTOR)
            try:
                result.tenants += 1
                self._sweep_tenant(tenant_id, tenant_rules, now, result)
            except Exception:
                result.failures += 1
                logger.exception(
                    "automation sweep failed for tenant %s",
                    tenant_id,
                    extra={"tenant_id": str(tenant_id)},
                )
            finally:
                reset_tenant_context(token)

        logger.info(
            "automation sweep processed %d message(s) across %d tenant(s), %d room(s), %d failure(s)",
            result.processed,
            result.tenants,
            result.rooms,
            result.failures,
        )
        return result

    # Helpers ------------------------------------------------------------------
    def _group_by_tenant(self, rules: list[AutoRule]) -> dict[UUID, list[AutoRule]]:
        grouped: dict[UUID, dict[str, AutoRule]] = {}
        for rule in rules:
            by_type = grouped.setdefault(rule.tenant_id, {})
            if rule.rule_type in by_type:
                logger.warning(
                    "ignoring duplicate %s rule %s for tenant %s",
                    rule.rule_type,
                    rule.id,
                    rule.tenant_id,
                )
                continue
            by_type[rule.rule_type] = rule
        order = {rule_type: index for index, rule_type in enumerate(TIMED_RULE_TYPES)}
        return {
            tenant_id: sorted(by_type.values(), key=lambda r: order[r.rule_type])
            for tenant_id, by_type in grouped.items()
        }

    def _sweep_tenant(
        self,
        tenant_id: UUID,
        rules: list[AutoRule],
        now: datetime,
        result: SweepResult,
    ) -> None:
        for room in self._store.list_open_rooms(tenant_id):
            result.rooms += 1
            try:
                last_message = self._store.get_last_non_system_message(room.id)
            except Exception:
                result.failures += 1
                logger.exception(
                    "failed to load last message for room %s",
                    room.id,
                    extra={"tenant_id": str(tenant_id), "room_id": str(room.id)},
                )
                continue
            if last_message is None:
                continue

            idle = elapsed_minutes(last_message.created_at, now)
            for rule in rules:
                if room.status == ROOM_CLOSED:
                    break
                if rule.trigger_minutes is None or idle < rule.trigger_minutes:
                    continue
                if not rule_applies(rule.rule_type, room, last_message):
                    continue
                try:
                    if self._fire(room, rule, now):
                        result.processed += 1
                except Exception:
                    result.failures += 1
                    logger.exception(
                        "auto rule %s failed for room %s",
                        rule.rule_type,
                        room.id,
                        extra={
                            "tenant_id": str(tenant_id),
                            "room_id": str(room.id),
                            "rule_type": rule.rule_type,
                        },
                    )

    def _fire(self, room: Room, rule: AutoRule, now: datetime) -> bool:
        emitted = self._emitter.emit_once(room, rule.rule_type, rule.message_content)
        if rule.rule_type == RULE_AUTO_CLOSE:
            # An open room whose close notice is already in this episode means
            # a previous close attempt failed; finish it without a new notice.
            if not emitted:
                logger.info(
                    "retrying auto close for room %s",
                    room.id,
                    extra={
                        "tenant_id": str(room.tenant_id),
                        "room_id": str(room.id),
                        "rule_type": rule.rule_type,
                    },
                )
            self._auto_close(room, now)
        return emitted

    def _auto_close(self, room: Room, now: datetime) -> None:
        # Guarded by the status read at the start of the sweep so a room closed
        # by an agent in the meantime is left untouched.
        closed = self._store.update_room(
            room.id,
            {
                "status": ROOM_CLOSED,
                "resolution_status": RESOLUTION_PENDING,
                "closed_at": now,
            },
            expected_status=room.status,
        )
        if not closed:
            logger.info(
                "room %s changed state before auto close, skipping",
                room.id,
                extra={"tenant_id": str(room.tenant_id), "room_id": str(room.id)},
            )
            return
        room.status = ROOM_CLOSED
        if room.attendant_id is not None:
            self._capacity.decrement(room.attendant_id)
