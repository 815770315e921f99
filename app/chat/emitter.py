"""Idempotent insertion of automated system messages."""

from __future__ import annotations

import logging

from .models import AUTO_RULE_METADATA_KEY, SENDER_SYSTEM, ChatMessage, Room
from .store import ChatStore

logger = logging.getLogger(__name__)


class SystemMessageEmitter:
    """Inserts system messages marked with the rule that produced them.

    A rule counts as fired for the current idle episode when a system message
    carrying its marker exists at or after the room's last non-system
    message. Any human message opens a new episode, so the rule may fire
    again later. The message history is the only record of past firings.
    """

    def __init__(self, store: ChatStore, *, sender_name: str) -> None:
        self._store = store
        self._sender_name = sender_name

    def has_fired(self, room: Room, rule_type: str, *, per_episode: bool = True) -> bool:
        since = None
        if per_episode:
            last = self._store.get_last_non_system_message(room.id)
            since = last.created_at if last else None
        return any(
            message.auto_rule == rule_type
            for message in self._store.list_system_messages_since(room.id, since)
        )

    def emit_once(
        self,
        room: Room,
        rule_type: str,
        content: str | None,
        *,
        per_episode: bool = True,
    ) -> bool:
        """Insert the rule's message unless it already fired.

        With ``per_episode=False`` the whole room history is checked, which is
        what the one-off welcome greeting needs.
        """

        if self.has_fired(room, rule_type, per_episode=per_episode):
            logger.debug(
                "rule %s already fired for room %s",
                rule_type,
                room.id,
                extra={"room_id": str(room.id), "rule_type": rule_type},
            )
            return False
        message: ChatMessage = self._store.insert_message(
            room.id,
            SENDER_SYSTEM,
            content or "",
            sender_name=self._sender_name,
            metadata={AUTO_RULE_METADATA_KEY: rule_type},
        )
        logger.info(
            "emitted %s message %s in room %s",
            rule_type,
            message.id,
            room.id,
            extra={
                "tenant_id": str(room.tenant_id),
                "room_id": str(room.id),
                "rule_type": rule_type,
            },
        )
        return True
