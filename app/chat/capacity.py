"""Attendant capacity counter maintenance."""

from __future__ import annotations

import logging
from uuid import UUID

from .store import ChatStore

logger = logging.getLogger(__name__)


class CapacityTracker:
    """Applies ``active_conversations`` deltas for room lifecycle transitions.

    Every call maps to a single atomic store update, so concurrent transitions
    for the same attendant never lose an update. The counter is never read
    into memory and written back.
    """

    def __init__(self, store: ChatStore) -> None:
        self._store = store

    def increment(self, attendant_id: UUID) -> int | None:
        count = self._store.increment_attendant_capacity(attendant_id)
        if count is None:
            logger.warning("capacity increment for unknown attendant %s", attendant_id)
        else:
            logger.debug("attendant %s now has %d conversations", attendant_id, count)
        return count

    def decrement(self, attendant_id: UUID) -> int | None:
        """Remove one conversation, clamping at zero."""
        count = self._store.decrement_attendant_capacity(attendant_id)
        if count is None:
            logger.warning("capacity decrement for unknown attendant %s", attendant_id)
        else:
            logger.debug("attendant %s now has %d conversations", attendant_id, count)
        return count

    def reassign(self, from_attendant_id: UUID | None, to_attendant_id: UUID) -> None:
        # Two separate updates: a failure between them leaves the counts off by
        # at most one instead of applying a silent net delta.
        if from_attendant_id is not None:
            self.decrement(from_attendant_id)
        self.increment(to_attendant_id)
