"""Wiring of the chat engine components around one record store."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from ..core.config import AutomationSettings, get_settings
from .assignment import AssignmentService
from .automation import AutomationSweeper
from .capacity import CapacityTracker
from .eligibility import EligibilityResolver
from .emitter import SystemMessageEmitter
from .lifecycle import RoomLifecycleService
from .store import ChatStore


@dataclass
class ChatEngine:
    store: ChatStore
    capacity: CapacityTracker
    emitter: SystemMessageEmitter
    resolver: EligibilityResolver
    assignment: AssignmentService
    sweeper: AutomationSweeper
    lifecycle: RoomLifecycleService


def build_engine(
    store: ChatStore,
    settings: AutomationSettings | None = None,
    *,
    clock: Callable[[], datetime] | None = None,
) -> ChatEngine:
    """Create every engine service sharing ``store`` and ``clock``."""

    settings = settings or get_settings()
    capacity = CapacityTracker(store)
    emitter = SystemMessageEmitter(store, sender_name=settings.system_sender_name)
    resolver = EligibilityResolver(
        store, default_timezone=settings.business_timezone, clock=clock
    )
    return ChatEngine(
        store=store,
        capacity=capacity,
        emitter=emitter,
        resolver=resolver,
        assignment=AssignmentService(store, resolver, emitter),
        sweeper=AutomationSweeper(store, emitter, capacity, clock=clock),
        lifecycle=RoomLifecycleService(store, capacity, emitter, clock=clock),
    )
