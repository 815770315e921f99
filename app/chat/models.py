"""Domain records exchanged between the chat engine and the record store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Any
from uuid import UUID

ROOM_WAITING = "waiting"
ROOM_ACTIVE = "active"
ROOM_CLOSED = "closed"
OPEN_ROOM_STATUSES = (ROOM_WAITING, ROOM_ACTIVE)

RESOLUTION_RESOLVED = "resolved"
RESOLUTION_PENDING = "pending"

SENDER_VISITOR = "visitor"
SENDER_ATTENDANT = "attendant"
SENDER_SYSTEM = "system"

ATTENDANT_ONLINE = "online"
ATTENDANT_AWAY = "away"
ATTENDANT_OFFLINE = "offline"

RULE_WELCOME = "welcome_message"
RULE_INACTIVITY_WARNING = "inactivity_warning"
RULE_INACTIVITY_WARNING_2 = "inactivity_warning_2"
RULE_AUTO_CLOSE = "auto_close"
RULE_ATTENDANT_ABSENCE = "attendant_absence"
RULE_ATTENDANT_ASSIGNED = "attendant_assigned"
RULE_TRANSFER_NOTICE = "transfer_notice"

# Order in which the sweep evaluates rules within a room. The sweep itself
# stops evaluating a room once its status is closed.
TIMED_RULE_TYPES = (
    RULE_INACTIVITY_WARNING,
    RULE_INACTIVITY_WARNING_2,
    RULE_ATTENDANT_ABSENCE,
    RULE_AUTO_CLOSE,
)

AUTO_RULE_METADATA_KEY = "auto_rule"


@dataclass
class Room:
    id: UUID
    tenant_id: UUID
    status: str = ROOM_WAITING
    attendant_id: UUID | None = None
    category_id: UUID | None = None
    resolution_status: str | None = None
    resolution_note: str | None = None
    created_at: datetime | None = None
    assigned_at: datetime | None = None
    closed_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_ROOM_STATUSES


@dataclass
class AttendantProfile:
    id: UUID
    tenant_id: UUID
    display_name: str
    status: str = ATTENDANT_OFFLINE
    active_conversations: int = 0
    max_conversations: int | None = None


@dataclass
class Team:
    id: UUID
    tenant_id: UUID
    name: str


@dataclass
class ServiceCategory:
    id: UUID
    tenant_id: UUID
    name: str
    is_default: bool = False


@dataclass
class AssignmentConfig:
    """Per category/team routing switches."""

    enabled: bool = True
    online_only: bool = True
    capacity_limit: int = 3
    allow_over_capacity: bool = False


@dataclass
class TeamRoute:
    """A team reachable from a service category, with its assignment config."""

    team: Team
    config: AssignmentConfig
    priority_order: int | None = None


@dataclass
class BusinessHoursWindow:
    tenant_id: UUID
    day_of_week: int  # 0 = Sunday ... 6 = Saturday
    start_time: time
    end_time: time
    is_active: bool = True


@dataclass
class AutoRule:
    id: UUID
    tenant_id: UUID
    rule_type: str
    is_enabled: bool = True
    trigger_minutes: int | None = None
    message_content: str | None = None


@dataclass
class ChatMessage:
    id: UUID
    room_id: UUID
    sender_type: str
    content: str
    created_at: datetime
    sender_name: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def auto_rule(self) -> str | None:
        return (self.metadata or {}).get(AUTO_RULE_METADATA_KEY)


@dataclass
class EligibilityResult:
    """Outcome of :class:`~app.chat.eligibility.EligibilityResolver`."""

    already_assigned: bool = False
    attendant_name: str | None = None
    outside_hours: bool = False
    all_busy: bool = False


@dataclass
class SweepResult:
    processed: int = 0
    tenants: int = 0
    rooms: int = 0
    failures: int = 0
