"""Process-local :class:`~app.chat.store.ChatStore` used in development and tests."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import replace
from datetime import datetime, time, timezone
from typing import Any
from uuid import UUID, uuid4

from .models import (
    ATTENDANT_ONLINE,
    OPEN_ROOM_STATUSES,
    ROOM_WAITING,
    SENDER_SYSTEM,
    AssignmentConfig,
    AttendantProfile,
    AutoRule,
    BusinessHoursWindow,
    ChatMessage,
    Room,
    ServiceCategory,
    Team,
    TeamRoute,
)
from .store import _as_status_list, check_room_fields


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryChatStore:
    """Dictionary backed store.

    Every mutation happens under a single re-entrant lock so the capacity
    counter updates and conditional room updates are atomic, matching the
    guarantees of the SQL implementation. Records are returned as copies.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utcnow
        self._lock = threading.RLock()
        self._rooms: dict[UUID, Room] = {}
        self._attendants: dict[UUID, AttendantProfile] = {}
        self._teams: dict[UUID, Team] = {}
        self._members: dict[UUID, list[UUID]] = {}
        self._categories: dict[UUID, ServiceCategory] = {}
        self._routes: dict[UUID, list[TeamRoute]] = {}
        self._hours: dict[UUID, list[BusinessHoursWindow]] = {}
        self._rules: list[AutoRule] = []
        self._messages: dict[UUID, list[ChatMessage]] = {}
        self._timezones: dict[UUID, str] = {}

    # Seeding helpers ----------------------------------------------------------
    def set_tenant_timezone(self, tenant_id: UUID, tz_name: str) -> None:
        self._timezones[tenant_id] = tz_name

    def add_room(
        self,
        tenant_id: UUID,
        *,
        status: str = ROOM_WAITING,
        attendant_id: UUID | None = None,
        category_id: UUID | None = None,
    ) -> Room:
        now = self._clock()
        room = Room(
            id=uuid4(),
            tenant_id=tenant_id,
            status=status,
            attendant_id=attendant_id,
            category_id=category_id,
            created_at=now,
            assigned_at=now if attendant_id else None,
        )
        with self._lock:
            self._rooms[room.id] = room
        return replace(room)

    def add_attendant(
        self,
        tenant_id: UUID,
        display_name: str,
        *,
        status: str = ATTENDANT_ONLINE,
        active_conversations: int = 0,
    ) -> AttendantProfile:
        attendant = AttendantProfile(
            id=uuid4(),
            tenant_id=tenant_id,
            display_name=display_name,
            status=status,
            active_conversations=active_conversations,
        )
        with self._lock:
            self._attendants[attendant.id] = attendant
        return replace(attendant)

    def set_attendant(self, attendant_id: UUID, **changes: Any) -> None:
        with self._lock:
            current = self._attendants[attendant_id]
            self._attendants[attendant_id] = replace(current, **changes)

    def add_team(
        self, tenant_id: UUID, name: str, members: Iterable[UUID] = ()
    ) -> Team:
        team = Team(id=uuid4(), tenant_id=tenant_id, name=name)
        with self._lock:
            self._teams[team.id] = team
            self._members[team.id] = list(members)
        return team

    def add_category(
        self, tenant_id: UUID, name: str, *, is_default: bool = False
    ) -> ServiceCategory:
        category = ServiceCategory(
            id=uuid4(), tenant_id=tenant_id, name=name, is_default=is_default
        )
        with self._lock:
            if is_default:
                for other in self._categories.values():
                    if other.tenant_id == tenant_id and other.is_default:
                        raise ValueError("tenant already has a default category")
            self._categories[category.id] = category
        return category

    def link_category_team(
        self,
        category_id: UUID,
        team_id: UUID,
        config: AssignmentConfig | None = None,
        *,
        priority_order: int | None = None,
    ) -> TeamRoute:
        route = TeamRoute(
            team=self._teams[team_id],
            config=config or AssignmentConfig(),
            priority_order=priority_order,
        )
        with self._lock:
            self._routes.setdefault(category_id, []).append(route)
        return route

    def add_business_hours(
        self,
        tenant_id: UUID,
        day_of_week: int,
        start_time: time,
        end_time: time,
        *,
        is_active: bool = True,
    ) -> BusinessHoursWindow:
        window = BusinessHoursWindow(
            tenant_id=tenant_id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            is_active=is_active,
        )
        with self._lock:
            self._hours.setdefault(tenant_id, []).append(window)
        return window

    def add_message(
        self,
        room_id: UUID,
        sender_type: str,
        content: str = "",
        *,
        created_at: datetime | None = None,
        sender_name: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ChatMessage:
        message = ChatMessage(
            id=uuid4(),
            room_id=room_id,
            sender_type=sender_type,
            content=content,
            created_at=created_at or self._clock(),
            sender_name=sender_name,
            metadata=dict(metadata or {}),
        )
        with self._lock:
            self._messages.setdefault(room_id, []).append(message)
        return replace(message)

    def messages(self, room_id: UUID) -> list[ChatMessage]:
        with self._lock:
            return [replace(m) for m in self._messages.get(room_id, [])]

    # ChatStore ----------------------------------------------------------------
    def get_room(self, room_id: UUID) -> Room | None:
        with self._lock:
            room = self._rooms.get(room_id)
            return replace(room) if room else None

    def update_room(
        self,
        room_id: UUID,
        fields: Mapping[str, Any],
        *,
        expected_status: str | Sequence[str] | None = None,
    ) -> bool:
        check_room_fields(fields)
        statuses = _as_status_list(expected_status)
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                return False
            if statuses is not None and room.status not in statuses:
                return False
            self._rooms[room_id] = replace(room, **dict(fields))
            return True

    def delete_room(
        self, room_id: UUID, *, expected_status: str | Sequence[str] | None = None
    ) -> bool:
        statuses = _as_status_list(expected_status)
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                return False
            if statuses is not None and room.status not in statuses:
                return False
            del self._rooms[room_id]
            self._messages.pop(room_id, None)
            return True

    def list_open_rooms(self, tenant_id: UUID) -> list[Room]:
        with self._lock:
            rooms = [
                replace(room)
                for room in self._rooms.values()
                if room.tenant_id == tenant_id and room.status in OPEN_ROOM_STATUSES
            ]
        return sorted(rooms, key=lambda r: r.created_at or datetime.min.replace(tzinfo=timezone.utc))

    def get_tenant_timezone(self, tenant_id: UUID) -> str | None:
        return self._timezones.get(tenant_id)

    def list_business_hours(self, tenant_id: UUID) -> list[BusinessHoursWindow]:
        with self._lock:
            return list(self._hours.get(tenant_id, []))

    def list_auto_rules(
        self,
        tenant_id: UUID | None,
        rule_types: Iterable[str],
        *,
        enabled_only: bool = True,
        timed_only: bool = False,
    ) -> list[AutoRule]:
        wanted = set(rule_types)
        with self._lock:
            return [
                replace(rule)
                for rule in self._rules
                if rule.rule_type in wanted
                and (tenant_id is None or rule.tenant_id == tenant_id)
                and (rule.is_enabled or not enabled_only)
                and (rule.trigger_minutes is not None or not timed_only)
            ]

    def insert_auto_rule(
        self,
        tenant_id: UUID,
        rule_type: str,
        *,
        is_enabled: bool = True,
        trigger_minutes: int | None = None,
        message_content: str | None = None,
    ) -> AutoRule:
        rule = AutoRule(
            id=uuid4(),
            tenant_id=tenant_id,
            rule_type=rule_type,
            is_enabled=is_enabled,
            trigger_minutes=trigger_minutes,
            message_content=message_content,
        )
        with self._lock:
            self._rules.append(rule)
        return replace(rule)

    def get_default_category(self, tenant_id: UUID) -> ServiceCategory | None:
        with self._lock:
            for category in self._categories.values():
                if category.tenant_id == tenant_id and category.is_default:
                    return replace(category)
        return None

    def resolve_category_routing(self, category_id: UUID) -> list[TeamRoute]:
        with self._lock:
            routes = list(self._routes.get(category_id, []))
        # Stable sort keeps insertion order among equal priorities.
        return sorted(
            routes,
            key=lambda r: (r.priority_order is None, r.priority_order or 0),
        )

    def list_team_attendants(
        self, team_id: UUID, *, online_only: bool = False
    ) -> list[AttendantProfile]:
        with self._lock:
            attendants = [
                replace(self._attendants[attendant_id])
                for attendant_id in self._members.get(team_id, [])
                if attendant_id in self._attendants
            ]
        if online_only:
            attendants = [a for a in attendants if a.status == ATTENDANT_ONLINE]
        return attendants

    def get_attendant(self, attendant_id: UUID) -> AttendantProfile | None:
        with self._lock:
            attendant = self._attendants.get(attendant_id)
            return replace(attendant) if attendant else None

    def get_last_non_system_message(self, room_id: UUID) -> ChatMessage | None:
        with self._lock:
            candidates = [
                m for m in self._messages.get(room_id, []) if m.sender_type != SENDER_SYSTEM
            ]
        if not candidates:
            return None
        return replace(max(candidates, key=lambda m: m.created_at))

    def list_system_messages_since(
        self, room_id: UUID, since: datetime | None
    ) -> list[ChatMessage]:
        with self._lock:
            return [
                replace(m)
                for m in self._messages.get(room_id, [])
                if m.sender_type == SENDER_SYSTEM
                and (since is None or m.created_at >= since)
            ]

    def insert_message(
        self,
        room_id: UUID,
        sender_type: str,
        content: str,
        *,
        sender_name: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ChatMessage:
        return self.add_message(
            room_id, sender_type, content, sender_name=sender_name, metadata=metadata
        )

    def increment_attendant_capacity(self, attendant_id: UUID) -> int | None:
        with self._lock:
            attendant = self._attendants.get(attendant_id)
            if attendant is None:
                return None
            attendant.active_conversations += 1
            return attendant.active_conversations

    def decrement_attendant_capacity(self, attendant_id: UUID) -> int | None:
        with self._lock:
            attendant = self._attendants.get(attendant_id)
            if attendant is None:
                return None
            attendant.active_conversations = max(attendant.active_conversations - 1, 0)
            return attendant.active_conversations
