"""Record store contract and its PostgreSQL implementation."""
from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID, uuid4

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from .models import (
    OPEN_ROOM_STATUSES,
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

# Columns callers may change through ``update_room``.
ROOM_UPDATABLE_FIELDS = frozenset(
    {
        "status",
        "attendant_id",
        "category_id",
        "resolution_status",
        "resolution_note",
        "assigned_at",
        "closed_at",
    }
)


def _as_status_list(expected_status: str | Sequence[str] | None) -> list[str] | None:
    if expected_status is None:
        return None
    if isinstance(expected_status, str):
        return [expected_status]
    return list(expected_status)


def check_room_fields(fields: Mapping[str, Any]) -> None:
    unknown = set(fields) - ROOM_UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Unsupported room fields: {', '.join(sorted(unknown))}")


class ChatStore(Protocol):
    """Read/filter and conditional-write operations used by the engine."""

    def get_room(self, room_id: UUID) -> Room | None: ...

    def update_room(
        self,
        room_id: UUID,
        fields: Mapping[str, Any],
        *,
        expected_status: str | Sequence[str] | None = None,
    ) -> bool: ...

    def delete_room(
        self, room_id: UUID, *, expected_status: str | Sequence[str] | None = None
    ) -> bool: ...

    def list_open_rooms(self, tenant_id: UUID) -> list[Room]: ...

    def get_tenant_timezone(self, tenant_id: UUID) -> str | None: ...

    def list_business_hours(self, tenant_id: UUID) -> list[BusinessHoursWindow]: ...

    def list_auto_rules(
        self,
        tenant_id: UUID | None,
        rule_types: Iterable[str],
        *,
        enabled_only: bool = True,
        timed_only: bool = False,
    ) -> list[AutoRule]: ...

    def insert_auto_rule(
        self,
        tenant_id: UUID,
        rule_type: str,
        *,
        is_enabled: bool,
        trigger_minutes: int | None,
        message_content: str | None,
    ) -> AutoRule: ...

    def get_default_category(self, tenant_id: UUID) -> ServiceCategory | None: ...

    def resolve_category_routing(self, category_id: UUID) -> list[TeamRoute]: ...

    def list_team_attendants(
        self, team_id: UUID, *, online_only: bool = False
    ) -> list[AttendantProfile]: ...

    def get_attendant(self, attendant_id: UUID) -> AttendantProfile | None: ...

    def get_last_non_system_message(self, room_id: UUID) -> ChatMessage | None: ...

    def list_system_messages_since(
        self, room_id: UUID, since: datetime | None
    ) -> list[ChatMessage]: ...

    def insert_message(
        self,
        room_id: UUID,
        sender_type: str,
        content: str,
        *,
        sender_name: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ChatMessage: ...

    def increment_attendant_capacity(self, attendant_id: UUID) -> int | None: ...

    def decrement_attendant_capacity(self, attendant_id: UUID) -> int | None: ...


class PostgresChatStore:
    """PostgreSQL implementation of :class:`ChatStore`.

    When ``tenant_id`` is given, room lookups and writes are restricted to that
    tenant; otherwise the store operates across tenants (automation runs).
    """

    def __init__(self, conn: psycopg.Connection, tenant_id: UUID | None = None) -> None:
        self._conn = conn
        self._tenant_id = tenant_id

    # Utility -----------------------------------------------------------------
    def _cursor(self):
        return self._conn.cursor(row_factory=dict_row)

    @property
    def tenant_id(self) -> UUID | None:
        return self._tenant_id

    def _room_scope(self) -> tuple[str, list[Any]]:
        if self._tenant_id is None:
            return "", []
        return " AND tenant_id = %s", [self._tenant_id]

    # Rooms --------------------------------------------------------------------
    def get_room(self, room_id: UUID) -> Room | None:
        scope, scope_params = self._room_scope()
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT id, tenant_id, status, attendant_id, category_id,
                       resolution_status, resolution_note, created_at,
                       assigned_at, closed_at
                FROM chat_rooms
                WHERE id = %s{scope}
                """,
                [room_id, *scope_params],
            )
            row = cur.fetchone()
        if not row:
            return None
        return self._row_to_room(row)

    def update_room(
        self,
        room_id: UUID,
        fields: Mapping[str, Any],
        *,
        expected_status: str | Sequence[str] | None = None,
    ) -> bool:
        check_room_fields(fields)
        assignments = [f"{name} = %s" for name in fields]
        values: list[Any] = list(fields.values())
        query = (
            "UPDATE chat_rooms SET "
            f"{', '.join([*assignments, 'updated_at = now()'])} "
            "WHERE id = %s"
        )
        values.append(room_id)
        scope, scope_params = self._room_scope()
        query += scope
        values.extend(scope_params)
        statuses = _as_status_list(expected_status)
        if statuses is not None:
            query += " AND status = ANY(%s)"
            values.append(statuses)
        with self._cursor() as cur:
            cur.execute(query, values)
            return cur.rowcount > 0

    def delete_room(
        self, room_id: UUID, *, expected_status: str | Sequence[str] | None = None
    ) -> bool:
        query = "DELETE FROM chat_rooms WHERE id = %s"
        values: list[Any] = [room_id]
        scope, scope_params = self._room_scope()
        query += scope
        values.extend(scope_params)
        statuses = _as_status_list(expected_status)
        if statuses is not None:
            query += " AND status = ANY(%s)"
            values.append(statuses)
        with self._cursor() as cur:
            cur.execute(query, values)
            return cur.rowcount > 0

    def list_open_rooms(self, tenant_id: UUID) -> list[Room]:
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT id, tenant_id, status, attendant_id, category_id,
                       resolution_status, resolution_note, created_at,
                       assigned_at, closed_at
                FROM chat_rooms
                WHERE tenant_id = %s AND status = ANY(%s)
                ORDER BY created_at ASC
                """,
                (tenant_id, list(OPEN_ROOM_STATUSES)),
            )
            rows = cur.fetchall()
        return [self._row_to_room(row) for row in rows]

    # Tenant configuration -----------------------------------------------------
    def get_tenant_timezone(self, tenant_id: UUID) -> str | None:
        with self._cursor() as cur:
            cur.execute("SELECT timezone FROM organizations WHERE id = %s", (tenant_id,))
            row = cur.fetchone()
        return row["timezone"] if row else None

    def list_business_hours(self, tenant_id: UUID) -> list[BusinessHoursWindow]:
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT tenant_id, day_of_week, start_time, end_time, is_active
                FROM chat_business_hours
                WHERE tenant_id = %s
                ORDER BY day_of_week, start_time
                """,
                (tenant_id,),
            )
            rows = cur.fetchall()
        return [
            BusinessHoursWindow(
                tenant_id=row["tenant_id"],
                day_of_week=row["day_of_week"],
                start_time=row["start_time"],
                end_time=row["end_time"],
                is_active=bool(row["is_active"]),
            )
            for row in rows
            if row["start_time"] is not None and row["end_time"] is not None
        ]

    def list_auto_rules(
        self,
        tenant_id: UUID | None,
        rule_types: Iterable[str],
        *,
        enabled_only: bool = True,
        timed_only: bool = False,
    ) -> list[AutoRule]:
        clauses = ["rule_type = ANY(%s)"]
        values: list[Any] = [list(rule_types)]
        if tenant_id is not None:
            clauses.append("tenant_id = %s")
            values.append(tenant_id)
        if enabled_only:
            clauses.append("is_enabled")
        if timed_only:
            clauses.append("trigger_minutes IS NOT NULL")
        query = (
            "SELECT id, tenant_id, rule_type, is_enabled, trigger_minutes, message_content "
            "FROM chat_auto_rules WHERE "
            f"{' AND '.join(clauses)} "
            "ORDER BY tenant_id, created_at"
        )
        with self._cursor() as cur:
            cur.execute(query, values)
            rows = cur.fetchall()
        return [self._row_to_rule(row) for row in rows]

    def insert_auto_rule(
        self,
        tenant_id: UUID,
        rule_type: str,
        *,
        is_enabled: bool,
        trigger_minutes: int | None,
        message_content: str | None,
    ) -> AutoRule:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO chat_auto_rules
                    (id, tenant_id, rule_type, is_enabled, trigger_minutes, message_content)
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING id, tenant_id, rule_type, is_enabled, trigger_minutes, message_content
                """,
                (uuid4(), tenant_id, rule_type, is_enabled, trigger_minutes, message_content),
            )
            row = cur.fetchone()
        if not row:
            raise RuntimeError(f"Failed to create auto rule {rule_type}")
        return self._row_to_rule(row)

    # Routing ------------------------------------------------------------------
    def get_default_category(self, tenant_id: UUID) -> ServiceCategory | None:
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT id, tenant_id, name, is_default
                FROM chat_service_categories
                WHERE tenant_id = %s AND is_default
                LIMIT 1
                """,
                (tenant_id,),
            )
            row = cur.fetchone()
        if not row:
            return None
        return ServiceCategory(**row)

    def resolve_category_routing(self, category_id: UUID) -> list[TeamRoute]:
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT t.id AS team_id, t.tenant_id, t.name, ct.priority_order,
                       c.enabled, c.online_only, c.capacity_limit, c.allow_over_capacity
                FROM chat_category_teams ct
                JOIN chat_teams t ON t.id = ct.team_id
                JOIN chat_assignment_configs c ON c.category_team_id = ct.id
                WHERE ct.category_id = %s
                ORDER BY ct.priority_order ASC NULLS LAST, ct.created_at ASC
                """,
                (category_id,),
            )
            rows = cur.fetchall()
        return [
            TeamRoute(
                team=Team(id=row["team_id"], tenant_id=row["tenant_id"], name=row["name"]),
                config=AssignmentConfig(
                    enabled=row["enabled"],
                    online_only=row["online_only"],
                    capacity_limit=row["capacity_limit"],
                    allow_over_capacity=row["allow_over_capacity"],
                ),
                priority_order=row["priority_order"],
            )
            for row in rows
        ]

    def list_team_attendants(
        self, team_id: UUID, *, online_only: bool = False
    ) -> list[AttendantProfile]:
        query = """
            SELECT a.id, a.tenant_id, a.display_name, a.status,
                   a.active_conversations, a.max_conversations
            FROM chat_team_members m
            JOIN attendant_profiles a ON a.id = m.attendant_id
            WHERE m.team_id = %s
        """
        values: list[Any] = [team_id]
        if online_only:
            query += " AND a.status = %s"
            values.append("online")
        with self._cursor() as cur:
            cur.execute(query, values)
            rows = cur.fetchall()
        return [self._row_to_attendant(row) for row in rows]

    def get_attendant(self, attendant_id: UUID) -> AttendantProfile | None:
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT id, tenant_id, display_name, status,
                       active_conversations, max_conversations
                FROM attendant_profiles
                WHERE id = %s
                """,
                (attendant_id,),
            )
            row = cur.fetchone()
        if not row:
            return None
        return self._row_to_attendant(row)

    # Messages -----------------------------------------------------------------
    def get_last_non_system_message(self, room_id: UUID) -> ChatMessage | None:
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT id, room_id, sender_type, sender_name, content, metadata, created_at
                FROM chat_messages
                WHERE room_id = %s AND sender_type <> %s
                ORDER BY created_at DESC
                LIMIT 1
                """,
                (room_id, SENDER_SYSTEM),
            )
            row = cur.fetchone()
        if not row:
            return None
        return self._row_to_message(row)

    def list_system_messages_since(
        self, room_id: UUID, since: datetime | None
    ) -> list[ChatMessage]:
        query = """
            SELECT id, room_id, sender_type, sender_name, content, metadata, created_at
            FROM chat_messages
            WHERE room_id = %s AND sender_type = %s
        """
        values: list[Any] = [room_id, SENDER_SYSTEM]
        if since is not None:
            query += " AND created_at >= %s"
            values.append(since)
        query += " ORDER BY created_at ASC"
        with self._cursor() as cur:
            cur.execute(query, values)
            rows = cur.fetchall()
        return [self._row_to_message(row) for row in rows]

    def insert_message(
        self,
        room_id: UUID,
        sender_type: str,
        content: str,
        *,
        sender_name: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ChatMessage:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO chat_messages
                    (id, room_id, sender_type, sender_name, content, message_type, metadata)
                VALUES (%s, %s, %s, %s, %s, 'text', %s)
                RETURNING id, room_id, sender_type, sender_name, content, metadata, created_at
                """,
                (uuid4(), room_id, sender_type, sender_name, content, Jsonb(metadata or {})),
            )
            row = cur.fetchone()
        if not row:
            raise RuntimeError(f"Failed to add message to room {room_id}")
        return self._row_to_message(row)

    # Capacity -----------------------------------------------------------------
    def increment_attendant_capacity(self, attendant_id: UUID) -> int | None:
        with self._cursor() as cur:
            cur.execute(
                """
                UPDATE attendant_profiles
                SET active_conversations = COALESCE(active_conversations, 0) + 1,
                    updated_at = now()
                WHERE id = %s
                RETURNING active_conversations
                """,
                (attendant_id,),
            )
            row = cur.fetchone()
        return row["active_conversations"] if row else None

    def decrement_attendant_capacity(self, attendant_id: UUID) -> int | None:
        with self._cursor() as cur:
            cur.execute(
                """
                UPDATE attendant_profiles
                SET active_conversations = GREATEST(COALESCE(active_conversations, 0) - 1, 0),
                    updated_at = now()
                WHERE id = %s
                RETURNING active_conversations
                """,
                (attendant_id,),
            )
            row = cur.fetchone()
        return row["active_conversations"] if row else None

    # Helpers ------------------------------------------------------------------
    def _row_to_room(self, row: dict[str, Any]) -> Room:
        return Room(**row)

    def _row_to_attendant(self, row: dict[str, Any]) -> AttendantProfile:
        data = dict(row)
        data["active_conversations"] = data.get("active_conversations") or 0
        data["status"] = data.get("status") or "offline"
        return AttendantProfile(**data)

    def _row_to_rule(self, row: dict[str, Any]) -> AutoRule:
        data = dict(row)
        data["is_enabled"] = bool(data.get("is_enabled"))
        return AutoRule(**data)

    def _row_to_message(self, row: dict[str, Any]) -> ChatMessage:
        data = dict(row)
        data["metadata"] = data.get("metadata") or {}
        return ChatMessage(**data)
