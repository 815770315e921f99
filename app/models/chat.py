"""SQLAlchemy models for chat rooms, routing and automation rules.

The runtime engine talks to these tables through raw SQL in
``app.chat.store``; the declarative models describe the schema for
migrations, fixtures and ``create_schema``.
"""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    Time,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from . import Base

_JSON = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _id_column() -> Mapped[uuid.UUID]:
    return mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )


def _tenant_column() -> Mapped[uuid.UUID]:
    return mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


def _created_at_column() -> Mapped[dt.datetime]:
    return mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )


class AttendantProfile(Base):
    """Agent able to serve rooms; ``active_conversations`` is the live load."""

    __tablename__ = "attendant_profiles"
    __table_args__ = (
        CheckConstraint(
            "active_conversations >= 0", name="ck_attendant_profiles_active_nonnegative"
        ),
        CheckConstraint(
            "status IN ('online', 'away', 'offline')",
            name="ck_attendant_profiles_status",
        ),
    )

    id: Mapped[uuid.UUID] = _id_column()
    tenant_id: Mapped[uuid.UUID] = _tenant_column()
    display_name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(length=16), nullable=False, default="offline", server_default=text("'offline'")
    )
    active_conversations: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    max_conversations: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[dt.datetime] = _created_at_column()
    updated_at: Mapped[dt.datetime] = _created_at_column()


class ChatTeam(Base):
    __tablename__ = "chat_teams"

    id: Mapped[uuid.UUID] = _id_column()
    tenant_id: Mapped[uuid.UUID] = _tenant_column()
    name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = _created_at_column()

    members: Mapped[list["ChatTeamMember"]] = relationship(
        back_populates="team", cascade="all, delete-orphan"
    )


class ChatTeamMember(Base):
    __tablename__ = "chat_team_members"
    __table_args__ = (
        UniqueConstraint("team_id", "attendant_id", name="uq_chat_team_members_pair"),
    )

    id: Mapped[uuid.UUID] = _id_column()
    tenant_id: Mapped[uuid.UUID] = _tenant_column()
    team_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("chat_teams.id", ondelete="CASCADE"),
        nullable=False,
    )
    attendant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("attendant_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[dt.datetime] = _created_at_column()

    team: Mapped[ChatTeam] = relationship(back_populates="members")


class ChatServiceCategory(Base):
    """Service category a visitor picks; at most one default per tenant."""

    __tablename__ = "chat_service_categories"
    __table_args__ = (
        Index(
            "uq_chat_service_categories_default",
            "tenant_id",
            unique=True,
            postgresql_where=text("is_default"),
            sqlite_where=text("is_default = 1"),
        ),
    )

    id: Mapped[uuid.UUID] = _id_column()
    tenant_id: Mapped[uuid.UUID] = _tenant_column()
    name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_default: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    created_at: Mapped[dt.datetime] = _created_at_column()


class ChatCategoryTeam(Base):
    """Routes a category to a team; lower ``priority_order`` is tried first."""

    __tablename__ = "chat_category_teams"
    __table_args__ = (
        UniqueConstraint("category_id", "team_id", name="uq_chat_category_teams_pair"),
    )

    id: Mapped[uuid.UUID] = _id_column()
    tenant_id: Mapped[uuid.UUID] = _tenant_column()
    category_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("chat_service_categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    team_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("chat_teams.id", ondelete="CASCADE"),
        nullable=False,
    )
    priority_order: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[dt.datetime] = _created_at_column()

    config: Mapped["ChatAssignmentConfig | None"] = relationship(
        back_populates="category_team", cascade="all, delete-orphan", uselist=False
    )


class ChatAssignmentConfig(Base):
    __tablename__ = "chat_assignment_configs"

    id: Mapped[uuid.UUID] = _id_column()
    tenant_id: Mapped[uuid.UUID] = _tenant_column()
    category_team_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("chat_category_teams.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    online_only: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    capacity_limit: Mapped[int] = mapped_column(
        Integer, nullable=False, default=3, server_default=text("3")
    )
    allow_over_capacity: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    created_at: Mapped[dt.datetime] = _created_at_column()
    updated_at: Mapped[dt.datetime] = _created_at_column()

    category_team: Mapped[ChatCategoryTeam] = relationship(back_populates="config")


class ChatBusinessHours(Base):
    """Weekly opening window; ``day_of_week`` counts from Sunday = 0."""

    __tablename__ = "chat_business_hours"
    __table_args__ = (
        CheckConstraint(
            "day_of_week BETWEEN 0 AND 6", name="ck_chat_business_hours_day_of_week"
        ),
    )

    id: Mapped[uuid.UUID] = _id_column()
    tenant_id: Mapped[uuid.UUID] = _tenant_column()
    day_of_week: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    start_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    end_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    created_at: Mapped[dt.datetime] = _created_at_column()


class ChatAutoRule(Base):
    """Tenant automation rule; ``trigger_minutes`` is set for timed rules."""

    __tablename__ = "chat_auto_rules"
    __table_args__ = (
        Index("ix_chat_auto_rules_tenant_type", "tenant_id", "rule_type"),
    )

    id: Mapped[uuid.UUID] = _id_column()
    tenant_id: Mapped[uuid.UUID] = _tenant_column()
    rule_type: Mapped[str] = mapped_column(String(length=64), nullable=False)
    is_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    trigger_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    message_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = _created_at_column()
    updated_at: Mapped[dt.datetime] = _created_at_column()


class ChatRoom(Base):
    __tablename__ = "chat_rooms"
    __table_args__ = (
        CheckConstraint(
            "status IN ('waiting', 'active', 'closed')", name="ck_chat_rooms_status"
        ),
        Index("ix_chat_rooms_tenant_status", "tenant_id", "status"),
    )

    id: Mapped[uuid.UUID] = _id_column()
    tenant_id: Mapped[uuid.UUID] = _tenant_column()
    status: Mapped[str] = mapped_column(
        String(length=16), nullable=False, default="waiting", server_default=text("'waiting'")
    )
    attendant_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("attendant_profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("chat_service_categories.id", ondelete="SET NULL"),
        nullable=True,
    )
    resolution_status: Mapped[str | None] = mapped_column(String(length=32), nullable=True)
    resolution_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = _created_at_column()
    assigned_at: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    closed_at: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[dt.datetime] = _created_at_column()

    messages: Mapped[list["ChatMessage"]] = relationship(
        back_populates="room",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ChatMessage.created_at",
    )


class ChatMessage(Base):
    __tablename__ = "chat_messages"
    __table_args__ = (
        Index("ix_chat_messages_room_created", "room_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = _id_column()
    room_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("chat_rooms.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_type: Mapped[str] = mapped_column(String(length=16), nullable=False)
    sender_name: Mapped[str | None] = mapped_column(String(length=255), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    message_type: Mapped[str] = mapped_column(
        String(length=16), nullable=False, default="text", server_default=text("'text'")
    )
    # ``metadata`` is reserved on declarative classes.
    message_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", _JSON, nullable=False, default=dict, server_default=text("'{}'")
    )
    created_at: Mapped[dt.datetime] = _created_at_column()

    room: Mapped[ChatRoom] = relationship(back_populates="messages")


__all__ = [
    "AttendantProfile",
    "ChatAssignmentConfig",
    "ChatAutoRule",
    "ChatBusinessHours",
    "ChatCategoryTeam",
    "ChatMessage",
    "ChatRoom",
    "ChatServiceCategory",
    "ChatTeam",
    "ChatTeamMember",
]
