"""Create tenant, routing, automation and chat room tables."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "001_create_chat_tables"
down_revision = None
branch_labels = None
depends_on = None


_UUID = postgresql.UUID(as_uuid=True)


def _id() -> sa.Column:
    return sa.Column(
        "id",
        _UUID,
        primary_key=True,
        nullable=False,
        server_default=sa.text("gen_random_uuid()"),
    )


def _tenant() -> sa.Column:
    return sa.Column(
        "tenant_id",
        _UUID,
        sa.ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )


def _timestamp(name: str, *, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.DateTime(timezone=True), nullable=True)
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("now()"),
    )


def upgrade() -> None:
    """Create the chat schema with supporting indexes."""

    op.create_table(
        "organizations",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("subdomain", sa.String(length=255), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index(
        "ix_organizations_subdomain_unique",
        "organizations",
        ["subdomain"],
        unique=True,
    )

    op.create_table(
        "attendant_profiles",
        _id(),
        _tenant(),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column(
            "status",
            sa.String(length=16),
            nullable=False,
            server_default=sa.text("'offline'"),
        ),
        sa.Column(
            "active_conversations",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column("max_conversations", sa.Integer(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            "active_conversations >= 0",
            name="ck_attendant_profiles_active_nonnegative",
        ),
        sa.CheckConstraint(
            "status IN ('online', 'away', 'offline')",
            name="ck_attendant_profiles_status",
        ),
    )
    op.create_index(
        "ix_attendant_profiles_tenant_id", "attendant_profiles", ["tenant_id"]
    )

    op.create_table(
        "chat_teams",
        _id(),
        _tenant(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index("ix_chat_teams_tenant_id", "chat_teams", ["tenant_id"])

    op.create_table(
        "chat_team_members",
        _id(),
        _tenant(),
        sa.Column(
            "team_id",
            _UUID,
            sa.ForeignKey("chat_teams.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "attendant_id",
            _UUID,
            sa.ForeignKey("attendant_profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _timestamp("created_at"),
        sa.UniqueConstraint("team_id", "attendant_id", name="uq_chat_team_members_pair"),
    )
    op.create_index("ix_chat_team_members_tenant_id", "chat_team_members", ["tenant_id"])

    op.create_table(
        "chat_service_categories",
        _id(),
        _tenant(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "is_default",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        _timestamp("created_at"),
    )
    op.create_index(
        "ix_chat_service_categories_tenant_id", "chat_service_categories", ["tenant_id"]
    )
    op.create_index(
        "uq_chat_service_categories_default",
        "chat_service_categories",
        ["tenant_id"],
        unique=True,
        postgresql_where=sa.text("is_default"),
    )

    op.create_table(
        "chat_category_teams",
        _id(),
        _tenant(),
        sa.Column(
            "category_id",
            _UUID,
            sa.ForeignKey("chat_service_categories.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "team_id",
            _UUID,
            sa.ForeignKey("chat_teams.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("priority_order", sa.Integer(), nullable=True),
        _timestamp("created_at"),
        sa.UniqueConstraint("category_id", "team_id", name="uq_chat_category_teams_pair"),
    )
    op.create_index("ix_chat_category_teams_tenant_id", "chat_category_teams", ["tenant_id"])
    op.create_index(
        "ix_chat_category_teams_category_id", "chat_category_teams", ["category_id"]
    )

    op.create_table(
        "chat_assignment_configs",
        _id(),
        _tenant(),
        sa.Column(
            "category_team_id",
            _UUID,
            sa.ForeignKey("chat_category_teams.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "online_only", sa.Boolean(), nullable=False, server_default=sa.text("true")
        ),
        sa.Column(
            "capacity_limit", sa.Integer(), nullable=False, server_default=sa.text("3")
        ),
        sa.Column(
            "allow_over_capacity",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index(
        "ix_chat_assignment_configs_tenant_id", "chat_assignment_configs", ["tenant_id"]
    )

    op.create_table(
        "chat_business_hours",
        _id(),
        _tenant(),
        sa.Column("day_of_week", sa.SmallInteger(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _timestamp("created_at"),
        sa.CheckConstraint(
            "day_of_week BETWEEN 0 AND 6", name="ck_chat_business_hours_day_of_week"
        ),
    )
    op.create_index("ix_chat_business_hours_tenant_id", "chat_business_hours", ["tenant_id"])

    op.create_table(
        "chat_auto_rules",
        _id(),
        _tenant(),
        sa.Column("rule_type", sa.String(length=64), nullable=False),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("trigger_minutes", sa.Integer(), nullable=True),
        sa.Column("message_content", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_chat_auto_rules_tenant_id", "chat_auto_rules", ["tenant_id"])
    op.create_index(
        "ix_chat_auto_rules_tenant_type", "chat_auto_rules", ["tenant_id", "rule_type"]
    )

    op.create_table(
        "chat_rooms",
        _id(),
        _tenant(),
        sa.Column(
            "status",
            sa.String(length=16),
            nullable=False,
            server_default=sa.text("'waiting'"),
        ),
        sa.Column(
            "attendant_id",
            _UUID,
            sa.ForeignKey("attendant_profiles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "category_id",
            _UUID,
            sa.ForeignKey("chat_service_categories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("resolution_status", sa.String(length=32), nullable=True),
        sa.Column("resolution_note", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("assigned_at", nullable=True),
        _timestamp("closed_at", nullable=True),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            "status IN ('waiting', 'active', 'closed')", name="ck_chat_rooms_status"
        ),
    )
    op.create_index("ix_chat_rooms_tenant_id", "chat_rooms", ["tenant_id"])
    op.create_index("ix_chat_rooms_tenant_status", "chat_rooms", ["tenant_id", "status"])

    op.create_table(
        "chat_messages",
        _id(),
        sa.Column(
            "room_id",
            _UUID,
            sa.ForeignKey("chat_rooms.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("sender_type", sa.String(length=16), nullable=False),
        sa.Column("sender_name", sa.String(length=255), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "message_type",
            sa.String(length=16),
            nullable=False,
            server_default=sa.text("'text'"),
        ),
        sa.Column(
            "metadata",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        _timestamp("created_at"),
    )
    op.create_index(
        "ix_chat_messages_room_created", "chat_messages", ["room_id", "created_at"]
    )


def downgrade() -> None:
    """Remove the chat schema in reverse dependency order."""

    op.drop_index("ix_chat_messages_room_created", table_name="chat_messages")
    op.drop_table("chat_messages")

    op.drop_index("ix_chat_rooms_tenant_status", table_name="chat_rooms")
    op.drop_index("ix_chat_rooms_tenant_id", table_name="chat_rooms")
    op.drop_table("chat_rooms")

    op.drop_index("ix_chat_auto_rules_tenant_type", table_name="chat_auto_rules")
    op.drop_index("ix_chat_auto_rules_tenant_id", table_name="chat_auto_rules")
    op.drop_table("chat_auto_rules")

    op.drop_index("ix_chat_business_hours_tenant_id", table_name="chat_business_hours")
    op.drop_table("chat_business_hours")

    op.drop_index(
        "ix_chat_assignment_configs_tenant_id", table_name="chat_assignment_configs"
    )
    op.drop_table("chat_assignment_configs")

    op.drop_index("ix_chat_category_teams_category_id", table_name="chat_category_teams")
    op.drop_index("ix_chat_category_teams_tenant_id", table_name="chat_category_teams")
    op.drop_table("chat_category_teams")

    op.drop_index(
        "uq_chat_service_categories_default", table_name="chat_service_categories"
    )
    op.drop_index(
        "ix_chat_service_categories_tenant_id", table_name="chat_service_categories"
    )
    op.drop_table("chat_service_categories")

    op.drop_index("ix_chat_team_members_tenant_id", table_name="chat_team_members")
    op.drop_table("chat_team_members")

    op.drop_index("ix_chat_teams_tenant_id", table_name="chat_teams")
    op.drop_table("chat_teams")

    op.drop_index("ix_attendant_profiles_tenant_id", table_name="attendant_profiles")
    op.drop_table("attendant_profiles")

    op.drop_index("ix_organizations_subdomain_unique", table_name="organizations")
    op.drop_table("organizations")
