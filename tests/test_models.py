from __future__ import annotations

import datetime as dt
import uuid

import pytest

pytest.importorskip("sqlalchemy")
from app.models import (  # noqa: E402
    AttendantProfile,
    Base,
    ChatAssignmentConfig,
    ChatCategoryTeam,
    ChatMessage,
    ChatRoom,
    ChatServiceCategory,
    ChatTeam,
    ChatTeamMember,
    Organization,
)
from app.models.session import as_sqlalchemy_url, create_schema, get_engine, safe_url  # noqa: E402
from sqlalchemy import func, select  # type: ignore  # noqa: E402
from sqlalchemy.exc import IntegrityError  # type: ignore  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # type: ignore  # noqa: E402


@pytest.fixture
def engine():
    engine = get_engine("sqlite+pysqlite:///:memory:", future=True)
    create_schema(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    factory = sessionmaker(bind=engine, expire_on_commit=False, future=True)
    with factory() as session:
        yield session
        session.rollback()


@pytest.fixture
def org(session: Session) -> Organization:
    organization = Organization(id=uuid.uuid4(), name="Acme Inc.", subdomain="acme")
    session.add(organization)
    session.flush()
    return organization


def test_routing_graph_defaults(session: Session, org: Organization) -> None:
    attendant = AttendantProfile(tenant_id=org.id, display_name="Ana")
    team = ChatTeam(tenant_id=org.id, name="Support")
    category = ChatServiceCategory(tenant_id=org.id, name="General", is_default=True)
    session.add_all([attendant, team, category])
    session.flush()

    team.members.append(ChatTeamMember(tenant_id=org.id, attendant_id=attendant.id))
    link = ChatCategoryTeam(tenant_id=org.id, category_id=category.id, team_id=team.id)
    link.config = ChatAssignmentConfig(tenant_id=org.id)
    session.add(link)
    session.flush()

    assert org.timezone is None
    assert attendant.status == "offline"
    assert attendant.active_conversations == 0
    assert link.priority_order is None
    assert link.config.enabled is True
    assert link.config.online_only is True
    assert link.config.capacity_limit == 3
    assert link.config.allow_over_capacity is False
    assert [m.attendant_id for m in team.members] == [attendant.id]


def test_single_default_category_per_tenant(session: Session, org: Organization) -> None:
    session.add(ChatServiceCategory(tenant_id=org.id, name="General", is_default=True))
    session.add(ChatServiceCategory(tenant_id=org.id, name="Billing"))
    session.commit()

    with pytest.raises(IntegrityError):
        session.add(ChatServiceCategory(tenant_id=org.id, name="Sales", is_default=True))
        session.commit()
    session.rollback()


def test_active_conversations_cannot_go_negative(session: Session, org: Organization) -> None:
    with pytest.raises(IntegrityError):
        session.add(
            AttendantProfile(tenant_id=org.id, display_name="Ana", active_conversations=-1)
        )
        session.flush()
    session.rollback()


def test_room_messages_and_cascade(session: Session, org: Organization) -> None:
    room = ChatRoom(tenant_id=org.id)
    session.add(room)
    session.flush()
    early = dt.datetime(2024, 6, 3, 10, 0, tzinfo=dt.timezone.utc)
    session.add_all(
        [
            ChatMessage(
                room_id=room.id,
                sender_type="system",
                content="Welcome",
                message_metadata={"auto_rule": "welcome_message"},
                created_at=early,
            ),
            ChatMessage(
                room_id=room.id,
                sender_type="visitor",
                content="Hi",
                created_at=early + dt.timedelta(minutes=1),
            ),
        ]
    )
    session.commit()
    session.refresh(room)

    assert room.status == "waiting"
    assert [m.content for m in room.messages] == ["Welcome", "Hi"]
    assert room.messages[0].message_metadata == {"auto_rule": "welcome_message"}
    assert room.messages[1].message_type == "text"

    session.delete(room)
    session.commit()
    assert session.scalar(select(func.count()).select_from(ChatMessage)) == 0


def test_url_helpers() -> None:
    assert as_sqlalchemy_url("postgresql://u:p@db/chat") == "postgresql+psycopg://u:p@db/chat"
    assert as_sqlalchemy_url("sqlite:///x.db") == "sqlite:///x.db"
    redacted = safe_url("postgresql://u:secret@db/chat")
    assert "secret" not in redacted
    assert redacted.startswith("postgresql://u:")
    assert redacted.endswith("@db/chat")
    assert "***" in redacted or "%2A%2A%2A" in redacted
    assert safe_url("postgresql://db/chat") == "postgresql://db/chat"


def test_get_engine_requires_url(monkeypatch) -> None:
    monkeypatch.delenv("DATABASE_URL", raising=False)

    with pytest.raises(RuntimeError):
        get_engine()
