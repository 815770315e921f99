"""API tests for the automation sweep trigger."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.chat.models import ROOM_ACTIVE, ROOM_CLOSED, RULE_AUTO_CLOSE, SENDER_ATTENDANT
from app.main import app
from app.routers import automation


class DummyConn:
    closed = False

    def close(self):
        self.closed = True


@pytest.fixture
def conn(monkeypatch, store):
    dummy = DummyConn()
    monkeypatch.setattr(automation, "_get_conn", lambda: dummy)
    monkeypatch.setattr(automation, "PostgresChatStore", lambda conn: store)
    return dummy


def test_sweep_without_rules(conn):
    client = TestClient(app)

    resp = client.post("/api/chat/automation/sweep")

    assert resp.status_code == 200
    assert resp.json() == {"processed": 0, "tenants": 0, "rooms": 0, "failures": 0}
    assert conn.closed is True


def test_sweep_closes_idle_room(conn, store, tenant_id):
    attendant = store.add_attendant(tenant_id, "Ana", active_conversations=1)
    room = store.add_room(tenant_id, status=ROOM_ACTIVE, attendant_id=attendant.id)
    store.insert_auto_rule(
        tenant_id, RULE_AUTO_CLOSE, is_enabled=True, trigger_minutes=30, message_content="Bye"
    )
    store.add_message(
        room.id,
        SENDER_ATTENDANT,
        "Anything else?",
        created_at=datetime.now(timezone.utc) - timedelta(hours=1),
    )

    resp = TestClient(app).post("/api/chat/automation/sweep")

    assert resp.status_code == 200
    assert resp.json() == {"processed": 1, "tenants": 1, "rooms": 1, "failures": 0}
    assert store.get_room(room.id).status == ROOM_CLOSED
    assert store.get_attendant(attendant.id).active_conversations == 0


def test_sweep_without_database_url(monkeypatch):
    monkeypatch.setattr(automation, "_DATABASE_URL", None)

    resp = TestClient(app).post("/api/chat/automation/sweep")

    assert resp.status_code == 500
