"""Chat room assignment and lifecycle API routes."""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from uuid import UUID

import psycopg
from fastapi import APIRouter, Depends, Header, HTTPException, Request

from ..chat import schemas
from ..chat.catalog import ensure_default_rules
from ..chat.engine import ChatEngine, build_engine
from ..chat.lifecycle import (
    AttendantNotFoundError,
    RoomNotFoundError,
    RoomStateConflictError,
)
from ..chat.store import PostgresChatStore
from ..core.db import get_required_tenant_id
from ..core.rate_limit import assignment_rate_limit, limiter
from ..core.tenant_context import reset_tenant_context, set_tenant_context

router = APIRouter(prefix="/api/chat", tags=["chat-rooms"])

logger = logging.getLogger(__name__)

_DATABASE_URL = os.getenv("DATABASE_URL")


def _get_conn(*, autocommit: bool = False) -> psycopg.Connection:
    if not _DATABASE_URL:
        raise HTTPException(status_code=500, detail="DATABASE_URL not configured")
    try:
        return psycopg.connect(_DATABASE_URL, autocommit=autocommit)
    except Exception as exc:  # pragma: no cover - defensive
        raise HTTPException(status_code=500, detail=str(exc)) from exc


def require_tenant(x_tenant_id: str | None = Header(default=None)) -> UUID:
    """Resolve the ``X-Tenant-Id`` header into a tenant UUID."""

    if not x_tenant_id:
        raise HTTPException(status_code=400, detail="Tenant identifier is required")
    try:
        return get_required_tenant_id(x_tenant_id)
    except RuntimeError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc


@contextmanager
def _engine_context(
    tenant_id: UUID | None = None, *, autocommit: bool = False
) -> Iterator[ChatEngine]:
    conn = _get_conn(autocommit=autocommit)
    token = None
    if tenant_id is not None:
        token = set_tenant_context(str(tenant_id), "api")
    engine = build_engine(PostgresChatStore(conn, tenant_id=tenant_id))
    try:
        yield engine
        conn.commit()
    except (RoomNotFoundError, AttendantNotFoundError) as exc:
        conn.rollback()
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except RoomStateConflictError as exc:
        conn.rollback()
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        conn.rollback()
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except HTTPException:
        conn.rollback()
        raise
    except Exception as exc:  # pragma: no cover - defensive
        conn.rollback()
        logger.exception("chat room request failed")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    finally:
        conn.close()
        if token is not None:
            reset_tenant_context(token)


@router.post("/rooms/{room_id}/assignment", response_model=schemas.AssignmentOutcome)
@limiter.limit(assignment_rate_limit)
def assign_room(request: Request, room_id: UUID) -> schemas.AssignmentOutcome:
    """Greet a newly created room and report whether it can be assigned.

    Called once by the intake flow right after the room row is inserted. The
    outcome only drives the visitor banner (agent joined, queue, outside
    hours); it never assigns an attendant itself.
    """
    # Autocommit: a failed welcome insert must not abort the eligibility reads.
    with _engine_context(autocommit=True) as engine:
        result = engine.assignment.on_room_created(room_id)
    return schemas.AssignmentOutcome.from_result(result)


@router.post("/rooms/{room_id}/claim", response_model=schemas.RoomResponse)
def claim_room(
    room_id: UUID,
    payload: schemas.ClaimRequest,
    tenant_id: UUID = Depends(require_tenant),
) -> schemas.RoomResponse:
    """Assign a waiting room to an attendant."""
    with _engine_context(tenant_id) as engine:
        room = engine.lifecycle.claim(room_id, payload.attendant_id)
    return schemas.RoomResponse.model_validate(room)


@router.post("/rooms/{room_id}/reassign", response_model=schemas.RoomResponse)
def reassign_room(
    room_id: UUID,
    payload: schemas.ReassignRequest,
    tenant_id: UUID = Depends(require_tenant),
) -> schemas.RoomResponse:
    """Transfer an open room to another attendant."""
    with _engine_context(tenant_id) as engine:
        room = engine.lifecycle.reassign(room_id, payload.attendant_id)
    return schemas.RoomResponse.model_validate(room)


@router.post("/rooms/{room_id}/close", response_model=schemas.RoomResponse)
def close_room(
    room_id: UUID,
    payload: schemas.CloseRequest,
    tenant_id: UUID = Depends(require_tenant),
) -> schemas.RoomResponse:
    """Close an open room as resolved or pending."""
    with _engine_context(tenant_id) as engine:
        room = engine.lifecycle.close(room_id, payload.resolution_status, payload.note)
    return schemas.RoomResponse.model_validate(room)


@router.delete("/rooms/{room_id}")
def delete_room(
    room_id: UUID,
    tenant_id: UUID = Depends(require_tenant),
) -> dict[str, str]:
    """Delete a room, releasing its attendant's capacity when it was open."""
    with _engine_context(tenant_id) as engine:
        engine.lifecycle.delete(room_id)
    return {"message": "Room deleted"}


@router.post("/auto-rules/defaults", response_model=schemas.DefaultRulesResponse)
def seed_default_rules(
    tenant_id: UUID = Depends(require_tenant),
) -> schemas.DefaultRulesResponse:
    """Create any missing auto rule with its default settings."""
    with _engine_context(tenant_id) as engine:
        created = ensure_default_rules(engine.store, tenant_id)
    return schemas.DefaultRulesResponse(
        created=[schemas.AutoRuleResponse.model_validate(rule) for rule in created]
    )
