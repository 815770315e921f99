"""Trigger for the periodic chat automation sweep."""

from __future__ import annotations

import logging
import os

import psycopg
from fastapi import APIRouter, HTTPException

from ..chat import schemas
from ..chat.engine import build_engine
from ..chat.store import PostgresChatStore

router = APIRouter(prefix="/api/chat/automation", tags=["chat-automation"])

logger = logging.getLogger(__name__)

_DATABASE_URL = os.getenv("DATABASE_URL")


def _get_conn() -> psycopg.Connection:
    if not _DATABASE_URL:
        raise HTTPException(status_code=500, detail="DATABASE_URL not configured")
    try:
        # Each rule write commits on its own so a later failure cannot undo
        # messages that were already emitted.
        return psycopg.connect(_DATABASE_URL, autocommit=True)
    except Exception as exc:  # pragma: no cover - defensive
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@router.post("/sweep", response_model=schemas.SweepResponse)
def run_sweep() -> schemas.SweepResponse:
    """Run one automation sweep over every tenant.

    Meant to be hit by an external scheduler every few minutes. Overlapping
    runs are safe: already fired rules are detected from message history.
    """
    conn = _get_conn()
    try:
        engine = build_engine(PostgresChatStore(conn))
        result = engine.sweeper.run()
    except Exception as exc:  # pragma: no cover - defensive
        logger.exception("automation sweep aborted")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    finally:
        conn.close()
    return schemas.SweepResponse.from_result(result)
