"""Pydantic schemas for the chat routing and automation APIs."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import EligibilityResult, SweepResult


class AssignmentOutcome(BaseModel):
    """Banner-driving result returned to the intake flow."""

    assigned: bool
    attendant_name: str | None = None
    outside_hours: bool = False
    all_busy: bool = False

    @classmethod
    def from_result(cls, result: EligibilityResult) -> "AssignmentOutcome":
        return cls(
            assigned=result.already_assigned,
            attendant_name=result.attendant_name,
            outside_hours=result.outside_hours,
            all_busy=result.all_busy,
        )


class SweepResponse(BaseModel):
    processed: int
    tenants: int = 0
    rooms: int = 0
    failures: int = 0

    @classmethod
    def from_result(cls, result: SweepResult) -> "SweepResponse":
        return cls(
            processed=result.processed,
            tenants=result.tenants,
            rooms=result.rooms,
            failures=result.failures,
        )


class ClaimRequest(BaseModel):
    attendant_id: UUID


class ReassignRequest(BaseModel):
    attendant_id: UUID


class CloseRequest(BaseModel):
    resolution_status: Literal["resolved", "pending"] = "resolved"
    note: str | None = Field(default=None, max_length=2000)


class RoomResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    status: str
    attendant_id: UUID | None = None
    category_id: UUID | None = None
    resolution_status: str | None = None
    resolution_note: str | None = None
    created_at: datetime | None = None
    assigned_at: datetime | None = None
    closed_at: datetime | None = None


class AutoRuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    rule_type: str
    is_enabled: bool
    trigger_minutes: int | None = None
    message_content: str | None = None


class DefaultRulesResponse(BaseModel):
    created: list[AutoRuleResponse]
