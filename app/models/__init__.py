"""SQLAlchemy declarative base and chat schema models.

This package exposes a single declarative ``Base`` class used when creating
tables or writing migrations in Python. Individual models live in dedicated
modules within this package.
"""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy declarative models."""


# Re-export models so callers can import them via ``from app.models import
# ChatRoom`` instead of touching private modules.
from .tenant import Organization
from .chat import (
    AttendantProfile,
    ChatAssignmentConfig,
    ChatAutoRule,
    ChatBusinessHours,
    ChatCategoryTeam,
    ChatMessage,
    ChatRoom,
    ChatServiceCategory,
    ChatTeam,
    ChatTeamMember,
)


__all__ = [
    "Base",
    "Organization",
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
