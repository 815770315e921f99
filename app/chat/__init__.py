"""Chat routing and lifecycle automation engine."""

from . import schemas
from .engine import ChatEngine, build_engine
from .memory_store import InMemoryChatStore
from .models import EligibilityResult, SweepResult
from .store import ChatStore, PostgresChatStore

__all__ = [
    "ChatEngine",
    "ChatStore",
    "EligibilityResult",
    "InMemoryChatStore",
    "PostgresChatStore",
    "SweepResult",
    "build_engine",
    "schemas",
]
