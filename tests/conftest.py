import pathlib
import sys
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import FastAPI, Request

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from app.app_logging import init_logging
from app.chat import InMemoryChatStore, build_engine
from app.core.config import AutomationSettings, reset_settings_cache

# Monday 10:00 in America/Sao_Paulo (UTC-3).
START = datetime(2024, 6, 3, 13, 0, tzinfo=timezone.utc)


@dataclass
class FakeClock:
    now: datetime = START

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float = 0, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(minutes=minutes, **kwargs)
        return self.now

    def set(self, moment: datetime) -> None:
        self.now = moment


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryChatStore:
    return InMemoryChatStore(clock=clock)


@pytest.fixture
def tenant_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def settings() -> AutomationSettings:
    return AutomationSettings(database_url=None)


@pytest.fixture
def engine(store, settings, clock):
    return build_engine(store, settings, clock=clock)


@pytest.fixture
def app_factory(monkeypatch):
    def _create_app(log_dir: str, log_request_bodies: bool = False):
        """Create a FastAPI app with logging initialised."""
        monkeypatch.setenv("LOG_DIR", str(log_dir))
        if log_request_bodies:
            monkeypatch.setenv("LOG_REQUEST_BODIES", "true")
        app = FastAPI()

        @app.post("/echo")
        async def echo(request: Request):
            return await request.json()

        init_logging(app)
        return app

    return _create_app
