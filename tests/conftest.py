from __future__ import annotations

import pytest

from authflow.application.auth_machine import AuthStateMachine
from authflow.config.settings import Settings, get_settings
from tests.helpers.fakes import FakeClock, RecordingSessionStore


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def settings() -> Settings:
    return Settings()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store() -> RecordingSessionStore:
    return RecordingSessionStore()


@pytest.fixture()
def auth(clock: FakeClock, store: RecordingSessionStore, settings: Settings) -> AuthStateMachine:
    return AuthStateMachine(store=store, clock=clock, settings=settings, session_id="sess-0001")
