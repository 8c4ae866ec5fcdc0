from datetime import datetime, timedelta

import pytest

from triage.agents.reply_agent import ReplyAgent
from triage.config import Settings
from triage.core.orchestrator import TriageOrchestrator
from triage.core.session_store import InMemorySessionStore


class FakeClock:
    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float):
        self.current += timedelta(seconds=seconds)


def make_settings(**overrides) -> Settings:
    values = dict(
        groq_api_key=None,
        groq_model="llama-3.3-70b-versatile",
        phrasing_enabled=False,
        phrasing_timeout=0.5,
        idle_timeout=300.0,
        sweep_interval=60.0,
        strict_invariants=True,
        log_level="DEBUG",
        host="127.0.0.1",
        port=8000,
    )
    values.update(overrides)
    return Settings(**values)


def make_orchestrator(clock=None, client=None, **overrides) -> TriageOrchestrator:
    settings = make_settings(**overrides)
    store = InMemorySessionStore(clock=clock or FakeClock())
    return TriageOrchestrator(
        settings=settings,
        store=store,
        reply_agent=ReplyAgent(settings, client=client),
    )


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def orchestrator(clock):
    return make_orchestrator(clock=clock)
