"""Shared fixtures: temp database, fixed clock and a wired engine."""

import pytest
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

from hermes_engine.engine import Engine
from hermes_engine.enrichment.hunter import HunterClient
from hermes_engine.outreach.delivery import ResendClient


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now

    def set(self, value: datetime) -> datetime:
        self.now = value
        return self.now


@pytest.fixture
def temp_data_dir():
    """Create temporary data directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 10, 12, 0, 0))


@pytest.fixture
def engine(temp_data_dir, clock):
    """Engine over a temp database with unconfigured collaborators."""
    engine = Engine(
        temp_data_dir / "pipeline.db",
        clock=clock,
        hunter=HunterClient(api_key=""),
        delivery=ResendClient(api_key=""),
    )
    yield engine
    engine.stop()


@pytest.fixture
def make_candidate():
    """Factory for valid wire-format lead candidates."""

    def _make(n: int = 1, **overrides):
        candidate = {
            "source": "reddit",
            "sourceUrl": f"https://example.com/{n}",
            "title": f"Looking for a developer #{n}",
            "author": "u/jane_doe",
        }
        candidate.update(overrides)
        return candidate

    return _make


@pytest.fixture
def lead(engine, make_candidate):
    return engine.leads.create_lead(make_candidate())
