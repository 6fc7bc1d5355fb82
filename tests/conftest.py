"""
Shared fixtures for the test suite.

Centralizes reusable test infrastructure so individual test files
don't need to repeat engine/session-store/override boilerplate.
"""

import pytest
from fastapi.testclient import TestClient

from api.deps import get_session_store
from api.main import app
from core.tuner.config import TunerConfig
from core.tuner.engine import TunerEngine
from core.tuner.state import TuningState
from ingestion.tuner_sessions import TunerSessionStore

# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine() -> TunerEngine:
    """Engine with the default config (16384-sample frames)."""
    return TunerEngine()


@pytest.fixture
def state(engine: TunerEngine) -> TuningState:
    return engine.new_state()


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def small_config() -> TunerConfig:
    """Shorter frames keep JSON request bodies small in API tests."""
    return TunerConfig(analysis_size=4096)


@pytest.fixture
def session_store(small_config: TunerConfig) -> TunerSessionStore:
    return TunerSessionStore(default_config=small_config, max_sessions=4)


@pytest.fixture
def client(session_store: TunerSessionStore):
    """TestClient whose session store is an isolated, per-test instance."""
    app.dependency_overrides[get_session_store] = lambda: session_store
    yield TestClient(app)
    app.dependency_overrides.clear()
