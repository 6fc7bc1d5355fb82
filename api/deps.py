"""
FastAPI dependency providers.

Provides the process-wide TunerSessionStore singleton so every request
sees the same set of live sessions. Tests override it through
``app.dependency_overrides``.
"""

from core.tuner.config import TunerConfig
from ingestion.tuner_sessions import TunerSessionStore

_session_store: TunerSessionStore | None = None


def get_session_store() -> TunerSessionStore:
    """
    Return a cached ``TunerSessionStore`` singleton.

    The store is created on first call with a config read from ``TUNER_*``
    environment variables (and ``.env``), and reused thereafter.
    """
    global _session_store  # noqa: PLW0603
    if _session_store is None:
        _session_store = TunerSessionStore(default_config=TunerConfig.from_env())
    return _session_store
