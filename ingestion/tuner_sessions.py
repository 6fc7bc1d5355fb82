"""
ingestion/tuner_sessions.py — In-process registry of live tuning sessions.

Each session pairs one TunerEngine (its config) with one caller-owned
TuningState and a lock. The engine performs no synchronization, so every
call that touches a session's state goes through that session's lock:
frames for one session are processed strictly one at a time, while
different sessions proceed independently.

This module is in `ingestion/` because it holds process-wide mutable state
and records metrics. The DSP itself is pure and lives in `core/tuner/`.

Usage:
    store = TunerSessionStore()
    session_id = store.create()
    obs = store.process(session_id, frame, loudness_db)
    store.close(session_id)
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field

from core.tuner.config import DEFAULT_CONFIG, TunerConfig
from core.tuner.engine import TunerEngine
from core.tuner.gate import LoudnessMeter
from core.tuner.state import TuningState
from core.tuner.types import InvalidInputError, SampleFrame, TuningObservation
from infrastructure.metrics import (
    LatencyTimer,
    record_attacks,
    record_frame,
    record_invalid_frame,
    set_active_sessions,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_SESSIONS: int = 64


class SessionNotFoundError(KeyError):
    """Raised for an unknown or already closed session id."""


class SessionLimitError(RuntimeError):
    """Raised when creating a session would exceed the registry capacity."""


@dataclass
class TunerSession:
    """One live tuning session. Mutate only while holding ``lock``."""

    session_id: str
    engine: TunerEngine
    state: TuningState
    meter: LoudnessMeter = field(default_factory=LoudnessMeter)
    lock: threading.Lock = field(default_factory=threading.Lock)


class TunerSessionStore:
    """Thread-safe registry of tuning sessions.

    Args:
        default_config: Config for sessions created without overrides.
        max_sessions: Upper bound on concurrently open sessions.
    """

    def __init__(
        self,
        default_config: TunerConfig = DEFAULT_CONFIG,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
    ) -> None:
        self._default_config = default_config
        self._max_sessions = max_sessions
        self._sessions: dict[str, TunerSession] = {}
        self._lock = threading.Lock()

    @property
    def default_config(self) -> TunerConfig:
        return self._default_config

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(self, config: TunerConfig | None = None) -> str:
        """Open a session and return its id.

        Raises:
            SessionLimitError: ``max_sessions`` sessions are already open.
        """
        engine = TunerEngine(config or self._default_config)
        session = TunerSession(
            session_id=uuid.uuid4().hex,
            engine=engine,
            state=engine.new_state(),
        )
        with self._lock:
            if len(self._sessions) >= self._max_sessions:
                raise SessionLimitError(
                    f"Session limit reached ({self._max_sessions} open sessions)"
                )
            self._sessions[session.session_id] = session
            count = len(self._sessions)
        set_active_sessions(count)
        logger.info("Tuning session %s opened (%d open)", session.session_id, count)
        return session.session_id

    def get(self, session_id: str) -> TunerSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def reset(self, session_id: str) -> None:
        """Return the session's state to its initial values."""
        session = self.get(session_id)
        with session.lock:
            session.state.reset()
            session.meter.reset()
        logger.info("Tuning session %s reset", session_id)

    def close(self, session_id: str) -> None:
        """Stop a session and discard its state.

        Raises:
            SessionNotFoundError: Unknown session id.
        """
        with self._lock:
            session = self._sessions.pop(session_id, None)
            count = len(self._sessions)
        if session is None:
            raise SessionNotFoundError(session_id)
        with session.lock:
            session.state.reset()
        set_active_sessions(count)
        logger.info("Tuning session %s closed (%d open)", session_id, count)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    # ------------------------------------------------------------------
    # Frames
    # ------------------------------------------------------------------

    def process(
        self,
        session_id: str,
        frame: SampleFrame,
        loudness_db: float | None = None,
        *,
        now_ms: float | None = None,
    ) -> TuningObservation:
        """Run one frame through the session's engine, serialized per session.

        When ``loudness_db`` is None the session's LoudnessMeter derives it
        from the frame.

        Raises:
            SessionNotFoundError: Unknown session id.
            InvalidInputError: Malformed frame or loudness; state unchanged.
        """
        session = self.get(session_id)
        with session.lock:
            attacks_before = session.state.attack_count
            try:
                session.engine.validate(frame, 0.0 if loudness_db is None else loudness_db)
            except InvalidInputError:
                record_invalid_frame()
                logger.warning("Rejected malformed frame for session %s", session_id)
                raise
            level = session.meter.update(frame.samples) if loudness_db is None else loudness_db
            with LatencyTimer() as timer:
                observation = session.engine.process(frame, level, session.state, now_ms=now_ms)
            attacks = session.state.attack_count - attacks_before

        record_frame(status=observation.status.value, latency_seconds=timer.elapsed)
        record_attacks(attacks)
        return observation
