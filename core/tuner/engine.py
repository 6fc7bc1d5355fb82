"""
core/tuner/engine.py — Frame-synchronous tuning engine.

TunerEngine wires the pipeline stages together and is evaluated once per
capture tick:

    SampleFrame + loudness_db
        │
        ├─ AttackDetector.update()       [attack.py — transient flag]
        │       ↓
        ├─ has_sufficient_energy()       [gate.py — adaptive threshold]
        │       ↓
        ├─ estimate_pitch()              [pitch.py — difference function]
        │       ↓
        ├─ StabilityTracker.observe()    [stability.py — smoothing + hysteresis]
        │       ↓
        ├─ find_closest_reference()      [references.py — note + cents]
        │       ↓
        └─ classify()                    [classifier.py — status + accuracy]

The engine holds configuration only. All mutable data lives in the
caller-owned TuningState, so one engine can serve many sessions as long as
each session's calls are serialized.

Usage:
    engine = TunerEngine()
    state = engine.new_state()
    for frame, loudness in capture():
        observation = engine.process(frame, loudness, state)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from core.tuner.attack import AttackDetector
from core.tuner.classifier import accuracy_percent, classify
from core.tuner.config import DEFAULT_CONFIG, TunerConfig
from core.tuner.filters import prefilter_frame
from core.tuner.gate import has_sufficient_energy
from core.tuner.pitch import NO_PITCH, estimate_pitch
from core.tuner.references import STANDARD_TUNING, cents, find_closest_reference
from core.tuner.stability import StabilityTracker
from core.tuner.state import TuningState
from core.tuner.types import (
    InvalidInputError,
    ReferencePitch,
    SampleFrame,
    TuningObservation,
    validate_loudness,
)

logger = logging.getLogger(__name__)


def monotonic_ms() -> float:
    """Default engine clock: monotonic time in milliseconds."""
    return time.monotonic() * 1000.0


class TunerEngine:
    """Single-entry-point tuning engine.

    Args:
        config: Pipeline parameters (default: DEFAULT_CONFIG).
        clock: Millisecond clock used when ``process`` gets no ``now_ms``.
        references: Reference table (default: standard tuning).
    """

    def __init__(
        self,
        config: TunerConfig = DEFAULT_CONFIG,
        *,
        clock: Callable[[], float] = monotonic_ms,
        references: tuple[ReferencePitch, ...] = STANDARD_TUNING,
    ) -> None:
        self.config = config
        self.references = references
        self._clock = clock
        self._attack = AttackDetector(config)
        self._stability = StabilityTracker(config)

    def new_state(self) -> TuningState:
        """Fresh session state sized for this engine's smoothing window."""
        return TuningState.create(
            window_ms=self.config.moving_average_window_ms,
            max_readings=self.config.moving_average_max_readings,
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, frame: SampleFrame, loudness_db: float) -> float:
        """Reject malformed input before any state is touched.

        Returns:
            loudness_db as a float.

        Raises:
            InvalidInputError: Wrong frame length or invalid loudness.
        """
        if len(frame) != self.config.analysis_size:
            raise InvalidInputError(
                f"frame length {len(frame)} does not match analysis_size "
                f"{self.config.analysis_size}"
            )
        return validate_loudness(loudness_db)

    # ------------------------------------------------------------------
    # Per-frame pipeline
    # ------------------------------------------------------------------

    def process(
        self,
        frame: SampleFrame,
        loudness_db: float,
        state: TuningState,
        *,
        now_ms: float | None = None,
    ) -> TuningObservation:
        """Run one frame through the pipeline and update ``state`` in place.

        Args:
            frame: Analysis buffer of ``config.analysis_size`` samples.
            loudness_db: Level of the same tick in dB (−inf for silence).
            state: Caller-owned session state.
            now_ms: Frame timestamp; defaults to the engine clock.

        Returns:
            Immutable observation for the presentation layer.

        Raises:
            InvalidInputError: Malformed input. ``state`` is left unchanged.
        """
        loudness = self.validate(frame, loudness_db)
        now = self._clock() if now_ms is None else float(now_ms)

        if self._attack.update(state, loudness, now):
            logger.debug("Attack at %.0f ms (%.1f dB)", now, loudness)
            self._stability.restart(state, now)
        in_attack = self._attack.in_attack(state, now)

        observation = self._evaluate(frame, loudness, state, now, in_attack)

        state.current_status = observation.status
        state.current_accuracy = observation.accuracy_percent
        state.frames_processed += 1
        return observation

    def _evaluate(
        self,
        frame: SampleFrame,
        loudness: float,
        state: TuningState,
        now: float,
        in_attack: bool,
    ) -> TuningObservation:
        if in_attack or not has_sufficient_energy(loudness, state.last_stable_frequency, self.config):
            self._stability.decay(state)
            return self._idle(in_attack)

        samples = frame.samples
        if self.config.prefilter:
            samples = prefilter_frame(samples, frame.sample_rate_hz, self.config)
        raw_hz = estimate_pitch(samples, frame.sample_rate_hz, self.config)
        if raw_hz == NO_PITCH:
            self._stability.decay(state)
            return self._idle(in_attack)

        previous_change = state.last_note_change_ms
        smoothed_hz = self._stability.observe(state, raw_hz, now)
        if state.last_note_change_ms != previous_change:
            logger.debug("Note change to %.2f Hz at %.0f ms", smoothed_hz, now)

        if not self._stability.is_committed(state, now):
            return self._idle(in_attack)

        reference = find_closest_reference(
            smoothed_hz, self.references, limit_cents=self.config.match_limit_cents
        )
        if reference is None:
            # Committed but between strings: same sentinel output as no pitch.
            return self._idle(in_attack)

        offset = cents(smoothed_hz, reference.frequency_hz)
        status = classify(True, in_attack, True, offset, self.config)
        return TuningObservation(
            status=status,
            note=reference.name,
            frequency_hz=smoothed_hz,
            cents_offset=offset,
            accuracy_percent=accuracy_percent(status, offset),
            in_attack=in_attack,
        )

    def _idle(self, in_attack: bool) -> TuningObservation:
        status = classify(False, in_attack, False, 0, self.config)
        return TuningObservation(
            status=status,
            note=None,
            frequency_hz=0.0,
            cents_offset=0,
            accuracy_percent=0,
            in_attack=in_attack,
        )
