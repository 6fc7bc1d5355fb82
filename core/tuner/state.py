"""
core/tuner/state.py — Session-scoped mutable tuning state.

TuningState is the only mutable object in the pipeline. It is created at
session start, mutated exactly once per frame by TunerEngine.process(), and
reset at session stop. It is owned by the caller's session loop and must
never be mutated from two threads at once.

Single-writer discipline — each field has exactly one writer:

    last_loudness, last_attack_ms, attack_count     AttackDetector
    last_stable_frequency, stable_counter,
    last_note_change_ms, history                    StabilityTracker
    current_status, current_accuracy,
    frames_processed                                TunerEngine
"""

from __future__ import annotations

import math
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field

from core.tuner.types import FrequencyReading, TuningStatus


class FrequencyHistory:
    """Bounded, timestamp-ordered history of accepted pitch estimates.

    Backed by a fixed-capacity deque: appending beyond ``max_readings``
    evicts the oldest entry without reallocation. Entries older than
    ``window_ms`` are evicted on every append.

    Invariants:
        len(self) <= max_readings
        every entry is at most window_ms old relative to the last append
        timestamps are non-decreasing
    """

    def __init__(self, window_ms: float, max_readings: int) -> None:
        self.window_ms = window_ms
        self.max_readings = max_readings
        self._readings: deque[FrequencyReading] = deque(maxlen=max_readings)

    def add(self, frequency_hz: float, now_ms: float) -> None:
        self._readings.append(FrequencyReading(frequency_hz, now_ms))
        self.evict_older_than(now_ms)

    def evict_older_than(self, now_ms: float) -> None:
        while self._readings and now_ms - self._readings[0].timestamp_ms > self.window_ms:
            self._readings.popleft()

    def weighted_mean(self, now_ms: float) -> float | None:
        """Recency- and rank-weighted mean frequency.

        weight_i = ((1 − age_i / window) + (i + 1) / count) / 2

        Returns None with fewer than two readings (caller passes the raw
        estimate through) or when all weights vanish.
        """
        count = len(self._readings)
        if count < 2:
            return None
        weighted_sum = 0.0
        total_weight = 0.0
        for index, reading in enumerate(self._readings):
            recency = 1.0 - (now_ms - reading.timestamp_ms) / self.window_ms
            rank = (index + 1) / count
            weight = (recency + rank) / 2.0
            weighted_sum += reading.frequency_hz * weight
            total_weight += weight
        if total_weight <= 0.0:
            return None
        return weighted_sum / total_weight

    def clear(self) -> None:
        self._readings.clear()

    def __len__(self) -> int:
        return len(self._readings)

    def __iter__(self) -> Iterator[FrequencyReading]:
        return iter(self._readings)


@dataclass
class TuningState:
    """Everything the pipeline remembers between frames for one session.

    Timestamps are milliseconds on the engine clock. None means "never".
    """

    history: FrequencyHistory
    last_stable_frequency: float = 0.0
    stable_counter: int = 0
    last_loudness: float = -math.inf
    last_attack_ms: float | None = None
    last_note_change_ms: float | None = None
    attack_count: int = 0
    current_status: TuningStatus = TuningStatus.WAITING
    current_accuracy: int = 0
    frames_processed: int = field(default=0)

    @classmethod
    def create(cls, window_ms: float = 500.0, max_readings: int = 10) -> TuningState:
        """Fresh state for a new session."""
        return cls(history=FrequencyHistory(window_ms, max_readings))

    def reset(self) -> None:
        """Return every field to its initial value (session stop/restart)."""
        self.history.clear()
        self.last_stable_frequency = 0.0
        self.stable_counter = 0
        self.last_loudness = -math.inf
        self.last_attack_ms = None
        self.last_note_change_ms = None
        self.attack_count = 0
        self.current_status = TuningStatus.WAITING
        self.current_accuracy = 0
        self.frames_processed = 0
