"""
core/tuner/types.py — Value types for the real-time tuning engine.

Frames and observations are frozen dataclasses — immutable value objects
that can be passed between the capture layer, the engine and the
presentation layer without defensive copies.

Design principles:
    - No I/O, no side effects.
    - SampleFrame validates its own shape (length, finiteness, rate) at
      construction time, so the engine never sees a malformed buffer.
    - "Nothing detected" is data (frequency 0.0, note None), never an
      exception. InvalidInputError is reserved for malformed input.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

import numpy as np


class InvalidInputError(ValueError):
    """Raised when a frame or loudness reading is malformed.

    The caller is expected to skip the frame: the engine raises before
    touching TuningState, so the session state is left unchanged.
    """


class TuningStatus(str, Enum):
    """User-facing tuning status emitted once per frame."""

    WAITING = "waiting"
    ATTACK = "attack"
    TUNED = "tuned"
    ALMOST_TUNED = "almost-tuned"
    FLAT = "flat"
    VERY_FLAT = "very-flat"
    SHARP = "sharp"
    VERY_SHARP = "very-sharp"


@dataclass(frozen=True)
class ReferencePitch:
    """One open-string target pitch.

    Invariants:
        frequency_hz > 0
    """

    name: str
    """Scientific pitch name, e.g. 'E2', 'A2'."""

    frequency_hz: float
    """Target frequency in Hz."""


@dataclass(frozen=True)
class FrequencyReading:
    """A single accepted pitch estimate, kept in the smoothing history."""

    frequency_hz: float
    timestamp_ms: float


def _is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


@dataclass(frozen=True, eq=False)
class SampleFrame:
    """One analysis buffer produced by the capture layer.

    Invariants (enforced in __post_init__):
        len(samples) is a power of two
        all samples are finite
        sample_rate_hz is finite and > 0

    The samples are stored as a read-only float64 array.
    """

    samples: np.ndarray
    """Mono waveform, nominally in [-1, 1]."""

    sample_rate_hz: int
    """Capture sample rate in Hz."""

    def __post_init__(self) -> None:
        arr = np.asarray(self.samples, dtype=np.float64)
        if arr.ndim != 1:
            raise InvalidInputError(f"samples must be one-dimensional, got shape {arr.shape}")
        if not _is_power_of_two(arr.size):
            raise InvalidInputError(
                f"frame length must be a power of two, got {arr.size}"
            )
        if not np.all(np.isfinite(arr)):
            raise InvalidInputError("frame contains non-finite samples")
        if not math.isfinite(self.sample_rate_hz) or self.sample_rate_hz <= 0:
            raise InvalidInputError(
                f"sample_rate_hz must be positive, got {self.sample_rate_hz}"
            )
        arr = arr.copy()
        arr.setflags(write=False)
        object.__setattr__(self, "samples", arr)

    def __len__(self) -> int:
        return int(self.samples.size)

    @property
    def duration_ms(self) -> float:
        """Buffer duration in milliseconds."""
        return 1000.0 * self.samples.size / self.sample_rate_hz


@dataclass(frozen=True)
class TuningObservation:
    """Immutable per-frame output of TunerEngine.process().

    Invariants:
        0 <= accuracy_percent <= 100
        note is None  <=>  status in {WAITING, ATTACK}
        frequency_hz == 0.0 when no frequency was committed
    """

    status: TuningStatus
    note: str | None
    """Matched reference name ('E2' … 'E4'), None when nothing matched."""

    frequency_hz: float
    """Committed (smoothed) frequency in Hz. 0.0 when not committed."""

    cents_offset: int
    """Signed deviation from the matched reference. 0 without a match."""

    accuracy_percent: int
    in_attack: bool

    @property
    def is_tuned(self) -> bool:
        return self.status is TuningStatus.TUNED


def validate_loudness(loudness_db: float) -> float:
    """Return loudness as float, rejecting NaN (−inf is a valid silence value)."""
    try:
        value = float(loudness_db)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"loudness_db must be numeric, got {loudness_db!r}") from exc
    if math.isnan(value) or value == math.inf:
        raise InvalidInputError(f"loudness_db must be a real number or -inf, got {loudness_db!r}")
    return value
