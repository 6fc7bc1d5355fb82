"""
core/tuner/gate.py — Loudness gate with a frequency-dependent threshold.

Higher, thinner strings sustain with less energy than the wound bass
strings, so the gate relaxes as the last known frequency rises:

    last stable > 250 Hz   → base − 6 dB   (B3, E4)
    last stable > 150 Hz   → base − 3 dB   (G3, and D3 when slightly sharp)
    otherwise              → base          (E2, A2, D3, or unknown)

Also provides loudness helpers for callers that only have raw buffers.
"""

from __future__ import annotations

import math

import numpy as np

from core.tuner.config import DEFAULT_CONFIG, TunerConfig

HIGH_STRING_HZ: float = 250.0
MID_STRING_HZ: float = 150.0
HIGH_STRING_RELAXATION_DB: float = 6.0
MID_STRING_RELAXATION_DB: float = 3.0


def adjusted_threshold_db(last_stable_hz: float, config: TunerConfig = DEFAULT_CONFIG) -> float:
    """Gate threshold in dB for the given last known frequency (0 = unknown)."""
    base = config.base_volume_threshold_db
    if last_stable_hz > HIGH_STRING_HZ:
        return base - HIGH_STRING_RELAXATION_DB
    if last_stable_hz > MID_STRING_HZ:
        return base - MID_STRING_RELAXATION_DB
    return base


def has_sufficient_energy(
    loudness_db: float,
    last_stable_hz: float,
    config: TunerConfig = DEFAULT_CONFIG,
) -> bool:
    """True when the frame is loud enough to trust a pitch estimate.

    Non-finite loudness (−inf silence, NaN) never passes.
    """
    if not math.isfinite(loudness_db):
        return False
    return loudness_db > adjusted_threshold_db(last_stable_hz, config)


# ---------------------------------------------------------------------------
# Loudness helpers
# ---------------------------------------------------------------------------


def rms(samples: np.ndarray) -> float:
    x = np.asarray(samples, dtype=np.float64)
    if x.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(x * x)))


def amplitude_to_db(amplitude: float) -> float:
    """20·log₁₀(amplitude); −inf for zero."""
    if amplitude <= 0.0:
        return -math.inf
    return 20.0 * math.log10(amplitude)


def loudness_db(samples: np.ndarray) -> float:
    """RMS level of a buffer in dBFS. Digital silence gives −inf."""
    return amplitude_to_db(rms(samples))


class LoudnessMeter:
    """Exponentially smoothed RMS meter reporting dBFS.

    Smoothing happens on the linear RMS value:
        level = smoothing · level + (1 − smoothing) · rms(frame)

    A smoothing of 0 reports the instantaneous level. One meter per session;
    it is not shared between sessions.
    """

    def __init__(self, smoothing: float = 0.8) -> None:
        if not 0.0 <= smoothing < 1.0:
            raise ValueError(f"smoothing must be in [0, 1), got {smoothing}")
        self.smoothing = smoothing
        self._level = 0.0

    def update(self, samples: np.ndarray) -> float:
        """Fold one buffer into the meter and return the level in dB."""
        self._level = self.smoothing * self._level + (1.0 - self.smoothing) * rms(samples)
        return amplitude_to_db(self._level)

    @property
    def value_db(self) -> float:
        return amplitude_to_db(self._level)

    def reset(self) -> None:
        self._level = 0.0
