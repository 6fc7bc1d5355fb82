"""
core/tuner/filters.py — Optional band-pass pre-filter for analysis frames.

Attenuates rumble below the low E and upper partials above the second
harmonic of the high E before pitch estimation. Disabled by default
(``TunerConfig.prefilter``); the estimator works on raw buffers.
"""

from __future__ import annotations

import numpy as np
from scipy import signal as scipy_signal

from core.tuner.config import DEFAULT_CONFIG, TunerConfig

DEFAULT_ORDER: int = 4
"""Order 4 → 24 dB/octave skirts."""


def analysis_band(config: TunerConfig = DEFAULT_CONFIG) -> tuple[float, float]:
    """Pass band (low_hz, high_hz) derived from the detection range."""
    return config.min_detect_hz * 0.8, config.max_detect_hz * 2.0


def bandpass(
    samples: np.ndarray,
    sample_rate: int,
    low_hz: float,
    high_hz: float,
    *,
    order: int = DEFAULT_ORDER,
) -> np.ndarray:
    """Zero-phase Butterworth band-pass.

    Zero-phase filtering (sosfiltfilt) leaves the waveform period intact.
    Returns a new float64 array; the input is not modified.

    Raises:
        ValueError: low_hz/high_hz are not 0 < low < high.
    """
    if not 0.0 < low_hz < high_hz:
        raise ValueError(f"Expected 0 < low_hz < high_hz, got {low_hz}, {high_hz}")
    x = np.asarray(samples, dtype=np.float64)
    if x.size == 0:
        return x.copy()

    nyquist = 0.5 * sample_rate
    band = [min(max(low_hz / nyquist, 1e-4), 0.998), min(max(high_hz / nyquist, 1e-4), 0.999)]
    sos = scipy_signal.butter(order, band, btype="bandpass", output="sos")
    return scipy_signal.sosfiltfilt(sos, x)


def prefilter_frame(
    samples: np.ndarray, sample_rate: int, config: TunerConfig = DEFAULT_CONFIG
) -> np.ndarray:
    low, high = analysis_band(config)
    return bandpass(samples, sample_rate, low, high)
