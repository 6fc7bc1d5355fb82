"""
core/tuner/pitch.py — Fundamental-frequency estimation for a single frame.

Time-domain difference-function estimator (YIN family):

    1. Hann window the buffer to suppress edge artifacts.
    2. Squared-difference function d(τ) over the first half of the buffer.
    3. Cumulative-mean normalization: d'(τ) = τ·d(τ) / Σ_{j≤τ} d(j), d'(0) = 1.
    4. First strict local minimum of d' below the threshold inside the
       period search window; otherwise the global minimum, if it is within
       ``fallback_ratio`` of the threshold.
    5. Parabolic interpolation for sub-sample period resolution.
    6. Period → frequency, with a final range check.

d(τ) is computed as  E(0) + E(τ) − 2·r(τ)  where E are sliding energies
(prefix sums) and r is the cross-correlation of the first half against the
whole buffer (one FFT pair). This equals the direct double loop
Σ_i (x[i] − x[i+τ])² but costs O(N log N) instead of O(N × N/2), which is
what keeps a 16384-sample frame inside one capture tick.

Usage:
    from core.tuner.pitch import estimate_pitch
    hz = estimate_pitch(frame.samples, frame.sample_rate_hz)   # 0.0 = no pitch
"""

from __future__ import annotations

import math

import numpy as np

from core.tuner.config import DEFAULT_CONFIG, TunerConfig

NO_PITCH: float = 0.0
"""Sentinel returned when no fundamental was found."""

_INTERPOLATION_EPS: float = 1e-4
"""Parabolic interpolation is skipped when |denominator| is at or below this."""


# ---------------------------------------------------------------------------
# Search window
# ---------------------------------------------------------------------------


def period_bounds(n_samples: int, sample_rate: int, config: TunerConfig = DEFAULT_CONFIG) -> tuple[int, int]:
    """Return (min_period, max_period) in samples for the configured range.

    min_period = max(2, floor(rate / max_detect_hz))
    max_period = min(N/2 − 1, floor(rate / min_detect_hz))

    The result may be empty (min > max) when the buffer is too short to hold
    two periods of the lowest frequency.
    """
    half = n_samples // 2
    min_period = max(2, int(math.floor(sample_rate / config.max_detect_hz)))
    max_period = min(half - 1, int(math.floor(sample_rate / config.min_detect_hz)))
    return min_period, max_period


# ---------------------------------------------------------------------------
# Difference function
# ---------------------------------------------------------------------------


def hann_window(n: int) -> np.ndarray:
    """Periodic Hann window: 0.5 · (1 − cos(2πi / n))."""
    i = np.arange(n, dtype=np.float64)
    return 0.5 * (1.0 - np.cos(2.0 * np.pi * i / n))


def difference_function(x: np.ndarray) -> np.ndarray:
    """Squared-difference function over the first half of ``x``.

    Returns an array d of length N//2 with
        d[τ] = Σ_{i < N/2} (x[i] − x[i + τ])²

    Small negative values from floating-point cancellation are clipped to 0.
    """
    n = x.size
    half = n // 2
    if half == 0:
        return np.zeros(0, dtype=np.float64)

    squares = x * x
    prefix = np.concatenate(([0.0], np.cumsum(squares)))
    energy_head = prefix[half]
    taus = np.arange(half)
    energy_shifted = prefix[taus + half] - prefix[taus]

    n_fft = 1 << int(math.ceil(math.log2(n + half)))
    head_spec = np.fft.rfft(x[:half], n_fft)
    full_spec = np.fft.rfft(x, n_fft)
    cross = np.fft.irfft(np.conj(head_spec) * full_spec, n_fft)[:half]

    d = energy_head + energy_shifted - 2.0 * cross
    return np.maximum(d, 0.0)


def cumulative_mean_normalized(d: np.ndarray) -> np.ndarray:
    """d'(τ) = τ·d(τ) / running_sum(τ), with d'(0) = 1.

    Where the running sum is zero (a flat, silent prefix) the value is
    forced to 1, a "poor match", instead of dividing by zero.
    """
    normalized = np.ones_like(d)
    if d.size <= 1:
        return normalized
    running = np.cumsum(d[1:])
    flat = running == 0.0
    taus = np.arange(1, d.size, dtype=np.float64)
    normalized[1:] = np.where(flat, 1.0, taus * d[1:] / np.where(flat, 1.0, running))
    return normalized


# ---------------------------------------------------------------------------
# Period selection
# ---------------------------------------------------------------------------


def select_period(
    dprime: np.ndarray,
    min_period: int,
    max_period: int,
    *,
    threshold: float,
    fallback_ratio: float,
) -> int:
    """Pick the integer period from the normalized difference function.

    Prefers the first strict local minimum (lower than both neighbours)
    below ``threshold``. Without one, the global minimum of the window is
    accepted when it is at most ``threshold * fallback_ratio``.

    Returns:
        The chosen period, or 0 when no acceptable minimum exists.
    """
    if max_period < min_period:
        return 0

    # Local minima need both neighbours: τ in (min_period, len − 1).
    last = min(max_period, dprime.size - 2)
    if last > min_period:
        taus = np.arange(min_period + 1, last + 1)
        values = dprime[taus]
        is_dip = (
            (values < threshold)
            & (values < dprime[taus - 1])
            & (values < dprime[taus + 1])
        )
        if is_dip.any():
            return int(taus[int(np.argmax(is_dip))])

    window = dprime[min_period : max_period + 1]
    offset = int(np.argmin(window))
    best_value = float(window[offset])
    # Values at or above 1 mean "no better than a random lag".
    if best_value >= 1.0 or best_value > threshold * fallback_ratio:
        return 0
    return min_period + offset


def refine_period(dprime: np.ndarray, period: int) -> float:
    """Parabolic interpolation around ``period``.

    Applied only when the denominator is not near zero and the adjustment
    is smaller than one sample; otherwise the integer period is returned.
    """
    if period <= 0 or period >= dprime.size - 1:
        return float(period)
    y1 = float(dprime[period - 1])
    y2 = float(dprime[period])
    y3 = float(dprime[period + 1])
    denominator = 2.0 * (2.0 * y2 - y1 - y3)
    if abs(denominator) <= _INTERPOLATION_EPS:
        return float(period)
    adjustment = (y3 - y1) / denominator
    if abs(adjustment) >= 1.0:
        return float(period)
    return period + adjustment


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def estimate_pitch(
    samples: np.ndarray,
    sample_rate: int,
    config: TunerConfig = DEFAULT_CONFIG,
) -> float:
    """Estimate the fundamental frequency of one buffer.

    Pure and deterministic in (samples, sample_rate, config).

    Args:
        samples: Mono waveform. Length should be a power of two; shorter
            buffers narrow the detectable range at the low end.
        sample_rate: Sample rate in Hz.
        config: Detection range, threshold and fallback policy.

    Returns:
        Frequency in Hz, or NO_PITCH (0.0) when nothing periodic was found
        or the estimate falls outside
        [min_detect_hz × 0.95, max_detect_hz × 1.05].
    """
    x = np.asarray(samples, dtype=np.float64)
    n = x.size
    min_period, max_period = period_bounds(n, sample_rate, config)
    if n < 4 or max_period < min_period:
        return NO_PITCH

    windowed = x * hann_window(n)
    dprime = cumulative_mean_normalized(difference_function(windowed))

    period = select_period(
        dprime,
        min_period,
        max_period,
        threshold=config.threshold,
        fallback_ratio=config.fallback_ratio,
    )
    if period <= 0:
        return NO_PITCH

    refined = refine_period(dprime, period)
    if refined <= 0.0:
        return NO_PITCH

    freq = sample_rate / refined
    if config.min_detect_hz * 0.95 <= freq <= config.max_detect_hz * 1.05:
        return float(freq)
    return NO_PITCH
