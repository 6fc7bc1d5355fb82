"""
core/tuner/stability.py — Smoothing and hysteresis over accepted estimates.

A raw estimate is first folded into the weighted moving average held in
``TuningState.history``. The smoothed value then drives a small hysteresis
policy around ``last_stable_frequency``:

    |s − stable| < tol               → stable_counter += 1
    stable == 0 or |s − stable| > 3·tol
                                     → new candidate: stable = s, counter = 0
                                       (> 50 cents from the old stable value:
                                        also a note change, history cleared)
    otherwise                        → stable blended 90/10 toward s,
                                       counter −= 1 (floored at 0)

    tol = max(min_tolerance_hz, stable × tolerance_ratio)

Confidence is gained one frame at a time and lost by ``confidence_decay``
on a moderate deviation; the two rates are configured independently.

A frequency is committed once the counter reaches ``stability_threshold``
and the last note change is older than the attack suppression window.
"""

from __future__ import annotations

from core.tuner.config import DEFAULT_CONFIG, TunerConfig
from core.tuner.references import cents_distance
from core.tuner.state import TuningState


class StabilityTracker:
    """Owns ``last_stable_frequency``, ``stable_counter``,
    ``last_note_change_ms`` and ``history`` on the session state."""

    def __init__(self, config: TunerConfig = DEFAULT_CONFIG) -> None:
        self.config = config

    # -- smoothing ---------------------------------------------------------

    def smooth(self, state: TuningState, frequency_hz: float, now_ms: float) -> float:
        """Append the raw estimate to the history and return the weighted mean.

        With fewer than two readings in the window the raw value is returned.
        """
        state.history.add(frequency_hz, now_ms)
        mean = state.history.weighted_mean(now_ms)
        return frequency_hz if mean is None else mean

    # -- hysteresis --------------------------------------------------------

    def tolerance(self, stable_hz: float) -> float:
        return max(self.config.min_tolerance_hz, stable_hz * self.config.tolerance_ratio)

    def update(self, state: TuningState, smoothed_hz: float, now_ms: float) -> None:
        """Apply the hysteresis policy to one smoothed estimate."""
        previous = state.last_stable_frequency
        tolerance = self.tolerance(previous)
        deviation = abs(smoothed_hz - previous)

        if deviation < tolerance:
            state.stable_counter += 1
            return

        if previous == 0.0 or deviation > self.config.jump_factor * tolerance:
            state.last_stable_frequency = smoothed_hz
            state.stable_counter = 0
            if previous > 0.0 and abs(cents_distance(smoothed_hz, previous)) > self.config.new_note_cents:
                self.mark_note_change(state, now_ms)
            return

        blend = self.config.blend_weight
        state.last_stable_frequency = (1.0 - blend) * previous + blend * smoothed_hz
        state.stable_counter = max(0, state.stable_counter - self.config.confidence_decay)

    def observe(self, state: TuningState, frequency_hz: float, now_ms: float) -> float:
        """Smooth then update; returns the smoothed frequency."""
        smoothed = self.smooth(state, frequency_hz, now_ms)
        self.update(state, smoothed, now_ms)
        return smoothed

    def decay(self, state: TuningState) -> None:
        """One frame without a usable estimate: lose one frame of confidence."""
        state.stable_counter = max(0, state.stable_counter - 1)

    # -- resets ------------------------------------------------------------

    def mark_note_change(self, state: TuningState, now_ms: float) -> None:
        state.history.clear()
        state.last_note_change_ms = now_ms

    def restart(self, state: TuningState, now_ms: float) -> None:
        """Forget the current pitch after a new pick attack."""
        state.stable_counter = 0
        state.last_stable_frequency = 0.0
        self.mark_note_change(state, now_ms)

    # -- commit ------------------------------------------------------------

    def is_committed(self, state: TuningState, now_ms: float) -> bool:
        if state.stable_counter < self.config.stability_threshold:
            return False
        if state.last_note_change_ms is None:
            return True
        return now_ms - state.last_note_change_ms > self.config.attack_ignore_ms
