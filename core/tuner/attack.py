"""
core/tuner/attack.py — Pick-attack (transient) detection.

The first ~100 ms of a plucked string are loud and harmonically unstable;
estimates taken there jump around before the fundamental settles. An attack
is a sudden loudness rise above an absolute level, debounced so one pluck
registers once.
"""

from __future__ import annotations

from core.tuner.config import DEFAULT_CONFIG, TunerConfig
from core.tuner.state import TuningState


class AttackDetector:
    """Loudness-jump transient detector.

    Writes only ``last_loudness``, ``last_attack_ms`` and ``attack_count``
    on the session state. Resetting the stability fields after an attack is
    the StabilityTracker's job (see ``StabilityTracker.restart``).
    """

    def __init__(self, config: TunerConfig = DEFAULT_CONFIG) -> None:
        self.config = config

    def update(self, state: TuningState, loudness_db: float, now_ms: float) -> bool:
        """Fold one loudness reading in; return True when a new attack starts.

        A new attack requires all of:
            loudness − last_loudness > attack_delta_db
            loudness > attack_volume_threshold_db
            more than attack_debounce_ms since the previous attack
        """
        delta = loudness_db - state.last_loudness
        state.last_loudness = loudness_db

        if not (delta > self.config.attack_delta_db):
            return False
        if not (loudness_db > self.config.attack_volume_threshold_db):
            return False
        if (
            state.last_attack_ms is not None
            and now_ms - state.last_attack_ms <= self.config.attack_debounce_ms
        ):
            return False

        state.last_attack_ms = now_ms
        state.attack_count += 1
        return True

    def in_attack(self, state: TuningState, now_ms: float) -> bool:
        """True while inside the suppression window of the latest attack."""
        if state.last_attack_ms is None:
            return False
        return now_ms - state.last_attack_ms <= self.config.attack_ignore_ms
