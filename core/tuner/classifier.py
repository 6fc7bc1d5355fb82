"""
core/tuner/classifier.py — Tuning status and accuracy from a cents offset.

Pure functions, no hidden state: all history lives in the stability tracker.
"""

from __future__ import annotations

from core.tuner.config import DEFAULT_CONFIG, TunerConfig
from core.tuner.types import TuningStatus

VERY_OFF_CENTS: int = 25
"""Beyond ±25 cents the string is reported as very flat / very sharp."""

_IDLE_STATUSES: frozenset[TuningStatus] = frozenset({TuningStatus.WAITING, TuningStatus.ATTACK})

_STATUS_LABELS: dict[TuningStatus, str] = {
    TuningStatus.WAITING: "Waiting...",
    TuningStatus.ATTACK: "Attack detected...",
    TuningStatus.TUNED: "In tune",
    TuningStatus.ALMOST_TUNED: "Almost in tune",
    TuningStatus.FLAT: "Slightly flat",
    TuningStatus.VERY_FLAT: "Too flat",
    TuningStatus.SHARP: "Slightly sharp",
    TuningStatus.VERY_SHARP: "Too sharp",
}


def classify(
    committed: bool,
    in_attack: bool,
    matched: bool,
    cents_offset: int,
    config: TunerConfig = DEFAULT_CONFIG,
) -> TuningStatus:
    """Map one frame's facts to a user-facing status.

    Examples:
        classify(True, False, True, 0)    → TUNED
        classify(True, False, True, -9)   → FLAT
        classify(True, False, True, 30)   → VERY_SHARP
        classify(False, True, False, 0)   → ATTACK
    """
    if not committed or not matched:
        return TuningStatus.ATTACK if in_attack else TuningStatus.WAITING

    magnitude = abs(cents_offset)
    if magnitude <= config.cents_precision:
        return TuningStatus.TUNED
    if magnitude <= config.almost_tuned_threshold:
        return TuningStatus.ALMOST_TUNED
    if cents_offset < 0:
        return TuningStatus.VERY_FLAT if cents_offset < -VERY_OFF_CENTS else TuningStatus.FLAT
    return TuningStatus.VERY_SHARP if cents_offset > VERY_OFF_CENTS else TuningStatus.SHARP


def accuracy_percent(status: TuningStatus, cents_offset: int) -> int:
    """clamp(100 − 2·|cents|, 0, 100); 0 while waiting or in attack."""
    if status in _IDLE_STATUSES:
        return 0
    return max(0, min(100, 100 - 2 * abs(cents_offset)))


def status_label(status: TuningStatus, in_attack: bool = False) -> str:
    """Short English label for a status, as a display would show it."""
    if status is TuningStatus.WAITING and in_attack:
        return _STATUS_LABELS[TuningStatus.ATTACK]
    return _STATUS_LABELS[status]
