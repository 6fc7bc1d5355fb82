"""
Configuration dataclass for the tuning engine.

One immutable TunerConfig is shared by every pipeline stage. Sessions that
need different sensitivity get their own instance; nothing reads module
globals at frame time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace

from dotenv import load_dotenv


@dataclass(frozen=True)
class TunerConfig:
    """
    Parameters for pitch estimation, gating, attack handling and classification.

    Attributes:
        cents_precision: Maximum |cents| reported as ``tuned``.
        almost_tuned_threshold: Maximum |cents| reported as ``almost-tuned``.
        analysis_size: Expected frame length in samples (power of two).
            Larger buffers resolve low strings better but cost more per frame.
        base_volume_threshold_db: Gate threshold before frequency relaxation.
        stability_threshold: Consecutive consistent frames before a
            frequency is committed.
        threshold: Normalized difference value a local minimum must fall
            below to be accepted as the period.
        min_detect_hz: Lowest detectable fundamental.
        max_detect_hz: Highest detectable fundamental.
        moving_average_window_ms: Maximum age of a smoothing-history entry.
        moving_average_max_readings: Maximum smoothing-history length.
        attack_ignore_ms: Suppression window after an attack or note change.
        attack_volume_threshold_db: Minimum loudness for an attack.
        attack_debounce_ms: Minimum spacing between two attacks.
        attack_delta_db: Loudness rise (frame to frame) that marks an attack.
        fallback_ratio: Global-minimum leniency. When no local minimum clears
            ``threshold``, the global minimum is still accepted if it is at
            most ``threshold * fallback_ratio``.
        blend_weight: Share of a moderately deviating estimate blended into
            the stable frequency.
        confidence_decay: Frames of stability lost on a moderate deviation.
            Confidence is gained one frame at a time regardless of this value.
        min_tolerance_hz: Floor of the hysteresis tolerance.
        tolerance_ratio: Hysteresis tolerance relative to the stable frequency.
        jump_factor: Multiple of the tolerance beyond which an estimate is a
            new candidate pitch.
        new_note_cents: Jump size that counts as a note change.
        match_limit_cents: A reference matches only strictly below this distance.
        prefilter: Band-pass the frame around the guitar range before analysis.

    Example:
        >>> config = TunerConfig(stability_threshold=3, cents_precision=5)
        >>> engine = TunerEngine(config)
    """

    cents_precision: int = 3
    almost_tuned_threshold: int = 8
    analysis_size: int = 16384
    base_volume_threshold_db: float = -52.0
    stability_threshold: int = 5
    threshold: float = 0.10
    min_detect_hz: float = 70.0
    max_detect_hz: float = 350.0
    moving_average_window_ms: float = 500.0
    moving_average_max_readings: int = 10
    attack_ignore_ms: float = 120.0
    attack_volume_threshold_db: float = -35.0
    attack_debounce_ms: float = 300.0
    attack_delta_db: float = 8.0
    fallback_ratio: float = 1.2
    blend_weight: float = 0.1
    confidence_decay: int = 1
    min_tolerance_hz: float = 0.5
    tolerance_ratio: float = 0.015
    jump_factor: float = 3.0
    new_note_cents: float = 50.0
    match_limit_cents: float = 100.0
    prefilter: bool = False

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.analysis_size <= 0 or self.analysis_size & (self.analysis_size - 1):
            raise ValueError(f"analysis_size must be a power of two, got {self.analysis_size}")
        if self.cents_precision < 0:
            raise ValueError(f"cents_precision must be non-negative, got {self.cents_precision}")
        if self.almost_tuned_threshold < self.cents_precision:
            raise ValueError(
                f"almost_tuned_threshold ({self.almost_tuned_threshold}) must be >= "
                f"cents_precision ({self.cents_precision})"
            )
        if self.min_detect_hz <= 0:
            raise ValueError(f"min_detect_hz must be positive, got {self.min_detect_hz}")
        if self.max_detect_hz <= self.min_detect_hz:
            raise ValueError(
                f"max_detect_hz ({self.max_detect_hz}) must be greater than "
                f"min_detect_hz ({self.min_detect_hz})"
            )
        if not 0.0 < self.threshold < 1.0:
            raise ValueError(f"threshold must be in (0, 1), got {self.threshold}")
        if self.fallback_ratio < 1.0:
            raise ValueError(f"fallback_ratio must be >= 1, got {self.fallback_ratio}")
        if self.stability_threshold < 1:
            raise ValueError(f"stability_threshold must be >= 1, got {self.stability_threshold}")
        if self.moving_average_window_ms <= 0:
            raise ValueError(
                f"moving_average_window_ms must be positive, got {self.moving_average_window_ms}"
            )
        if self.moving_average_max_readings < 1:
            raise ValueError(
                "moving_average_max_readings must be >= 1, "
                f"got {self.moving_average_max_readings}"
            )
        if not 0.0 <= self.blend_weight <= 1.0:
            raise ValueError(f"blend_weight must be in [0, 1], got {self.blend_weight}")
        if self.confidence_decay < 0:
            raise ValueError(f"confidence_decay must be non-negative, got {self.confidence_decay}")
        if self.jump_factor < 1.0:
            raise ValueError(f"jump_factor must be >= 1, got {self.jump_factor}")
        for name in ("attack_ignore_ms", "attack_debounce_ms", "min_tolerance_hz"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")

    def with_overrides(self, **overrides: object) -> TunerConfig:
        """Return a copy with the given fields replaced (validated again)."""
        return replace(self, **overrides)

    @classmethod
    def from_env(cls, prefix: str = "TUNER_") -> TunerConfig:
        """Build a config from ``TUNER_<FIELD>`` environment variables.

        Reads a ``.env`` file first when present. Unset variables keep the
        dataclass default.

        Raises:
            ValueError: A variable cannot be parsed for its field type, or
                the resulting config is inconsistent.
        """
        load_dotenv()
        overrides: dict[str, object] = {}
        for f in fields(cls):
            raw = os.environ.get(f"{prefix}{f.name.upper()}")
            if raw is None:
                continue
            overrides[f.name] = _parse_field(f.name, f.type, raw)
        return cls(**overrides)


def _parse_field(name: str, type_name: object, raw: str) -> object:
    # Annotations are strings under ``from __future__ import annotations``.
    kind = type_name if isinstance(type_name, str) else getattr(type_name, "__name__", "")
    try:
        if kind == "bool":
            return raw.strip().lower() in {"1", "true", "yes", "on"}
        if kind == "int":
            return int(raw)
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from exc


DEFAULT_CONFIG = TunerConfig()
"""Default configuration tuned for an acoustic guitar at 44.1/48 kHz."""

RESPONSIVE_CONFIG = TunerConfig(analysis_size=8192, stability_threshold=3)
"""Shorter buffer and stability run: lower latency, weaker on the low E."""
