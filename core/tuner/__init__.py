"""
core/tuner — Real-time guitar tuning engine.

Turns a stream of (SampleFrame, loudness_db) pairs into one
TuningObservation per frame: detected pitch, nearest open string, cents
offset and a tuned/flat/sharp status. Pure computation: no audio devices,
no I/O. Capture and presentation live outside this package.

Architecture note:
    numpy and scipy are used as DSP-pure libraries (no I/O, no side
    effects). All per-session memory is an explicit TuningState owned by
    the caller; TunerEngine itself only holds config.

Public API:
    Types:      SampleFrame, TuningObservation, TuningStatus, ReferencePitch,
                InvalidInputError
    Config:     TunerConfig, DEFAULT_CONFIG
    Engine:     TunerEngine, TuningState
    Pitch:      estimate_pitch
    Mapping:    STANDARD_TUNING, cents, find_closest_reference
"""

from core.tuner.config import DEFAULT_CONFIG, TunerConfig
from core.tuner.engine import TunerEngine
from core.tuner.pitch import estimate_pitch
from core.tuner.references import STANDARD_TUNING, cents, find_closest_reference
from core.tuner.state import TuningState
from core.tuner.types import (
    InvalidInputError,
    ReferencePitch,
    SampleFrame,
    TuningObservation,
    TuningStatus,
)

__all__ = [
    "DEFAULT_CONFIG",
    "STANDARD_TUNING",
    "InvalidInputError",
    "ReferencePitch",
    "SampleFrame",
    "TunerConfig",
    "TunerEngine",
    "TuningObservation",
    "TuningState",
    "TuningStatus",
    "cents",
    "estimate_pitch",
    "find_closest_reference",
]
