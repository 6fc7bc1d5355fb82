"""Tests for core/tuner/types.py — frame validation and value objects."""

from __future__ import annotations

import dataclasses
import math

import numpy as np
import pytest

from core.tuner.types import (
    InvalidInputError,
    ReferencePitch,
    SampleFrame,
    TuningObservation,
    TuningStatus,
    validate_loudness,
)


class TestSampleFrame:
    def test_accepts_power_of_two_length(self) -> None:
        frame = SampleFrame(np.zeros(1024), 44100)
        assert len(frame) == 1024

    def test_stores_float64_copy(self) -> None:
        raw = np.ones(8, dtype=np.float32)
        frame = SampleFrame(raw, 8000)
        raw[0] = 5.0
        assert frame.samples.dtype == np.float64
        assert frame.samples[0] == 1.0

    def test_samples_are_read_only(self) -> None:
        frame = SampleFrame(np.zeros(8), 8000)
        with pytest.raises(ValueError):
            frame.samples[0] = 1.0

    def test_accepts_plain_list(self) -> None:
        frame = SampleFrame([0.0, 0.5, -0.5, 0.0], 8000)
        assert frame.samples.tolist() == [0.0, 0.5, -0.5, 0.0]

    @pytest.mark.parametrize("n", [0, 3, 1000, 16383])
    def test_rejects_non_power_of_two(self, n: int) -> None:
        with pytest.raises(InvalidInputError, match="power of two"):
            SampleFrame(np.zeros(n), 44100)

    def test_rejects_nan_sample(self) -> None:
        x = np.zeros(16)
        x[3] = np.nan
        with pytest.raises(InvalidInputError, match="non-finite"):
            SampleFrame(x, 44100)

    def test_rejects_inf_sample(self) -> None:
        x = np.zeros(16)
        x[0] = np.inf
        with pytest.raises(InvalidInputError):
            SampleFrame(x, 44100)

    def test_rejects_two_dimensional(self) -> None:
        with pytest.raises(InvalidInputError, match="one-dimensional"):
            SampleFrame(np.zeros((2, 8)), 44100)

    @pytest.mark.parametrize("rate", [0, -44100, math.nan, math.inf])
    def test_rejects_non_positive_rate(self, rate: float) -> None:
        with pytest.raises(InvalidInputError, match="sample_rate_hz"):
            SampleFrame(np.zeros(8), rate)

    def test_invalid_input_is_value_error(self) -> None:
        assert issubclass(InvalidInputError, ValueError)

    def test_duration_ms(self) -> None:
        frame = SampleFrame(np.zeros(16384), 44100)
        assert frame.duration_ms == pytest.approx(371.52, abs=0.01)

    def test_frozen(self) -> None:
        frame = SampleFrame(np.zeros(8), 8000)
        with pytest.raises(dataclasses.FrozenInstanceError):
            frame.sample_rate_hz = 16000  # type: ignore[misc]


class TestValidateLoudness:
    def test_finite_passes_through(self) -> None:
        assert validate_loudness(-42) == -42.0

    def test_negative_infinity_is_silence(self) -> None:
        assert validate_loudness(-math.inf) == -math.inf

    def test_nan_rejected(self) -> None:
        with pytest.raises(InvalidInputError):
            validate_loudness(math.nan)

    def test_positive_infinity_rejected(self) -> None:
        with pytest.raises(InvalidInputError):
            validate_loudness(math.inf)

    @pytest.mark.parametrize("value", ["loud", None, [1.0]])
    def test_non_numeric_rejected(self, value: object) -> None:
        with pytest.raises(InvalidInputError, match="numeric"):
            validate_loudness(value)  # type: ignore[arg-type]


class TestValueObjects:
    def test_status_values_are_wire_strings(self) -> None:
        assert TuningStatus.ALMOST_TUNED.value == "almost-tuned"
        assert TuningStatus.VERY_FLAT.value == "very-flat"
        assert TuningStatus("waiting") is TuningStatus.WAITING

    def test_reference_pitch_is_hashable(self) -> None:
        assert len({ReferencePitch("A2", 110.0), ReferencePitch("A2", 110.0)}) == 1

    def test_observation_is_tuned(self) -> None:
        obs = TuningObservation(TuningStatus.TUNED, "A2", 110.0, 0, 100, False)
        assert obs.is_tuned
        idle = TuningObservation(TuningStatus.WAITING, None, 0.0, 0, 0, False)
        assert not idle.is_tuned
