"""Tests for core/tuner/tone.py and core/tuner/filters.py."""

from __future__ import annotations

import io

import numpy as np
import pytest
from scipy.io import wavfile

from core.tuner.config import DEFAULT_CONFIG, TunerConfig
from core.tuner.filters import analysis_band, bandpass, prefilter_frame
from core.tuner.pitch import estimate_pitch
from core.tuner.references import STANDARD_TUNING
from core.tuner.tone import Envelope, render_reference_tone, to_wav_bytes, triangle_partials

SR = 44100

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_sine(freq_hz: float, n: int = 16384, sr: int = SR) -> np.ndarray:
    t = np.arange(n, dtype=np.float64) / sr
    return np.sin(2.0 * np.pi * freq_hz * t)


def _rms(x: np.ndarray) -> float:
    return float(np.sqrt(np.mean(x * x)))


# ---------------------------------------------------------------------------
# Reference tones
# ---------------------------------------------------------------------------


class TestEnvelope:
    def test_length_is_hold_plus_release(self) -> None:
        env = Envelope().render(hold_sec=1.0, sample_rate=1000)
        assert env.size == 1000 + 2000

    def test_shape(self) -> None:
        env = Envelope().render(hold_sec=1.0, sample_rate=1000)
        assert env[0] == 0.0
        assert env.max() == pytest.approx(1.0)
        assert env[500] == pytest.approx(0.3)
        assert env[-1] == 0.0

    def test_short_hold_releases_from_current_level(self) -> None:
        env = Envelope().render(hold_sec=0.002, sample_rate=1000)
        assert env[2] <= env[1]
        assert env[-1] == 0.0


class TestTrianglePartials:
    def test_odd_harmonics_only(self) -> None:
        amps = triangle_partials(8)
        assert np.all(amps[1::2] == 0.0)

    def test_alternating_inverse_square(self) -> None:
        amps = triangle_partials(8)
        assert amps[0] == pytest.approx(8.0 / np.pi**2)
        assert amps[2] == pytest.approx(-amps[0] / 9.0)
        assert amps[4] == pytest.approx(amps[0] / 25.0)


class TestRenderReferenceTone:
    def test_length_and_peak(self) -> None:
        y = render_reference_tone("A2", sample_rate=SR, hold_sec=1.0)
        assert y.size == 3 * SR
        assert np.max(np.abs(y)) == pytest.approx(0.8)

    @pytest.mark.parametrize("ref", STANDARD_TUNING, ids=lambda r: r.name)
    def test_tone_pitch_matches_reference(self, ref) -> None:
        y = render_reference_tone(ref.name, sample_rate=SR, hold_sec=1.0)
        # Sustain portion: past attack/decay, before release.
        sustain = y[8192 : 8192 + 16384]
        assert estimate_pitch(sustain, SR) == pytest.approx(ref.frequency_hz, abs=0.5)

    def test_accepts_reference_object(self) -> None:
        y = render_reference_tone(STANDARD_TUNING[0], sample_rate=8000, hold_sec=0.5)
        assert y.size == 8000 // 2 + 2 * 8000

    def test_unknown_note(self) -> None:
        with pytest.raises(KeyError):
            render_reference_tone("C9")

    @pytest.mark.parametrize(
        "kwargs",
        [{"amplitude": 0.0}, {"amplitude": 1.5}, {"sample_rate": 0}, {"hold_sec": 0.0}],
    )
    def test_invalid_arguments(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            render_reference_tone("E2", **kwargs)

    def test_wav_bytes_round_trip_header(self) -> None:
        y = render_reference_tone("E4", sample_rate=8000, hold_sec=0.25)
        data = to_wav_bytes(y, 8000)
        assert data[:4] == b"RIFF"
        sr, pcm = wavfile.read(io.BytesIO(data))
        assert sr == 8000
        assert pcm.dtype == np.int16
        assert pcm.size == y.size

    def test_wav_clips_out_of_range(self) -> None:
        data = to_wav_bytes(np.array([2.0, -2.0, 0.0]), 8000)
        _, pcm = wavfile.read(io.BytesIO(data))
        assert pcm.tolist() == [32767, -32767, 0]


# ---------------------------------------------------------------------------
# Band-pass pre-filter
# ---------------------------------------------------------------------------


class TestBandpass:
    def test_default_band(self) -> None:
        assert analysis_band(DEFAULT_CONFIG) == pytest.approx((56.0, 700.0))

    def test_band_follows_detection_range(self) -> None:
        low, high = analysis_band(TunerConfig(min_detect_hz=100.0, max_detect_hz=200.0))
        assert (low, high) == pytest.approx((80.0, 400.0))

    def test_passes_open_strings(self) -> None:
        x = _make_sine(110.0)
        y = bandpass(x, SR, 56.0, 700.0)
        assert y.size == x.size
        assert _rms(y[2048:-2048]) / _rms(x[2048:-2048]) > 0.9

    def test_rejects_rumble_and_hiss(self) -> None:
        for freq in (10.0, 5000.0):
            x = _make_sine(freq)
            y = bandpass(x, SR, 56.0, 700.0)
            assert _rms(y[2048:-2048]) / _rms(x[2048:-2048]) < 0.1

    def test_input_not_modified(self) -> None:
        x = _make_sine(110.0)
        original = x.copy()
        prefilter_frame(x, SR)
        assert np.array_equal(x, original)

    def test_invalid_band(self) -> None:
        with pytest.raises(ValueError, match="low_hz"):
            bandpass(np.zeros(64), SR, 700.0, 56.0)
