"""
core/tuner/tone.py — Reference-tone synthesis for tuning by ear.

Shares only the reference table with the tuning pipeline. Produces a
plucked-sounding tone: an 8-partial triangle waveform shaped by an ADSR
envelope (5 ms attack, 100 ms decay, 0.3 sustain, 2 s release).

Playback is the caller's concern; this module returns samples (or WAV bytes)
and never touches an audio device.

Usage:
    from core.tuner.tone import render_reference_tone, to_wav_bytes
    y = render_reference_tone("A2", sample_rate=44100)
    wav = to_wav_bytes(y, 44100)
"""

from __future__ import annotations

import io
from dataclasses import dataclass

import numpy as np
from scipy.io import wavfile

from core.tuner.references import STANDARD_TUNING, reference_by_name
from core.tuner.types import ReferencePitch

TRIANGLE_PARTIALS: int = 8


@dataclass(frozen=True)
class Envelope:
    """ADSR envelope, times in seconds, sustain as a level in [0, 1]."""

    attack: float = 0.005
    decay: float = 0.1
    sustain: float = 0.3
    release: float = 2.0

    def render(self, hold_sec: float, sample_rate: int) -> np.ndarray:
        """Envelope for a note held ``hold_sec`` then released."""
        n_hold = max(1, int(round(hold_sec * sample_rate)))
        n_attack = max(1, int(round(self.attack * sample_rate)))
        n_decay = max(1, int(round(self.decay * sample_rate)))
        n_release = max(1, int(round(self.release * sample_rate)))

        attack = np.linspace(0.0, 1.0, n_attack, endpoint=False)
        decay = np.linspace(1.0, self.sustain, n_decay, endpoint=False)
        held = np.concatenate((attack, decay))
        if held.size < n_hold:
            held = np.concatenate((held, np.full(n_hold - held.size, self.sustain)))
        held = held[:n_hold]

        # Release starts from wherever the gate closed.
        release = np.linspace(held[-1], 0.0, n_release)
        return np.concatenate((held, release))


def triangle_partials(n_partials: int = TRIANGLE_PARTIALS) -> np.ndarray:
    """Amplitudes of harmonics 1..n of a band-limited triangle wave.

    Odd harmonics only, alternating sign, falling off as 1/k².
    """
    k = np.arange(1, n_partials + 1)
    amps = np.zeros(n_partials, dtype=np.float64)
    odd = k % 2 == 1
    signs = np.where(((k - 1) // 2) % 2 == 0, 1.0, -1.0)
    amps[odd] = signs[odd] / (k[odd] ** 2)
    return amps * 8.0 / np.pi**2


def render_reference_tone(
    note: str | ReferencePitch,
    *,
    sample_rate: int = 44100,
    hold_sec: float = 1.0,
    amplitude: float = 0.8,
    envelope: Envelope | None = None,
    references: tuple[ReferencePitch, ...] = STANDARD_TUNING,
) -> np.ndarray:
    """Render the reference tone for one string.

    Args:
        note: Reference name ('E2' … 'E4') or a ReferencePitch.
        sample_rate: Output sample rate in Hz.
        hold_sec: Time the note is held before release.
        amplitude: Peak amplitude of the output, in (0, 1].
        envelope: ADSR override.
        references: Table used to resolve a note name.

    Returns:
        float64 samples of length (hold_sec + release) × sample_rate.

    Raises:
        KeyError: Unknown note name.
        ValueError: Non-positive sample_rate/hold_sec or amplitude out of range.
    """
    if sample_rate <= 0 or hold_sec <= 0:
        raise ValueError(f"sample_rate and hold_sec must be positive, got {sample_rate}, {hold_sec}")
    if not 0.0 < amplitude <= 1.0:
        raise ValueError(f"amplitude must be in (0, 1], got {amplitude}")

    ref = note if isinstance(note, ReferencePitch) else reference_by_name(note, references)
    env = (envelope or Envelope()).render(hold_sec, sample_rate)

    t = np.arange(env.size, dtype=np.float64) / sample_rate
    wave = np.zeros_like(t)
    nyquist = 0.5 * sample_rate
    for harmonic, amp in enumerate(triangle_partials(), start=1):
        if amp == 0.0 or harmonic * ref.frequency_hz >= nyquist:
            continue
        wave += amp * np.sin(2.0 * np.pi * harmonic * ref.frequency_hz * t)

    y = wave * env
    peak = float(np.max(np.abs(y)))
    if peak > 0.0:
        y *= amplitude / peak
    return y


def to_wav_bytes(samples: np.ndarray, sample_rate: int) -> bytes:
    """Encode float samples in [-1, 1] as 16-bit PCM WAV bytes."""
    pcm = (np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0) * 32767.0).astype(np.int16)
    buffer = io.BytesIO()
    wavfile.write(buffer, sample_rate, pcm)
    return buffer.getvalue()
