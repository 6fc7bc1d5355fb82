"""
ingestion/audio_loader.py — File I/O boundary for offline tuning runs.

This is the ONLY module that reads audio from disk. Everything downstream
(core/tuner/) takes SampleFrame objects — never file paths.

Usage:
    from ingestion.audio_loader import iter_frames, load_audio
    y, sr = load_audio("/path/to/pluck.wav")
    for timestamp_ms, frame, loudness in iter_frames(y, sr, analysis_size=16384):
        ...
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import numpy as np

from core.tuner.gate import loudness_db
from core.tuner.types import SampleFrame

# Supported audio file extensions (must be loadable by librosa / soundfile)
AUDIO_EXTENSIONS: frozenset[str] = frozenset(
    {".mp3", ".wav", ".flac", ".aiff", ".aif", ".ogg", ".m4a", ".opus"}
)

# Default: load only the first N seconds of a take
DEFAULT_DURATION: float = 30.0


def load_audio(
    path: str | Path,
    *,
    duration: float | None = DEFAULT_DURATION,
    sr: int | None = None,
) -> tuple[np.ndarray, int]:
    """Load an audio file as mono and return (y, sr).

    Args:
        path: Absolute or relative path to an audio file.
        duration: Maximum seconds to load. None loads the entire file.
        sr: Target sample rate in Hz. None preserves the native rate.

    Returns:
        (y, sr) — float32 numpy array of audio samples and sample rate.

    Raises:
        FileNotFoundError: File does not exist at the given path.
        ValueError: File extension is not a supported audio format.
        RuntimeError: librosa/soundfile could not decode the file.
    """
    import librosa  # deferred to allow testing without audio backend

    file_path = Path(path)

    if not file_path.exists():
        raise FileNotFoundError(f"Audio file not found: {file_path}")

    if file_path.suffix.lower() not in AUDIO_EXTENSIONS:
        raise ValueError(
            f"Unsupported audio format {file_path.suffix!r}. "
            f"Supported: {sorted(AUDIO_EXTENSIONS)}"
        )

    try:
        y, loaded_sr = librosa.load(file_path, sr=sr, mono=True, duration=duration)
    except Exception as exc:
        raise RuntimeError(
            f"Failed to decode audio file {file_path.name!r}: {exc}"
        ) from exc

    return y, int(loaded_sr)


def iter_frames(
    y: np.ndarray,
    sr: int,
    *,
    analysis_size: int,
    hop: int | None = None,
) -> Iterator[tuple[float, SampleFrame, float]]:
    """Slice a signal into analysis frames, as a capture loop would deliver them.

    Each frame is the ``analysis_size`` most recent samples at a capture
    tick; ticks are ``hop`` samples apart (default: analysis_size // 8,
    ~46 ms at 44.1 kHz for 16384-sample frames). The first tick happens once
    a full buffer is available. Signals shorter than one buffer yield nothing.

    Yields:
        (timestamp_ms, frame, loudness_db) — timestamp of the frame's last
        sample, measured from the start of the signal.
    """
    step = hop if hop is not None else max(1, analysis_size // 8)
    if step <= 0:
        raise ValueError(f"hop must be positive, got {hop}")
    samples = np.asarray(y, dtype=np.float64)
    for end in range(analysis_size, samples.size + 1, step):
        window = samples[end - analysis_size : end]
        yield 1000.0 * end / sr, SampleFrame(window, sr), loudness_db(window)
