"""
Offline tuning run over a recorded take.

Replays an audio file through TunerEngine the way a live capture loop
would (one analysis frame per tick) and prints one observation per line.
Useful for checking thresholds against real recordings.

Usage:
    python scripts/tune_file.py --file takes/low_e.wav
    python scripts/tune_file.py --file takes/low_e.wav --hop 1024 --changes-only

Output (one line per tick):
    <time_ms>  <status>  <note>  <frequency_hz>  <cents>  <accuracy>%
"""

from __future__ import annotations

import argparse
import logging

from core.tuner.config import TunerConfig
from core.tuner.engine import TunerEngine
from ingestion.audio_loader import iter_frames, load_audio

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def run(path: str, *, hop: int | None, changes_only: bool, prefilter: bool) -> int:
    """Process the file and print observations. Returns the number of ticks."""
    config = TunerConfig.from_env()
    if prefilter:
        config = config.with_overrides(prefilter=True)
    engine = TunerEngine(config)
    state = engine.new_state()

    y, sr = load_audio(path, duration=None)
    logger.info("Loaded %s: %.2f s at %d Hz", path, len(y) / sr, sr)

    ticks = 0
    last_line = None
    for timestamp_ms, frame, loudness in iter_frames(
        y, sr, analysis_size=config.analysis_size, hop=hop
    ):
        obs = engine.process(frame, loudness, state, now_ms=timestamp_ms)
        ticks += 1
        line = (
            f"{obs.status.value:<12} {obs.note or '-':<3} "
            f"{obs.frequency_hz:8.2f} {obs.cents_offset:+4d} {obs.accuracy_percent:3d}%"
        )
        if changes_only and line == last_line:
            continue
        last_line = line
        print(f"{timestamp_ms:9.0f}  {line}")

    if ticks == 0:
        logger.warning("File shorter than one analysis frame (%d samples)", config.analysis_size)
    logger.info("Processed %d ticks, %d attacks", ticks, state.attack_count)
    return ticks


def main() -> None:
    """Parse CLI arguments and run the offline tuner."""
    parser = argparse.ArgumentParser(
        description="Run the guitar tuning engine over an audio file.",
    )
    parser.add_argument("--file", required=True, metavar="PATH", help="Audio file to analyse.")
    parser.add_argument(
        "--hop",
        type=int,
        default=None,
        help="Samples between ticks (default: analysis_size / 8).",
    )
    parser.add_argument(
        "--changes-only",
        action="store_true",
        help="Print a line only when the observation changes.",
    )
    parser.add_argument(
        "--prefilter",
        action="store_true",
        help="Band-pass frames around the guitar range before analysis.",
    )
    args = parser.parse_args()
    run(args.file, hop=args.hop, changes_only=args.changes_only, prefilter=args.prefilter)


if __name__ == "__main__":
    main()
