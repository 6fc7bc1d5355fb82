"""
core/tuner/references.py — Standard-tuning reference table and note mapping.

Pure math, no numpy. The reference table is a module-level tuple: closed,
sorted by frequency, never mutated.
"""

from __future__ import annotations

import math

from core.tuner.types import ReferencePitch

# ---------------------------------------------------------------------------
# Reference table
# ---------------------------------------------------------------------------

STANDARD_TUNING: tuple[ReferencePitch, ...] = (
    ReferencePitch("E2", 82.41),  # 6th string
    ReferencePitch("A2", 110.00),
    ReferencePitch("D3", 146.83),
    ReferencePitch("G3", 196.00),
    ReferencePitch("B3", 246.94),
    ReferencePitch("E4", 329.63),  # 1st string
)

CENTS_PER_OCTAVE: float = 1200.0

MATCH_LIMIT_CENTS: float = 100.0
"""One semitone. A reference matches only when strictly closer than this."""


# ---------------------------------------------------------------------------
# Cents
# ---------------------------------------------------------------------------


def cents_distance(freq_hz: float, target_hz: float) -> float:
    """Unrounded signed distance in cents: 1200 × log₂(freq / target).

    Returns 0.0 when either frequency is non-positive.
    """
    if freq_hz <= 0.0 or target_hz <= 0.0:
        return 0.0
    return CENTS_PER_OCTAVE * math.log2(freq_hz / target_hz)


def cents(freq_hz: float, target_hz: float) -> int:
    """Signed display value: round(1200 × log₂(freq / target)).

    Examples:
        cents(110.0, 110.0)  → 0
        cents(82.0, 82.41)   → -9
    """
    return int(round(cents_distance(freq_hz, target_hz)))


# ---------------------------------------------------------------------------
# Note mapping
# ---------------------------------------------------------------------------


def find_closest_reference(
    freq_hz: float,
    references: tuple[ReferencePitch, ...] = STANDARD_TUNING,
    *,
    limit_cents: float = MATCH_LIMIT_CENTS,
) -> ReferencePitch | None:
    """Return the reference musically closest to ``freq_hz``.

    Distance is |cents|, not Hz, so the semitone limit means the same thing
    on every string.

    Args:
        freq_hz: Committed frequency. Non-positive values never match.
        references: Candidate table (default: standard tuning).
        limit_cents: Match only when the best distance is strictly below this.

    Returns:
        The closest ReferencePitch, or None when nothing is within the limit.
    """
    if freq_hz <= 0.0 or not references:
        return None
    best = min(references, key=lambda ref: abs(cents_distance(freq_hz, ref.frequency_hz)))
    # Rounded so that a frequency built as exactly N cents away compares as N.
    if round(abs(cents_distance(freq_hz, best.frequency_hz)), 6) < limit_cents:
        return best
    return None


def reference_by_name(
    name: str, references: tuple[ReferencePitch, ...] = STANDARD_TUNING
) -> ReferencePitch:
    """Look up a reference by name, case-insensitively.

    Raises:
        KeyError: Unknown reference name.
    """
    wanted = name.strip().upper()
    for ref in references:
        if ref.name.upper() == wanted:
            return ref
    raise KeyError(f"Unknown reference {name!r}. Valid: {[r.name for r in references]}")
