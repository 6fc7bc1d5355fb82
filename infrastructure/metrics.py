"""Prometheus metrics for the tuner service.

Exposes tuning context in metrics so dashboards show how sessions actually
behave (how often frames end tuned vs waiting, how close per-frame cost is
to the capture cadence), not just generic HTTP stats.

Metrics:
    tuner_frames_total               Counter of processed frames by status
    tuner_process_latency_seconds    Histogram of per-frame engine latency
    tuner_invalid_frames_total       Frames rejected as malformed input
    tuner_attacks_total              Pick attacks registered across sessions
    tuner_active_sessions            Gauge of open tuning sessions

Usage::

    from infrastructure.metrics import LatencyTimer, record_frame

    with LatencyTimer() as t:
        obs = engine.process(frame, loudness, state)
    record_frame(status=obs.status.value, latency_seconds=t.elapsed)
"""

from __future__ import annotations

import logging
import time

logger = logging.getLogger(__name__)

# Lazy import: prometheus_client is optional. If not installed, all calls
# are no-ops and the /metrics endpoint returns an empty body.
_registry_available = False
try:
    from prometheus_client import (
        CONTENT_TYPE_LATEST,
        CollectorRegistry,
        Counter,
        Gauge,
        Histogram,
        generate_latest,
    )

    _REGISTRY = CollectorRegistry()

    frames_total = Counter(
        "tuner_frames_total",
        "Processed frames by emitted tuning status",
        ["status"],
        registry=_REGISTRY,
    )

    process_latency_seconds = Histogram(
        "tuner_process_latency_seconds",
        "Per-frame TunerEngine.process latency in seconds",
        buckets=[0.001, 0.0025, 0.005, 0.01, 0.02, 0.033, 0.05, 0.1],
        registry=_REGISTRY,
    )

    invalid_frames_total = Counter(
        "tuner_invalid_frames_total",
        "Frames rejected as malformed input",
        registry=_REGISTRY,
    )

    attacks_total = Counter(
        "tuner_attacks_total",
        "Pick attacks registered by the attack detector",
        registry=_REGISTRY,
    )

    active_sessions = Gauge(
        "tuner_active_sessions",
        "Tuning sessions currently open",
        registry=_REGISTRY,
    )

    _registry_available = True
    logger.info("Prometheus metrics registry initialized")

except ImportError:
    logger.info("prometheus_client not installed — metrics disabled")
    _REGISTRY = None  # type: ignore[assignment]


# ---------------------------------------------------------------------------
# Public helpers: all are no-ops when prometheus_client is not installed
# ---------------------------------------------------------------------------


def record_frame(*, status: str, latency_seconds: float) -> None:
    """Record one processed frame.

    Args:
        status: Emitted TuningStatus value, e.g. "tuned", "waiting".
        latency_seconds: Wall-clock time spent in TunerEngine.process.
    """
    if not _registry_available:
        return
    frames_total.labels(status=status).inc()
    process_latency_seconds.observe(latency_seconds)


def record_invalid_frame() -> None:
    """Increment the malformed-frame counter."""
    if _registry_available:
        invalid_frames_total.inc()


def record_attacks(count: int = 1) -> None:
    """Add newly registered attacks to the attack counter."""
    if _registry_available and count > 0:
        attacks_total.inc(count)


def set_active_sessions(count: int) -> None:
    """Publish the number of open sessions."""
    if _registry_available:
        active_sessions.set(count)


def get_metrics_response() -> tuple[bytes, str]:
    """Generate Prometheus text exposition format.

    Returns:
        Tuple of (body_bytes, content_type_string).
        Returns empty bytes if prometheus_client is not available.
    """
    if not _registry_available:
        return b"", "text/plain"
    return generate_latest(_REGISTRY), CONTENT_TYPE_LATEST


class LatencyTimer:
    """Context manager for measuring latency.

    Usage::

        with LatencyTimer() as t:
            observation = engine.process(frame, loudness, state)
        record_frame(status=observation.status.value, latency_seconds=t.elapsed)
    """

    def __init__(self) -> None:
        """Initialize timer."""
        self._start: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> LatencyTimer:
        """Start timing."""
        self._start = time.perf_counter()
        return self

    def __exit__(self, *_: object) -> None:
        """Stop timing and record elapsed."""
        self.elapsed = time.perf_counter() - self._start
