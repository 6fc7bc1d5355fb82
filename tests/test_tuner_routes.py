"""Tests for the /tuner endpoints.

Uses the ``client`` fixture from conftest: the session store is replaced by
an isolated 4096-sample, four-session store for each test.
"""

from __future__ import annotations

import io

import numpy as np
from fastapi.testclient import TestClient
from scipy.io import wavfile

SR = 44100

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_samples(freq_hz: float, n: int = 4096) -> list[float]:
    t = np.arange(n, dtype=np.float64) / SR
    return (0.5 * np.sin(2.0 * np.pi * freq_hz * t)).tolist()


def _open_session(client: TestClient, **overrides: object) -> str:
    resp = client.post("/tuner/sessions", json=overrides or None)
    assert resp.status_code == 201
    return resp.json()["session_id"]


def _post_frame(client: TestClient, sid: str, samples: list[float], **extra: object):
    payload = {"samples": samples, "sample_rate_hz": SR, **extra}
    return client.post(f"/tuner/sessions/{sid}/frames", json=payload)


# ---------------------------------------------------------------------------
# Reference table and tones
# ---------------------------------------------------------------------------


class TestReferences:
    def test_lists_six_strings(self, client: TestClient) -> None:
        resp = client.get("/tuner/references")
        assert resp.status_code == 200
        refs = resp.json()["references"]
        assert [r["name"] for r in refs] == ["E2", "A2", "D3", "G3", "B3", "E4"]
        assert refs[1]["frequency_hz"] == 110.0

    def test_reference_tone_is_wav(self, client: TestClient) -> None:
        resp = client.get("/tuner/reference-tone/A2", params={"sample_rate": 8000, "hold_sec": 0.5})
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "audio/wav"
        sr, pcm = wavfile.read(io.BytesIO(resp.content))
        assert sr == 8000
        assert pcm.size == 8000 // 2 + 2 * 8000

    def test_reference_tone_lowercase_name(self, client: TestClient) -> None:
        assert client.get("/tuner/reference-tone/e4", params={"sample_rate": 8000}).status_code == 200

    def test_unknown_note_404(self, client: TestClient) -> None:
        assert client.get("/tuner/reference-tone/C9").status_code == 404

    def test_sample_rate_out_of_range_422(self, client: TestClient) -> None:
        resp = client.get("/tuner/reference-tone/A2", params={"sample_rate": 1000})
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Session lifecycle
# ---------------------------------------------------------------------------


class TestSessions:
    def test_create_without_body(self, client: TestClient) -> None:
        resp = client.post("/tuner/sessions")
        assert resp.status_code == 201
        body = resp.json()
        assert body["analysis_size"] == 4096
        assert len(body["session_id"]) == 32

    def test_create_with_overrides(self, client: TestClient) -> None:
        resp = client.post("/tuner/sessions", json={"analysis_size": 8192, "stability_threshold": 3})
        assert resp.status_code == 201
        assert resp.json()["analysis_size"] == 8192

    def test_inconsistent_overrides_422(self, client: TestClient) -> None:
        resp = client.post(
            "/tuner/sessions", json={"cents_precision": 10, "almost_tuned_threshold": 5}
        )
        assert resp.status_code == 422
        assert "almost_tuned_threshold" in resp.json()["detail"]

    def test_non_power_of_two_analysis_size_422(self, client: TestClient) -> None:
        resp = client.post("/tuner/sessions", json={"analysis_size": 5000})
        assert resp.status_code == 422

    def test_session_limit_503(self, client: TestClient) -> None:
        for _ in range(4):
            _open_session(client)
        assert client.post("/tuner/sessions").status_code == 503

    def test_close_then_404(self, client: TestClient) -> None:
        sid = _open_session(client)
        assert client.delete(f"/tuner/sessions/{sid}").status_code == 204
        assert client.delete(f"/tuner/sessions/{sid}").status_code == 404
        assert _post_frame(client, sid, _make_samples(329.63)).status_code == 404

    def test_reset(self, client: TestClient, session_store) -> None:
        sid = _open_session(client)
        _post_frame(client, sid, _make_samples(329.63), loudness_db=-40.0, timestamp_ms=0.0)
        assert client.post(f"/tuner/sessions/{sid}/reset").status_code == 204
        assert session_store.get(sid).state.frames_processed == 0

    def test_reset_unknown_404(self, client: TestClient) -> None:
        assert client.post("/tuner/sessions/nope/reset").status_code == 404


# ---------------------------------------------------------------------------
# Frames
# ---------------------------------------------------------------------------


class TestFrames:
    def test_steady_tone_reaches_tuned(self, client: TestClient) -> None:
        sid = _open_session(client)
        samples = _make_samples(329.63)
        bodies = [
            _post_frame(client, sid, samples, loudness_db=-40.0, timestamp_ms=i * 50.0).json()
            for i in range(8)
        ]
        assert bodies[0]["status"] == "waiting"
        assert bodies[0]["label"] == "Waiting..."
        final = bodies[-1]
        assert final["status"] == "tuned"
        assert final["label"] == "In tune"
        assert final["note"] == "E4"
        assert abs(final["frequency_hz"] - 329.63) < 0.5
        assert final["accuracy_percent"] >= 94
        assert final["in_attack"] is False

    def test_pluck_reports_attack(self, client: TestClient) -> None:
        sid = _open_session(client)
        resp = _post_frame(client, sid, _make_samples(329.63), loudness_db=-20.0, timestamp_ms=0.0)
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "attack"
        assert body["label"] == "Attack detected..."
        assert body["note"] is None
        assert body["frequency_hz"] == 0.0

    def test_loudness_optional(self, client: TestClient) -> None:
        sid = _open_session(client)
        resp = _post_frame(client, sid, _make_samples(329.63))
        assert resp.status_code == 200

    def test_wrong_length_422(self, client: TestClient) -> None:
        sid = _open_session(client)
        resp = _post_frame(client, sid, _make_samples(329.63, n=2048), loudness_db=-40.0)
        assert resp.status_code == 422
        assert "analysis_size" in resp.json()["detail"]

    def test_non_power_of_two_422(self, client: TestClient) -> None:
        sid = _open_session(client)
        resp = _post_frame(client, sid, [0.0] * 1000, loudness_db=-40.0)
        assert resp.status_code == 422
        assert "power of two" in resp.json()["detail"]

    def test_empty_samples_422(self, client: TestClient) -> None:
        sid = _open_session(client)
        assert _post_frame(client, sid, []).status_code == 422

    def test_rejected_frame_keeps_state(self, client: TestClient, session_store) -> None:
        sid = _open_session(client)
        _post_frame(client, sid, _make_samples(329.63), loudness_db=-40.0, timestamp_ms=0.0)
        _post_frame(client, sid, _make_samples(329.63, n=1024), loudness_db=-40.0)
        assert session_store.get(sid).state.frames_processed == 1


# ---------------------------------------------------------------------------
# Health and metrics
# ---------------------------------------------------------------------------


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_metrics_endpoint(client: TestClient) -> None:
    assert client.get("/metrics").status_code == 200
