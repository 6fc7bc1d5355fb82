"""
api/routes/tuner.py — Tuning session endpoints.

Endpoints:
    GET    /tuner/references                     — Open-string reference table
    GET    /tuner/reference-tone/{note}          — Reference tone as WAV
    POST   /tuner/sessions                       — Open a session
    POST   /tuner/sessions/{session_id}/frames   — Process one capture tick
    POST   /tuner/sessions/{session_id}/reset    — Reset session state
    DELETE /tuner/sessions/{session_id}          — Close a session

The capture layer posts one frame per tick and renders the returned
observation. Frames for one session are processed strictly in order (the
session store serializes them); different sessions are independent.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from api.deps import get_session_store
from api.schemas.tuner import (
    FrameRequest,
    ObservationResponse,
    ReferencePitchOut,
    ReferenceTableResponse,
    SessionCreateRequest,
    SessionCreateResponse,
)
from core.tuner.classifier import status_label
from core.tuner.references import STANDARD_TUNING
from core.tuner.tone import render_reference_tone, to_wav_bytes
from core.tuner.types import InvalidInputError, SampleFrame
from infrastructure.metrics import record_invalid_frame
from ingestion.tuner_sessions import SessionLimitError, SessionNotFoundError, TunerSessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tuner", tags=["tuner"])

Store = Annotated[TunerSessionStore, Depends(get_session_store)]


# ---------------------------------------------------------------------------
# Reference table and tones
# ---------------------------------------------------------------------------


@router.get("/references", response_model=ReferenceTableResponse)
def list_references() -> ReferenceTableResponse:
    """Return the six open-string reference pitches, low to high."""
    return ReferenceTableResponse(
        references=[
            ReferencePitchOut(name=ref.name, frequency_hz=ref.frequency_hz)
            for ref in STANDARD_TUNING
        ]
    )


@router.get("/reference-tone/{note}")
def reference_tone(
    note: str,
    sample_rate: Annotated[int, Query(ge=8000, le=96000)] = 44100,
    hold_sec: Annotated[float, Query(gt=0.0, le=10.0)] = 1.0,
) -> Response:
    """Render the reference tone for one string as 16-bit WAV.

    Raises:
        404: Unknown note name.
    """
    try:
        y = render_reference_tone(note, sample_rate=sample_rate, hold_sec=hold_sec)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown note {note!r}") from exc
    return Response(content=to_wav_bytes(y, sample_rate), media_type="audio/wav")


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@router.post("/sessions", response_model=SessionCreateResponse, status_code=201)
def create_session(store: Store, body: SessionCreateRequest | None = None) -> SessionCreateResponse:
    """Open a tuning session, optionally overriding config fields.

    Raises:
        422: Overrides produce an inconsistent config.
        503: Session limit reached.
    """
    overrides = body.overrides() if body is not None else {}
    config = store.default_config
    if overrides:
        try:
            config = config.with_overrides(**overrides)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
    try:
        session_id = store.create(config)
    except SessionLimitError as exc:
        logger.warning("Session creation refused: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return SessionCreateResponse(session_id=session_id, analysis_size=config.analysis_size)


@router.post("/sessions/{session_id}/frames", response_model=ObservationResponse)
def process_frame(session_id: str, body: FrameRequest, store: Store) -> ObservationResponse:
    """Run one capture tick through the session's engine.

    Raises:
        404: Unknown session id.
        422: Malformed frame (length, non-finite samples). The session's
             state is unchanged; the client should just send the next tick.
    """
    try:
        frame = SampleFrame(body.samples, body.sample_rate_hz)
    except InvalidInputError as exc:
        record_invalid_frame()
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    try:
        observation = store.process(
            session_id, frame, body.loudness_db, now_ms=body.timestamp_ms
        )
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown session {session_id}") from exc
    except InvalidInputError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return ObservationResponse(
        status=observation.status.value,
        label=status_label(observation.status, observation.in_attack),
        note=observation.note,
        frequency_hz=round(observation.frequency_hz, 3),
        cents_offset=observation.cents_offset,
        accuracy_percent=observation.accuracy_percent,
        in_attack=observation.in_attack,
    )


@router.post("/sessions/{session_id}/reset", status_code=204)
def reset_session(session_id: str, store: Store) -> Response:
    """Reset the session's tuning state to its initial values."""
    try:
        store.reset(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown session {session_id}") from exc
    return Response(status_code=204)


@router.delete("/sessions/{session_id}", status_code=204)
def close_session(session_id: str, store: Store) -> Response:
    """Close the session and discard its state."""
    try:
        store.close(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown session {session_id}") from exc
    return Response(status_code=204)
