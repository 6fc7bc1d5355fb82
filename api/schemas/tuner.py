"""
Pydantic schemas for the ``/tuner`` endpoints.

Defines request validation and response serialization models. Frame
payloads carry raw float samples; shape checks beyond "non-empty list of
numbers" happen in core.tuner.types.SampleFrame so the rules live in one
place.
"""

from __future__ import annotations

import math

from pydantic import BaseModel, Field, field_validator


class ReferencePitchOut(BaseModel):
    """One open-string reference."""

    name: str = Field(..., description="Reference name, e.g. 'A2'.")
    frequency_hz: float = Field(..., description="Target frequency in Hz.")


class ReferenceTableResponse(BaseModel):
    """Response body for ``GET /tuner/references``."""

    references: list[ReferencePitchOut] = Field(..., description="Sorted by frequency.")


class SessionCreateRequest(BaseModel):
    """Request body for ``POST /tuner/sessions``. All fields optional."""

    cents_precision: int | None = Field(default=None, ge=0, le=50)
    almost_tuned_threshold: int | None = Field(default=None, ge=0, le=50)
    analysis_size: int | None = Field(
        default=None, ge=256, le=65536, description="Frame length, power of two."
    )
    stability_threshold: int | None = Field(default=None, ge=1, le=50)
    base_volume_threshold_db: float | None = Field(default=None, le=0.0)
    prefilter: bool | None = Field(default=None, description="Band-pass frames before analysis.")

    def overrides(self) -> dict[str, object]:
        """Fields explicitly set by the client, ready for TunerConfig.with_overrides()."""
        return self.model_dump(exclude_none=True)


class SessionCreateResponse(BaseModel):
    """Response body for ``POST /tuner/sessions``."""

    session_id: str = Field(..., description="Opaque id used in frame requests.")
    analysis_size: int = Field(..., description="Frame length the session expects.")


class FrameRequest(BaseModel):
    """Request body for ``POST /tuner/sessions/{session_id}/frames``."""

    samples: list[float] = Field(..., min_length=1, description="Mono samples in [-1, 1].")
    sample_rate_hz: int = Field(..., gt=0, le=384000)
    loudness_db: float | None = Field(
        default=None,
        description="Level of this tick in dB. Omit to derive it from the samples.",
    )
    timestamp_ms: float | None = Field(
        default=None, ge=0.0, description="Capture timestamp; server clock when omitted."
    )

    @field_validator("loudness_db")
    @classmethod
    def loudness_must_not_be_nan(cls, v: float | None) -> float | None:
        """Reject NaN loudness (−inf is allowed for silence)."""
        if v is not None and math.isnan(v):
            raise ValueError("loudness_db must not be NaN")
        return v


class ObservationResponse(BaseModel):
    """One per-frame tuning observation."""

    status: str = Field(..., description="waiting, attack, tuned, almost-tuned, flat, ...")
    label: str = Field(..., description="Short display label for the status.")
    note: str | None = Field(default=None, description="Matched string, e.g. 'E2'.")
    frequency_hz: float = Field(..., description="Committed frequency, 0 when none.")
    cents_offset: int = Field(..., description="Signed deviation from the matched string.")
    accuracy_percent: int = Field(..., ge=0, le=100)
    in_attack: bool = Field(..., description="True during the post-attack suppression window.")
