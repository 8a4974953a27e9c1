"""
Schemas for the three pipeline endpoints.

Error bodies use { "error": ..., "details": ... } rather than FastAPI's default
{ "detail": ... } so every endpoint fails the same way.
"""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from factcheck.verdict import Verdict


class ErrorResponse(BaseModel):
    error: str
    details: str | None = None


class TranscribeResponse(BaseModel):
    """Response body for POST /api/transcribe. Empty transcript = silence."""

    transcript: str = Field("", description="Recognized text of the uploaded segment")


class DetectClaimsRequest(BaseModel):
    """Request body for POST /api/detect-claims."""

    text: str = Field(..., min_length=1, description="One transcript segment")


class DetectClaimsResponse(BaseModel):
    claims: list[str] = Field(default_factory=list, description="Verbatim factual sentences, in order")


class FactCheckRequest(BaseModel):
    """Request body for POST /api/fact-check."""

    claim: str = Field(..., min_length=1, description="One claim to verify")


class FactCheckResponse(BaseModel):
    """Response body for POST /api/fact-check: always a usable verdict."""

    status: Literal["true", "false", "uncertain"]
    explanation: str
    source: str | None = None

    @classmethod
    def from_verdict(cls, verdict: Verdict) -> "FactCheckResponse":
        return cls(status=verdict.status, explanation=verdict.explanation, source=verdict.source)


class FactCheckErrorResponse(FactCheckResponse):
    """Non-2xx body of POST /api/fact-check: an "uncertain" verdict plus the reason."""

    error: str

    @classmethod
    def from_failure(cls, verdict: Verdict, error: str) -> "FactCheckErrorResponse":
        return cls(status=verdict.status, explanation=verdict.explanation, source=verdict.source, error=error)
