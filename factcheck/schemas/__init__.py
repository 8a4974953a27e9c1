"""Pydantic schemas for API request/response."""
from factcheck.schemas.api import (
    DetectClaimsRequest,
    DetectClaimsResponse,
    ErrorResponse,
    FactCheckErrorResponse,
    FactCheckRequest,
    FactCheckResponse,
    TranscribeResponse,
)

__all__ = [
    "DetectClaimsRequest",
    "DetectClaimsResponse",
    "ErrorResponse",
    "FactCheckErrorResponse",
    "FactCheckRequest",
    "FactCheckResponse",
    "TranscribeResponse",
]
