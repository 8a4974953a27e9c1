"""
TranscriptionEngine: abstract interface for remote speech-to-text.

Implementations take one encoded audio segment (webm/ogg/mp4/mpeg/wav blob) and
return its text. Empty text means silence; callers skip downstream work.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class TranscriptionResult:
    """Result of one transcribe call."""

    text: str
    language: str | None = None
    duration: float | None = None  # seconds, when the provider reports it


class TranscriptionEngine(ABC):
    @abstractmethod
    async def transcribe(self, audio: bytes, filename: str, mime_type: str) -> TranscriptionResult:
        """
        Transcribe one audio blob. Raises ProviderError on remote failure (no retry)
        and ResponseShapeError when the provider answers without text.
        """
        ...
