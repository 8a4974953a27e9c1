"""
FactCheckBackend: the three remote steps the orchestrator sequences.

- FactCheckApiClient (factcheck.client) goes through our HTTP API (live client).
- LocalBackend calls the services in-process (server-side WebSocket sessions).

Contract shared by both: transcribe() and detect_claims() raise on failure;
fact_check() always returns a Verdict.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from factcheck.asr.base import TranscriptionEngine
from factcheck.asr.openai_whisper import OpenAIWhisperEngine
from factcheck.audio.segmenter import AudioSegment
from factcheck.errors import ConfigurationError, ProviderError, ResponseShapeError
from factcheck.services.claim_service import detect_claims
from factcheck.services.fact_check_service import fact_check_claim
from factcheck.services.openai_client import OpenAIClient
from factcheck.verdict import Verdict, uncertain

logger = logging.getLogger(__name__)


class FactCheckBackend(ABC):
    @abstractmethod
    async def transcribe(self, segment: AudioSegment) -> str:
        """Transcript text of one segment; empty string for silence."""
        ...

    @abstractmethod
    async def detect_claims(self, text: str) -> list[str]:
        ...

    @abstractmethod
    async def fact_check(self, claim: str) -> Verdict:
        """Must not raise for remote failures: resolve to an uncertain verdict instead."""
        ...


class LocalBackend(FactCheckBackend):
    def __init__(self, client: OpenAIClient, engine: TranscriptionEngine | None = None) -> None:
        self._client = client
        self._engine = engine or OpenAIWhisperEngine(client)

    async def transcribe(self, segment: AudioSegment) -> str:
        result = await self._engine.transcribe(segment.data, segment.filename, segment.mime_type)
        return result.text

    async def detect_claims(self, text: str) -> list[str]:
        return await detect_claims(text, self._client)

    async def fact_check(self, claim: str) -> Verdict:
        try:
            return await fact_check_claim(claim, self._client)
        except (ConfigurationError, ProviderError, ResponseShapeError) as e:
            logger.warning("Fact-check failed for %r: %s", claim, e)
            return uncertain(f"Fact-check failed: {e}")
