"""
OpenAIWhisperEngine: Whisper via the OpenAI /audio/transcriptions endpoint.

The blob is forwarded as-is (no re-encoding); the provider accepts webm, ogg,
mp4, mpeg and wav uploads.
"""
from __future__ import annotations

from factcheck.asr.base import TranscriptionEngine, TranscriptionResult
from factcheck.errors import ResponseShapeError
from factcheck.services.openai_client import OpenAIClient


class OpenAIWhisperEngine(TranscriptionEngine):
    def __init__(self, client: OpenAIClient) -> None:
        self._client = client

    async def transcribe(self, audio: bytes, filename: str, mime_type: str) -> TranscriptionResult:
        data = await self._client.transcribe_audio(audio, filename, mime_type)
        text = data.get("text")
        if not isinstance(text, str):
            raise ResponseShapeError("Transcription response did not contain text", repr(data)[:200])
        duration = data.get("duration")
        return TranscriptionResult(
            text=text.strip(),
            language=data.get("language") if isinstance(data.get("language"), str) else None,
            duration=float(duration) if isinstance(duration, (int, float)) else None,
        )
