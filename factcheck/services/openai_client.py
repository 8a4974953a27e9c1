"""
OpenAIClient: thin httpx wrapper around the OpenAI REST API.

Used for Whisper transcription and JSON-mode chat completions. One short-lived
httpx.AsyncClient per call; the transport can be injected (tests use MockTransport).
Credential is checked before any request is built.
"""
from __future__ import annotations

import logging
from typing import Any

import httpx

from factcheck.config import Settings, get_settings
from factcheck.errors import ConfigurationError, ProviderError, ResponseShapeError

logger = logging.getLogger(__name__)


def _error_message(resp: httpx.Response) -> str:
    """OpenAI errors look like { "error": { "message": "..." } }; fall back to raw text."""
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str) and err:
            return err
    return (resp.text or "").strip()[:500] or resp.reason_phrase


class OpenAIClient:
    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport

    @property
    def settings(self) -> Settings:
        return self._settings

    def ensure_configured(self) -> None:
        if not (self._settings.OPENAI_API_KEY or "").strip():
            raise ConfigurationError("OpenAI API key not configured")

    async def _post(self, path: str, timeout: float, **kwargs: Any) -> dict[str, Any]:
        self.ensure_configured()
        headers = {"Authorization": f"Bearer {self._settings.OPENAI_API_KEY.strip()}"}
        try:
            async with httpx.AsyncClient(
                base_url=self._settings.OPENAI_BASE_URL,
                timeout=timeout,
                transport=self._transport,
            ) as client:
                resp = await client.post(path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Request to OpenAI %s failed: %s", path, e)
            raise ProviderError(502, f"Request failed: {e}") from e

        if not resp.is_success:
            message = _error_message(resp)
            logger.error("OpenAI %s returned %s: %s", path, resp.status_code, message)
            raise ProviderError(resp.status_code, message)
        try:
            data = resp.json()
        except ValueError as e:
            raise ResponseShapeError("OpenAI returned a non-JSON body", str(e)) from e
        if not isinstance(data, dict):
            raise ResponseShapeError("OpenAI returned an unexpected body", repr(data)[:200])
        return data

    async def chat_json(
        self,
        system_prompt: str,
        user_content: str,
        temperature: float,
        max_tokens: int | None = None,
    ) -> str:
        """
        One JSON-mode chat completion. Returns the assistant message content (stripped),
        possibly empty. Raises ConfigurationError / ProviderError / ResponseShapeError.
        """
        payload: dict[str, Any] = {
            "model": self._settings.CHAT_MODEL,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            "temperature": temperature,
        }
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        logger.debug(
            "Chat request: model=%s, temperature=%s, max_tokens=%s, user=%r",
            payload["model"], temperature, max_tokens, user_content[:200],
        )

        data = await self._post(
            "/chat/completions",
            timeout=self._settings.CHAT_TIMEOUT_SECONDS,
            json=payload,
        )
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise ResponseShapeError("Chat completion had no choices")
        message = choices[0].get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        return (content or "").strip() if isinstance(content, str) else ""

    async def transcribe_audio(self, audio: bytes, filename: str, mime_type: str) -> dict[str, Any]:
        """POST multipart audio to /audio/transcriptions; returns the decoded JSON body."""
        form: dict[str, str] = {
            "model": self._settings.TRANSCRIPTION_MODEL,
            "response_format": "json",
        }
        if self._settings.TRANSCRIPTION_LANGUAGE:
            form["language"] = self._settings.TRANSCRIPTION_LANGUAGE
        logger.info("Sending audio to Whisper: %s (%d bytes, %s)", filename, len(audio), mime_type)
        return await self._post(
            "/audio/transcriptions",
            timeout=self._settings.TRANSCRIPTION_TIMEOUT_SECONDS,
            data=form,
            files={"file": (filename, audio, mime_type)},
        )
