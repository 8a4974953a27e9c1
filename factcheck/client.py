"""
FactCheckApiClient: calls our own HTTP API (/api/transcribe, /api/detect-claims,
/api/fact-check) from the live client.

- transcribe(): empty/missing transcript -> "" (no-op); failures -> ApiError.
- detect_claims(): failures -> ApiError; body without a claims list -> [] + warning.
- fact_check(): never raises for remote problems; every outcome is a Verdict,
  non-2xx and "soft" uncertain bodies alike.
"""
from __future__ import annotations

import logging
from typing import Any

import httpx

from factcheck.audio.segmenter import AudioSegment
from factcheck.config import get_settings
from factcheck.errors import ApiError
from factcheck.session.backends import FactCheckBackend
from factcheck.verdict import Verdict, coerce_verdict, uncertain

logger = logging.getLogger(__name__)


def _error_from_body(body: Any) -> tuple[str, str | None]:
    if isinstance(body, dict):
        error = body.get("error")
        details = body.get("details")
        return (str(error) if error else "Unknown server error", str(details) if details else None)
    return "Unknown server error", None


class FactCheckApiClient(FactCheckBackend):
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._http = httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=timeout if timeout is not None else settings.CLIENT_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "FactCheckApiClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def _post(self, path: str, **kwargs: Any) -> tuple[httpx.Response, Any]:
        """POST and decode JSON. Raises ApiError on transport errors, non-2xx and non-JSON bodies."""
        try:
            resp = await self._http.post(path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Network error calling %s: %s", path, e)
            raise ApiError(None, f"Network error: {e}") from e
        try:
            body = resp.json()
        except ValueError:
            body = None
        if not resp.is_success:
            error, details = _error_from_body(body)
            logger.error("%s returned %s: %s %s", path, resp.status_code, error, details or "")
            raise ApiError(resp.status_code, error, details)
        if body is None:
            raise ApiError(resp.status_code, f"Invalid JSON from {path}")
        return resp, body

    async def transcribe(self, segment: AudioSegment) -> str:
        _, body = await self._post(
            "/api/transcribe",
            files={"audio": (segment.filename, segment.data, segment.mime_type)},
        )
        transcript = body.get("transcript") if isinstance(body, dict) else None
        if not isinstance(transcript, str):
            logger.warning("Transcription response without transcript: %r", body)
            return ""
        return transcript

    async def detect_claims(self, text: str) -> list[str]:
        _, body = await self._post("/api/detect-claims", json={"text": text})
        claims = body.get("claims") if isinstance(body, dict) else None
        if not isinstance(claims, list):
            logger.warning("Claim detection response without a claims list: %r", body)
            return []
        return [c for c in claims if isinstance(c, str) and c.strip()]

    async def fact_check(self, claim: str) -> Verdict:
        try:
            resp = await self._http.post("/api/fact-check", json={"claim": claim})
        except httpx.HTTPError as e:
            logger.error("Error calling fact-check API: %s", e)
            return uncertain(f"Fetch Error: {str(e) or type(e).__name__}")
        try:
            body = resp.json()
        except ValueError as e:
            logger.error("Fact-check response was not JSON (%s)", resp.status_code)
            return uncertain(f"Failed to parse fact-check response: {e}")

        if not resp.is_success:
            error, details = _error_from_body(body)
            parts = [f"API Error: {resp.status_code} {resp.reason_phrase}".rstrip()]
            if isinstance(body, dict) and isinstance(body.get("explanation"), str) and body["explanation"]:
                parts.append(body["explanation"])
            elif error:
                parts.append(error if not details else f"{error}. {details}")
            logger.error("Fact-check API error for %r: %s", claim, parts)
            return uncertain(". ".join(parts))
        return coerce_verdict(body)
