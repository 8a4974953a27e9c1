"""
Shared test doubles: a fake OpenAI API (httpx.MockTransport), settings without
.env, a scriptable FactCheckBackend, and a small async wait helper.
"""
from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import httpx

from factcheck.audio.segmenter import AudioSegment, PcmSegment
from factcheck.config import Settings
from factcheck.services.claim_service import CLAIMS_SYSTEM_PROMPT
from factcheck.session.backends import FactCheckBackend
from factcheck.verdict import Verdict


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {"OPENAI_API_KEY": "sk-test"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def chat_completion(content: str | None) -> dict[str, Any]:
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
    }


Responder = Callable[[httpx.Request], httpx.Response]


class FakeOpenAI:
    """
    Stand-in for api.openai.com. Records every request.
    - claims / verdict: JSON text returned as assistant content for the claim or fact-check prompt
    - transcript: "text" of /audio/transcriptions
    - status_code / error_message: make every call fail
    - raise_error: transport-level failure (no response at all)
    """

    def __init__(
        self,
        claims: str | None = '{"claims": []}',
        verdict: str | None = '{"status": "true", "explanation": "OK.", "source": null}',
        transcript: str | None = "",
        status_code: int = 200,
        error_message: str = "Rate limit reached",
        raise_error: Exception | None = None,
    ) -> None:
        self.claims = claims
        self.verdict = verdict
        self.transcript = transcript
        self.status_code = status_code
        self.error_message = error_message
        self.raise_error = raise_error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_error is not None:
            raise self.raise_error
        if self.status_code >= 400:
            return httpx.Response(
                self.status_code,
                json={"error": {"message": self.error_message, "type": "requests"}},
            )
        if request.url.path.endswith("/audio/transcriptions"):
            body: dict[str, Any] = {} if self.transcript is None else {"text": self.transcript}
            return httpx.Response(200, json=body)
        if request.url.path.endswith("/chat/completions"):
            payload = json.loads(request.content)
            system = payload["messages"][0]["content"]
            content = self.claims if system == CLAIMS_SYSTEM_PROMPT else self.verdict
            return httpx.Response(200, json=chat_completion(content))
        return httpx.Response(404, json={"error": {"message": "not found"}})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def chat_payloads(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests if r.url.path.endswith("/chat/completions")]


def make_segment(index: int = 0, data: bytes = b"RIFF") -> AudioSegment:
    return AudioSegment(index=index, data=data, mime_type="audio/wav", start_sec=index * 3.0, duration_sec=3.0)


def make_pcm_segment(index: int = 0, seconds: float = 0.1) -> PcmSegment:
    pcm = b"\x00\x00" * int(16000 * seconds)
    return PcmSegment(
        index=index,
        pcm=pcm,
        mime_type="audio/wav",
        sample_rate=16000,
        channels=1,
        sample_width=2,
        start_sec=index * seconds,
        duration_sec=seconds,
    )


class FakeBackend(FactCheckBackend):
    """
    Scriptable backend.
    - transcripts: segment index -> text or Exception
    - claims: text -> list of claims or Exception
    - verdicts: claim -> Verdict or Exception (default: true)
    - gates: claim -> asyncio.Event that fact_check waits on
    """

    def __init__(
        self,
        transcripts: dict[int, Any] | None = None,
        claims: dict[str, Any] | None = None,
        verdicts: dict[str, Any] | None = None,
    ) -> None:
        self.transcripts = transcripts or {}
        self.claims = claims or {}
        self.verdicts = verdicts or {}
        self.gates: dict[str, asyncio.Event] = {}
        self.transcribe_calls: list[int] = []
        self.transcribed: list[AudioSegment] = []
        self.detect_calls: list[str] = []
        self.fact_check_calls: list[str] = []

    async def transcribe(self, segment: AudioSegment) -> str:
        self.transcribe_calls.append(segment.index)
        self.transcribed.append(segment)
        await asyncio.sleep(0)
        value = self.transcripts.get(segment.index, "")
        if isinstance(value, Exception):
            raise value
        return value

    async def detect_claims(self, text: str) -> list[str]:
        self.detect_calls.append(text)
        await asyncio.sleep(0)
        value = self.claims.get(text, [])
        if isinstance(value, Exception):
            raise value
        return list(value)

    async def fact_check(self, claim: str) -> Verdict:
        self.fact_check_calls.append(claim)
        gate = self.gates.get(claim)
        if gate is not None:
            await gate.wait()
        await asyncio.sleep(0)
        value = self.verdicts.get(claim, Verdict(status="true", explanation="Confirmed."))
        if isinstance(value, Exception):
            raise value
        return value


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.001)
