"""
SessionOrchestrator: audio segments -> transcript -> claims -> verdicts.

Audio path: submit() queues raw PCM segments; a single consumer encodes (in a
worker thread) and transcribes them strictly in production order, appending
each transcript before starting that segment's batch. Batches run as
independent tasks, so a later segment's claims may be detected while an
earlier batch is still verifying (no backpressure).

Batch: detect claims -> register all as pending -> verify all concurrently ->
join on all-settled. Every claim ends resolved, whatever fails.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Coroutine

from factcheck.audio.segmenter import Encoder, PcmSegment, encode_segment
from factcheck.session.backends import FactCheckBackend
from factcheck.session.events import SessionEvent
from factcheck.session.state import ClaimEntry, SessionState
from factcheck.verdict import uncertain

logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionEvent], Awaitable[None]]


class SessionOrchestrator:
    def __init__(
        self,
        backend: FactCheckBackend,
        state: SessionState | None = None,
        listener: SessionListener | None = None,
        encoder: Encoder | None = None,
    ) -> None:
        self._backend = backend
        self.state = state or SessionState()
        self._listener = listener
        self._encoder = encoder
        self._queue: asyncio.Queue[PcmSegment | None] = asyncio.Queue()
        self._consumer: asyncio.Task[None] | None = None
        self._batches: set[asyncio.Task[Any]] = set()

    # --- events ---

    async def _emit(self, type_: str, **data: Any) -> None:
        if self._listener is None:
            return
        try:
            await self._listener(SessionEvent(type=type_, data=data))
        except Exception:
            # A broken display must not stop the pipeline
            logger.exception("Session listener failed on %s event", type_)

    async def _status(self) -> None:
        await self._emit("status", **self.state.busy_flags())

    async def report_error(self, stage: str, message: str) -> None:
        """Record a failure for display; claims already collected are untouched."""
        self.state.record_error(stage, message)
        await self._emit("error", stage=stage, message=message)

    # --- audio path ---

    def start(self) -> None:
        if self._consumer is None:
            self._consumer = asyncio.create_task(self._consume())

    def submit(self, segment: PcmSegment) -> None:
        """Queue one audio segment. Safe to use as a RecordingSegmenter callback."""
        self._queue.put_nowait(segment)

    async def _consume(self) -> None:
        while True:
            segment = await self._queue.get()
            if segment is None:
                break
            text = await self.transcribe_segment(segment)
            index = await self._accept(text)
            if index is not None:
                self._spawn(self._run_batch(text.strip(), index))

    async def transcribe_segment(self, segment: PcmSegment) -> str:
        """Encode and transcribe one segment; failures are reported and yield ''."""
        self.state.begin("transcribing")
        await self._status()
        try:
            audio = await encode_segment(segment, self._encoder)
            text = await self._backend.transcribe(audio)
        except Exception as e:
            logger.warning("Transcription of segment %d failed: %s", segment.index, e)
            await self.report_error("transcription", f"Transcription failed: {e}")
            return ""
        finally:
            self.state.end("transcribing")
            await self._status()
        return text or ""

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(coro)
        self._batches.add(task)
        task.add_done_callback(self._batches.discard)

    async def wait_idle(self) -> None:
        """Wait for every batch in flight, including ones started while waiting."""
        while self._batches:
            await asyncio.gather(*list(self._batches), return_exceptions=True)

    async def close(self) -> None:
        """Transcribe what is queued, then wait for all batches to settle."""
        self.start()
        self._queue.put_nowait(None)
        consumer, self._consumer = self._consumer, None
        if consumer is not None:
            await consumer
        await self.wait_idle()

    # --- text path ---

    async def _accept(self, text: str) -> int | None:
        cleaned = (text or "").strip()
        if not cleaned:
            return None
        index = self.state.append_transcript(cleaned)
        await self._emit("transcript", text=cleaned, segment_index=index, transcript=self.state.transcript)
        return index

    async def handle_transcript(self, text: str) -> list[ClaimEntry]:
        """Append one transcript segment and run its batch to completion."""
        index = await self._accept(text)
        if index is None:
            logger.debug("Empty transcript segment skipped")
            return []
        return await self._run_batch(text.strip(), index)

    async def _run_batch(self, text: str, segment_index: int) -> list[ClaimEntry]:
        self.state.begin("detecting")
        await self._status()
        try:
            claims = await self._backend.detect_claims(text)
        except Exception as e:
            logger.warning("Claim detection failed for segment %d: %s", segment_index, e)
            await self.report_error("detection", f"Claim detection failed: {e}")
            return []
        finally:
            self.state.end("detecting")
            await self._status()

        entries = self.state.append_pending(claims, segment_index)
        if not entries:
            logger.info("No claims detected in segment %d", segment_index)
            return []
        for entry in entries:
            await self._emit("claim_pending", **entry.to_dict())

        self.state.begin("verifying")
        await self._status()
        try:
            results = await asyncio.gather(*(self._verify(e) for e in entries), return_exceptions=True)
        finally:
            self.state.end("verifying")
            await self._status()

        for entry, result in zip(entries, results):
            if isinstance(result, BaseException):
                logger.error("Verification task for %s failed: %r", entry.id, result)
            if not entry.is_resolved:
                self.state.resolve(entry.id, uncertain(f"Verification failed: {result!r}"))
                await self._emit("claim_resolved", **entry.to_dict())
        logger.info("All fact-checks for segment %d settled", segment_index)
        return entries

    async def _verify(self, entry: ClaimEntry) -> None:
        try:
            verdict = await self._backend.fact_check(entry.claim)
        except Exception as e:
            logger.warning("Fact-check of %s failed: %s", entry.id, e)
            verdict = uncertain(f"Verification failed: {e}")
        self.state.resolve(entry.id, verdict)
        await self._emit("claim_resolved", **entry.to_dict())
