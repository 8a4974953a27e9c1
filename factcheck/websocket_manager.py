"""
WebSocketManager: one WebSocket = one fact-checking session, run server-side.

Client sends binary PCM 16-bit mono 16kHz; optionally a text command {"type": "stop"}.
Server sends JSON: {"type": "session", "session_id"} first, then session events
(transcript, claim_pending, claim_resolved, status, error) as they happen, and
{"type": "stopped", "session": snapshot} after a stop command.

Audio is cut into WAV segments (no re-encode on the way to Whisper); the
orchestrator transcribes them in order and fact-checks each segment's claims.
"""
from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import WebSocket

from factcheck.audio.segmenter import RecordingSegmenter
from factcheck.session.backends import FactCheckBackend
from factcheck.session.events import SessionEvent
from factcheck.session.orchestrator import SessionOrchestrator
from factcheck.session_store import create_session, finalize_session, session_snapshot

logger = logging.getLogger(__name__)

SERVER_SEGMENT_MIME = "audio/wav"


def _is_stop_command(text: str) -> bool:
    try:
        command = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Ignoring non-JSON text message: %r", text[:100])
        return False
    return isinstance(command, dict) and command.get("type") == "stop"


class WebSocketManager:
    def __init__(self, websocket: WebSocket, backend: FactCheckBackend) -> None:
        self._ws = websocket
        self._closed = False
        self._session_id, self._state = create_session()
        self._orchestrator = SessionOrchestrator(backend, self._state, listener=self._send_event)
        self._segmenter = RecordingSegmenter(
            on_segment=self._orchestrator.submit,
            mime_type=SERVER_SEGMENT_MIME,
        )

    @property
    def session_id(self) -> str:
        return self._session_id

    async def _send_json(self, payload: dict[str, Any]) -> None:
        if self._closed:
            return
        try:
            await self._ws.send_text(json.dumps(payload, ensure_ascii=False))
        except Exception as e:
            logger.debug("Send failed, marking session %s closed: %s", self._session_id, e)
            self._closed = True

    async def _send_event(self, event: SessionEvent) -> None:
        if self._closed:
            return
        try:
            await self._ws.send_text(event.to_json())
        except Exception as e:
            logger.debug("Send failed, marking session %s closed: %s", self._session_id, e)
            self._closed = True

    async def run(self) -> None:
        """Receive audio until disconnect or stop; then flush, drain and report."""
        logger.info("Session %s started", self._session_id)
        await self._send_json({"type": "session", "session_id": self._session_id})
        self._segmenter.start()
        self._orchestrator.start()
        stopped = False
        try:
            while not self._closed:
                try:
                    msg = await self._ws.receive()
                except Exception:
                    break
                if msg.get("type") == "websocket.disconnect":
                    break
                data = msg.get("bytes")
                if data is not None:
                    self._segmenter.push(data)
                    continue
                text = msg.get("text")
                if text and _is_stop_command(text):
                    stopped = True
                    break
        finally:
            # Final segment goes through the same queue; wait until every claim is resolved
            self._segmenter.stop()
            await self._orchestrator.close()
            finalize_session(self._session_id)
            logger.info(
                "Session %s finished: %d segment(s), %d claim(s)",
                self._session_id, self._state.segment_count, len(self._state.entries),
            )
        if stopped:
            await self._send_json({"type": "stopped", "session": session_snapshot(self._session_id)})
