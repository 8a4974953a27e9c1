"""
RecordingSegmenter: cuts a continuous PCM stream into timed, standalone segments.

- Input: PCM 16-bit mono (any block size; sample alignment handled here).
- While active, emits one PcmSegment every SEGMENT_SECONDS of audio.
- stop() emits the remaining audio as a final segment unless it is shorter than
  MIN_SEGMENT_SECONDS.
- Time is audio time (bytes received), not wall-clock, so slicing is deterministic.
- Segments leave the segmenter as raw PCM. encode_segment() turns one into a
  complete file (full container header) in a worker thread, so ffmpeg never runs
  on the event loop and every segment can be transcribed on its own.
"""
from __future__ import annotations

import asyncio
import functools
import logging
from dataclasses import dataclass
from typing import Callable

from factcheck.audio.encoding import encode_pcm, extension_for, select_mime_type
from factcheck.config import get_settings
from factcheck.errors import RecordingError

logger = logging.getLogger(__name__)

Encoder = Callable[..., bytes]


@dataclass(frozen=True)
class PcmSegment:
    """One slice of captured audio, not yet encoded."""

    index: int
    pcm: bytes
    mime_type: str  # target container
    sample_rate: int
    channels: int
    sample_width: int
    start_sec: float
    duration_sec: float
    is_final: bool = False


@dataclass(frozen=True)
class AudioSegment:
    """One encoded slice of captured audio."""

    index: int
    data: bytes
    mime_type: str
    start_sec: float
    duration_sec: float
    is_final: bool = False

    @property
    def filename(self) -> str:
        return f"segment-{self.index}.{extension_for(self.mime_type)}"


async def encode_segment(segment: PcmSegment, encoder: Encoder | None = None) -> AudioSegment:
    """Encode in the default executor; blocking encoders must not stall the loop."""
    encode = encoder or encode_pcm
    loop = asyncio.get_running_loop()
    data = await loop.run_in_executor(
        None,
        functools.partial(
            encode,
            segment.pcm,
            segment.mime_type,
            sample_rate=segment.sample_rate,
            channels=segment.channels,
            sample_width=segment.sample_width,
        ),
    )
    return AudioSegment(
        index=segment.index,
        data=data,
        mime_type=segment.mime_type,
        start_sec=segment.start_sec,
        duration_sec=segment.duration_sec,
        is_final=segment.is_final,
    )


class RecordingSegmenter:
    def __init__(
        self,
        on_segment: Callable[[PcmSegment], None],
        mime_type: str | None = None,
        segment_seconds: float | None = None,
        min_segment_seconds: float | None = None,
        sample_rate: int | None = None,
    ) -> None:
        settings = get_settings()
        self._on_segment = on_segment
        # Fails here (before capture starts) when no preferred format can be encoded
        self._mime_type = mime_type or select_mime_type(settings.AUDIO_MIME_PREFERENCES)
        self._sample_rate = sample_rate or settings.SAMPLE_RATE
        self._sample_width = settings.SAMPLE_WIDTH
        self._channels = settings.CHANNELS
        seconds = segment_seconds if segment_seconds is not None else settings.SEGMENT_SECONDS
        min_seconds = min_segment_seconds if min_segment_seconds is not None else settings.MIN_SEGMENT_SECONDS
        if seconds <= 0:
            raise ValueError("segment_seconds must be positive")

        self._bytes_per_sec = self._sample_rate * self._sample_width * self._channels
        frame = self._sample_width * self._channels
        # Whole samples only
        self._segment_bytes = max(frame, int(self._bytes_per_sec * seconds) // frame * frame)
        self._min_bytes = int(self._bytes_per_sec * min_seconds) // frame * frame

        self._buffer = bytearray()
        self._active = False
        self._index = 0
        self._emitted_bytes = 0

    @property
    def mime_type(self) -> str:
        return self._mime_type

    @property
    def is_active(self) -> bool:
        return self._active

    def start(self) -> None:
        if self._active:
            raise RecordingError("Recording already started")
        self._buffer.clear()
        self._active = True
        logger.info(
            "Recording started: %s, %.1fs segments",
            self._mime_type, self._segment_bytes / self._bytes_per_sec,
        )

    def push(self, pcm: bytes) -> None:
        """Append captured PCM. May emit one or more segments."""
        if not self._active:
            raise RecordingError("Recording is not active")
        self._buffer.extend(pcm)
        while len(self._buffer) >= self._segment_bytes:
            chunk = bytes(self._buffer[: self._segment_bytes])
            del self._buffer[: self._segment_bytes]
            self._emit(chunk, is_final=False)

    def stop(self) -> PcmSegment | None:
        """Stop capture; emit and return the final segment (None when tail too short)."""
        if not self._active:
            return None
        self._active = False
        frame = self._sample_width * self._channels
        usable = len(self._buffer) // frame * frame
        tail = bytes(self._buffer[:usable])
        self._buffer.clear()
        if not tail or len(tail) < self._min_bytes:
            logger.info("Recording stopped; %d byte tail dropped", len(tail))
            return None
        segment = self._emit(tail, is_final=True)
        logger.info("Recording stopped; %d segment(s) emitted", self._index)
        return segment

    def _emit(self, pcm: bytes, is_final: bool) -> PcmSegment:
        segment = PcmSegment(
            index=self._index,
            pcm=pcm,
            mime_type=self._mime_type,
            sample_rate=self._sample_rate,
            channels=self._channels,
            sample_width=self._sample_width,
            start_sec=self._emitted_bytes / self._bytes_per_sec,
            duration_sec=len(pcm) / self._bytes_per_sec,
            is_final=is_final,
        )
        self._index += 1
        self._emitted_bytes += len(pcm)
        self._on_segment(segment)
        return segment
