"""
MicrophoneSource: live PCM capture via sounddevice (PortAudio).

PortAudio calls back on its own thread; blocks are handed to the event loop with
call_soon_threadsafe and read with `async for block in mic.frames()`.
Failures surface as RecordingError subclasses so the caller can show
"no device" and "permission denied" differently.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator

import sounddevice as sd

from factcheck.config import get_settings
from factcheck.errors import MicrophonePermissionError, NoAudioDeviceError, RecordingError

logger = logging.getLogger(__name__)

_PERMISSION_HINTS = ("permission", "not permitted", "access denied", "not authorized", "unauthorized")
_NO_DEVICE_HINTS = (
    "no default",
    "invalid device",
    "device unavailable",
    "no such device",
    "error querying device",
    "no input",
)


def classify_audio_error(err: Exception) -> RecordingError:
    """Map a PortAudio/sounddevice error to the RecordingError the user should see."""
    if isinstance(err, RecordingError):
        return err
    text = str(err).lower()
    if any(hint in text for hint in _PERMISSION_HINTS):
        return MicrophonePermissionError(
            "Permission denied. Please allow microphone access for this terminal/application."
        )
    if any(hint in text for hint in _NO_DEVICE_HINTS):
        return NoAudioDeviceError("No microphone found. Please ensure a microphone is connected and enabled.")
    return RecordingError(f"Error accessing microphone: {err}")


def _parse_device(device: str | int | None) -> str | int | None:
    if device is None or device == "":
        return None
    if isinstance(device, str) and device.isdigit():
        return int(device)
    return device


def check_input_device(device: str | int | None = None) -> dict[str, Any]:
    """Return device info for the input device, or raise NoAudioDeviceError."""
    try:
        info = sd.query_devices(_parse_device(device), kind="input")
    except (sd.PortAudioError, ValueError) as e:
        raise NoAudioDeviceError(
            "No microphone found. Please ensure a microphone is connected and enabled."
        ) from e
    if not info or int(info.get("max_input_channels", 0)) < 1:
        raise NoAudioDeviceError("No microphone found. Please ensure a microphone is connected and enabled.")
    return dict(info)


class MicrophoneSource:
    def __init__(
        self,
        sample_rate: int | None = None,
        channels: int | None = None,
        device: str | int | None = None,
        block_ms: int | None = None,
    ) -> None:
        settings = get_settings()
        self._sample_rate = sample_rate or settings.SAMPLE_RATE
        self._channels = channels or settings.CHANNELS
        self._device = _parse_device(device if device is not None else settings.MICROPHONE_DEVICE)
        self._blocksize = int(self._sample_rate * (block_ms or settings.FRAME_MS) / 1000)
        self._queue: asyncio.Queue[bytes | None] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stream: Any = None
        self._closed = False
        self.overflows = 0

    def open(self) -> None:
        """Open and start the input stream. Raises RecordingError subclasses."""
        self._loop = asyncio.get_running_loop()
        info = check_input_device(self._device)
        logger.info("Using input device: %s", info.get("name", self._device))
        try:
            self._stream = sd.RawInputStream(
                samplerate=self._sample_rate,
                channels=self._channels,
                dtype="int16",
                blocksize=self._blocksize,
                device=self._device,
                callback=self._callback,
            )
            self._stream.start()
        except (sd.PortAudioError, OSError) as e:
            logger.error("Error opening microphone: %s", e)
            self._stream = None
            raise classify_audio_error(e) from e

    def _callback(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        """PortAudio thread: copy the block and hand it to the event loop."""
        if status:
            self.overflows += 1
            logger.debug("Input stream status: %s", status)
        if self._closed or self._loop is None:
            return
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, bytes(indata))
        except RuntimeError:
            # Loop already closed during shutdown
            pass

    async def frames(self) -> AsyncIterator[bytes]:
        """Yield captured PCM blocks until close()."""
        while True:
            block = await self._queue.get()
            if block is None:
                return
            yield block

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._stream is not None:
            try:
                self._stream.stop()
                self._stream.close()
            except sd.PortAudioError as e:
                logger.warning("Error closing microphone: %s", e)
            self._stream = None
        self._queue.put_nowait(None)

    async def __aenter__(self) -> "MicrophoneSource":
        self.open()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.close()
