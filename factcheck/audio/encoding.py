"""
Segment encoding: PCM 16-bit -> container the transcription service accepts.

WAV is always available (stdlib wave). Compressed formats go through pydub and
therefore need ffmpeg on PATH. select_mime_type() walks an ordered preference list
and picks the first type the runtime can actually produce.
"""
from __future__ import annotations

import io
import logging
import wave
from typing import Sequence

from pydub import AudioSegment as PydubSegment
from pydub.utils import which

from factcheck.errors import UnsupportedAudioFormatError

logger = logging.getLogger(__name__)

# base mime -> (pydub/ffmpeg format, codec or None, file extension)
_FFMPEG_FORMATS: dict[str, tuple[str, str | None, str]] = {
    "audio/webm": ("webm", "libopus", "webm"),
    "audio/ogg": ("ogg", "libopus", "ogg"),
    "audio/mp4": ("mp4", "aac", "mp4"),
    "audio/mpeg": ("mp3", None, "mp3"),
}
_WAV_TYPES = ("audio/wav", "audio/x-wav")


def base_mime(mime_type: str) -> str:
    """'audio/webm;codecs=opus' -> 'audio/webm'."""
    return (mime_type or "").split(";", 1)[0].strip().lower()


def extension_for(mime_type: str) -> str:
    base = base_mime(mime_type)
    if base in _WAV_TYPES:
        return "wav"
    fmt = _FFMPEG_FORMATS.get(base)
    return fmt[2] if fmt else "bin"


def ffmpeg_available() -> bool:
    return which("ffmpeg") is not None


def supported_mime_types() -> list[str]:
    """Base types this runtime can encode."""
    supported = list(_WAV_TYPES)
    if ffmpeg_available():
        supported.extend(_FFMPEG_FORMATS)
    return supported


def select_mime_type(preferences: Sequence[str], supported: Sequence[str] | None = None) -> str:
    """First entry of preferences whose base type is supported. Raises UnsupportedAudioFormatError."""
    available = {base_mime(m) for m in (supported if supported is not None else supported_mime_types())}
    for mime in preferences:
        if base_mime(mime) in available:
            logger.info("Using audio MIME type: %s", mime)
            return mime
    raise UnsupportedAudioFormatError(
        "No suitable audio format supported by this runtime "
        f"(wanted one of: {', '.join(preferences) or 'none'})"
    )


def _encode_wav(pcm: bytes, sample_rate: int, channels: int, sample_width: int) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(sample_width)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return buf.getvalue()


def encode_pcm(
    pcm: bytes,
    mime_type: str,
    sample_rate: int,
    channels: int = 1,
    sample_width: int = 2,
) -> bytes:
    """Encode raw PCM into a complete, standalone file of mime_type."""
    base = base_mime(mime_type)
    if base in _WAV_TYPES:
        return _encode_wav(pcm, sample_rate, channels, sample_width)
    fmt = _FFMPEG_FORMATS.get(base)
    if fmt is None:
        raise UnsupportedAudioFormatError(f"Cannot encode audio as {mime_type}")
    ffmpeg_format, codec, _ = fmt
    segment = PydubSegment(data=pcm, sample_width=sample_width, frame_rate=sample_rate, channels=channels)
    out = io.BytesIO()
    if codec:
        segment.export(out, format=ffmpeg_format, codec=codec)
    else:
        segment.export(out, format=ffmpeg_format)
    return out.getvalue()
