"""ASR: swappable speech-to-text engines."""
from .base import TranscriptionEngine, TranscriptionResult
from .openai_whisper import OpenAIWhisperEngine

__all__ = [
    "TranscriptionEngine",
    "TranscriptionResult",
    "OpenAIWhisperEngine",
]
