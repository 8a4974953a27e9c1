"""Application configuration. Loads from env vars."""
import logging
import os

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings. Override via environment variables."""

    # OpenAI: Whisper for speech-to-text, chat completions for claims and verdicts
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    TRANSCRIPTION_MODEL: str = "whisper-1"
    TRANSCRIPTION_LANGUAGE: str = ""  # empty = let Whisper detect (e.g. "pl")
    TRANSCRIPTION_TIMEOUT_SECONDS: float = 60.0
    CHAT_MODEL: str = "gpt-4o"
    CHAT_TIMEOUT_SECONDS: float = 60.0
    CLAIMS_TEMPERATURE: float = 0.2
    FACT_CHECK_TEMPERATURE: float = 0.1
    FACT_CHECK_MAX_TOKENS: int = 150

    # Upload types accepted by /api/transcribe (base type, codec params ignored)
    SUPPORTED_AUDIO_TYPES: list[str] = [
        "audio/webm",
        "audio/ogg",
        "audio/mp4",
        "audio/mpeg",
        "audio/wav",
        "audio/x-wav",
    ]

    # Audio: PCM 16-bit mono, 16kHz
    SAMPLE_RATE: int = 16000
    SAMPLE_WIDTH: int = 2  # 16-bit
    CHANNELS: int = 1
    FRAME_MS: int = 20

    # Segmenter: one segment every N seconds of audio, plus a final one on stop
    SEGMENT_SECONDS: float = 3.0
    MIN_SEGMENT_SECONDS: float = 0.5  # shorter tails are dropped on stop
    # Ordered preference; first one the runtime can encode wins
    AUDIO_MIME_PREFERENCES: list[str] = [
        "audio/webm;codecs=opus",
        "audio/webm",
        "audio/ogg;codecs=opus",
        "audio/mp4",
        "audio/wav",
    ]
    MICROPHONE_DEVICE: str = ""  # empty = system default input

    # Live client (factcheck listen) -> API server
    API_BASE_URL: str = "http://localhost:8000"
    CLIENT_TIMEOUT_SECONDS: float = 90.0

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    CORS_ALLOW_ORIGINS: list[str] = ["*"]
    # Finished WebSocket sessions stay readable via GET /api/sessions/{id} this long
    SESSION_TTL_SECONDS: float = 3600.0

    # Logging: level (DEBUG, INFO, WARNING, ERROR); file path empty = console only
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        extra = "ignore"


def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Apply LOG_LEVEL and optional LOG_FILE to the root logger."""
    settings = settings or get_settings()
    level = getattr(logging, (settings.LOG_LEVEL or "INFO").upper(), logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.LOG_FILE:
        os.makedirs(os.path.dirname(settings.LOG_FILE) or ".", exist_ok=True)
        handlers.append(logging.FileHandler(settings.LOG_FILE, encoding="utf-8"))
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )
