"""
Error taxonomy.

- ConfigurationError: missing credential; fatal, raised before any remote call.
- ProviderError: OpenAI answered non-2xx or could not be reached; no retry.
- ResponseShapeError: OpenAI answered, but not in the expected JSON shape.
- ApiError: our own HTTP API failed, seen from the live client.
- RecordingError (+ subclasses): microphone / encoding problems on the capture side.
"""
from __future__ import annotations


class FactCheckError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(FactCheckError):
    pass


class ProviderError(FactCheckError):
    """Remote AI provider failure. status_code is the provider's (502 for transport errors)."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"OpenAI API Error: {status_code} {message}")
        self.status_code = status_code
        self.message = message


class ResponseShapeError(FactCheckError):
    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message if not details else f"{message}: {details}")
        self.message = message
        self.details = details


class ApiError(FactCheckError):
    """Non-2xx or transport failure when calling the fact-check API. status_code None = no response."""

    def __init__(self, status_code: int | None, message: str, details: str | None = None) -> None:
        prefix = f"{status_code} " if status_code is not None else ""
        text = f"{prefix}{message}"
        if details:
            text = f"{text}. {details}"
        super().__init__(text)
        self.status_code = status_code
        self.message = message
        self.details = details


class RecordingError(FactCheckError):
    pass


class NoAudioDeviceError(RecordingError):
    pass


class MicrophonePermissionError(RecordingError):
    pass


class UnsupportedAudioFormatError(RecordingError):
    pass
