"""
FastAPI app: the three pipeline steps as HTTP endpoints, plus a WebSocket that runs
a whole fact-checking session server-side.

POST /api/transcribe      multipart "audio" -> { "transcript": "..." }
POST /api/detect-claims   { "text": "..." } -> { "claims": [...] }
POST /api/fact-check      { "claim": "..." } -> { "status", "explanation", "source" }
GET  /api/sessions/{id}   snapshot of a WebSocket session
DELETE /api/sessions/{id} forget a session
WS   /ws/session          PCM in, session events out

Errors are { "error": ..., "details": ... }. A missing OPENAI_API_KEY is a 500
before any remote call.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, UploadFile, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.websockets import WebSocketState

from factcheck.asr.base import TranscriptionEngine
from factcheck.asr.openai_whisper import OpenAIWhisperEngine
from factcheck.audio.encoding import base_mime, extension_for
from factcheck.config import configure_logging, get_settings
from factcheck.errors import ConfigurationError, ProviderError, ResponseShapeError
from factcheck.schemas.api import (
    DetectClaimsRequest,
    DetectClaimsResponse,
    ErrorResponse,
    FactCheckErrorResponse,
    FactCheckRequest,
    FactCheckResponse,
    TranscribeResponse,
)
from factcheck.services.claim_service import detect_claims
from factcheck.services.fact_check_service import fact_check_claim
from factcheck.services.openai_client import OpenAIClient
from factcheck.session.backends import LocalBackend
from factcheck.session_store import delete_session, session_snapshot
from factcheck.verdict import uncertain
from factcheck.websocket_manager import WebSocketManager

logger = logging.getLogger(__name__)


def get_openai_client() -> OpenAIClient:
    return OpenAIClient(get_settings())


def require_openai_client(client: OpenAIClient = Depends(get_openai_client)) -> OpenAIClient:
    """
    Resolved before body fields are validated, so a missing key (500) wins over a
    missing or mistyped field. A body that is not JSON at all is rejected (400)
    earlier, while FastAPI decodes it.
    """
    client.ensure_configured()
    return client


def get_transcription_engine(client: OpenAIClient = Depends(require_openai_client)) -> TranscriptionEngine:
    return OpenAIWhisperEngine(client)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings)
    if not settings.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY is not set; pipeline endpoints will answer 500")
    yield


app = FastAPI(
    title="Live Fact-Checker",
    description="Speech-to-text, claim detection and fact-checking for live speech",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def _provider_status(e: ProviderError) -> int:
    return e.status_code if 400 <= e.status_code < 600 else 502


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Configuration error on %s: %s", request.url.path, exc)
    return _error(500, str(exc))


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError) -> JSONResponse:
    return _error(_provider_status(exc), f"OpenAI API Error: {exc.status_code}", exc.message)


@app.exception_handler(ResponseShapeError)
async def response_shape_error_handler(request: Request, exc: ResponseShapeError) -> JSONResponse:
    logger.error("Unexpected provider response on %s: %s", request.url.path, exc)
    return _error(500, exc.message, exc.details)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    loc = errors[0].get("loc", ()) if errors else ()
    field = loc[-1] if loc else None
    if isinstance(field, str) and field != "body":
        message = f'Invalid input: "{field}" field is required and must be a string.'
    else:
        message = "Invalid input: request body must be a JSON object."
    return _error(400, message, errors[0].get("msg") if errors else None)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.post(
    "/api/transcribe",
    response_model=TranscribeResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def transcribe(
    audio: UploadFile | None = None,
    engine: TranscriptionEngine = Depends(get_transcription_engine),
) -> TranscribeResponse | JSONResponse:
    """Transcribe one audio segment. Empty transcript means silence."""
    if audio is None:
        return _error(400, "No audio file provided")
    settings = get_settings()
    mime = base_mime(audio.content_type or "")
    if mime not in settings.SUPPORTED_AUDIO_TYPES:
        return _error(
            400,
            "Unsupported audio type",
            f"Got {audio.content_type!r}; expected one of: {', '.join(settings.SUPPORTED_AUDIO_TYPES)}",
        )
    data = await audio.read()
    if not data:
        return _error(400, "Empty audio file")
    logger.info("Received audio file: %s, size: %d, type: %s", audio.filename, len(data), audio.content_type)

    filename = audio.filename or f"audio.{extension_for(mime)}"
    result = await engine.transcribe(data, filename, audio.content_type or mime)
    return TranscribeResponse(transcript=result.text)


@app.post(
    "/api/detect-claims",
    response_model=DetectClaimsResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def detect_claims_endpoint(
    request: DetectClaimsRequest,
    client: OpenAIClient = Depends(require_openai_client),
) -> DetectClaimsResponse:
    claims = await detect_claims(request.text, client)
    return DetectClaimsResponse(claims=claims)


@app.post(
    "/api/fact-check",
    response_model=FactCheckResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 502: {"model": FactCheckErrorResponse}},
)
async def fact_check_endpoint(
    request: FactCheckRequest,
    client: OpenAIClient = Depends(require_openai_client),
) -> FactCheckResponse | JSONResponse:
    """
    Verdict for one claim. Unreadable model output is a 200 with an "uncertain" verdict;
    a failed provider call is non-2xx, still with an "uncertain" verdict in the body.
    """
    try:
        verdict = await fact_check_claim(request.claim, client)
    except ProviderError as e:
        error = f"OpenAI API Error: {e.status_code}"
        body = FactCheckErrorResponse.from_failure(uncertain(f"{error}. Details: {e.message}"), error=error)
        return JSONResponse(status_code=_provider_status(e), content=body.model_dump())
    except ResponseShapeError as e:
        logger.warning("Fact-check response shape error: %s", e)
        verdict = uncertain(f"Failed to parse AI response: {e}")
    return FactCheckResponse.from_verdict(verdict)


@app.get("/api/sessions/{session_id}", response_model=None, responses={404: {"model": ErrorResponse}})
async def get_session(session_id: str) -> dict | JSONResponse:
    snapshot = session_snapshot(session_id)
    if snapshot is None:
        return _error(404, "Session not found")
    return snapshot


@app.delete("/api/sessions/{session_id}", status_code=204, responses={404: {"model": ErrorResponse}})
async def forget_session(session_id: str) -> Response:
    if not delete_session(session_id):
        return _error(404, "Session not found")
    return Response(status_code=204)


@app.websocket("/ws/session")
async def websocket_session(
    websocket: WebSocket,
    client: OpenAIClient = Depends(get_openai_client),
) -> None:
    """
    WebSocket: client sends raw PCM 16-bit mono 16kHz (binary), {"type": "stop"} to finish.
    Server sends JSON session events; see WebSocketManager.
    """
    await websocket.accept()
    try:
        client.ensure_configured()
    except ConfigurationError as e:
        await websocket.send_json({"type": "error", "stage": "configuration", "message": str(e)})
        await websocket.close(code=1011)
        return

    manager = WebSocketManager(websocket, LocalBackend(client))
    try:
        await manager.run()
    except WebSocketDisconnect:
        logger.info("Session %s: client disconnected", manager.session_id)
    if (
        websocket.client_state != WebSocketState.DISCONNECTED
        and websocket.application_state != WebSocketState.DISCONNECTED
    ):
        await websocket.close()
