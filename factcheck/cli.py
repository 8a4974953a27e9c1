"""
Command line entry point.

  factcheck serve                 run the API (uvicorn)
  factcheck listen [--seconds N]  microphone -> API -> live fact-check log in the terminal

listen: Ctrl+C (or --seconds) stops recording; the final segment is still sent and
all pending verifications finish before the summary is printed (asyncio.run
cancels the main task on SIGINT, which needs Python 3.11+).
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from importlib import import_module

from factcheck.audio.segmenter import RecordingSegmenter
from factcheck.client import FactCheckApiClient
from factcheck.config import configure_logging, get_settings
from factcheck.errors import NoAudioDeviceError, RecordingError
from factcheck.session.events import SessionEvent
from factcheck.session.orchestrator import SessionOrchestrator
from factcheck.session.presentation import render_alert, render_session
from factcheck.session.state import ClaimEntry

logger = logging.getLogger(__name__)


def _print_event(event: SessionEvent) -> None:
    data = event.data
    if event.type == "transcript":
        print(f"> {data.get('text', '')}")
    elif event.type == "claim_pending":
        print(f"  ... checking: \"{data.get('claim', '')}\"")
    elif event.type == "claim_resolved":
        fields = {k: data.get(k) for k in ("id", "claim", "segment_index", "status", "explanation", "source")}
        alert = render_alert(ClaimEntry(**fields))
        if alert:
            print(alert)
    elif event.type == "error":
        print(f"Error ({data.get('stage')}): {data.get('message')}", file=sys.stderr)


async def _on_event(event: SessionEvent) -> None:
    _print_event(event)


def _load_microphone_source() -> type:
    """sounddevice needs PortAudio at import time; only the live client requires it."""
    try:
        module = import_module("factcheck.audio.microphone")
    except OSError as e:
        raise NoAudioDeviceError(f"Audio backend unavailable: {e}") from e
    return module.MicrophoneSource


async def listen(api_url: str, seconds: float | None, device: str | None) -> int:
    async with FactCheckApiClient(base_url=api_url) as client:
        orchestrator = SessionOrchestrator(client, listener=_on_event)
        try:
            segmenter = RecordingSegmenter(on_segment=orchestrator.submit)
        except RecordingError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        orchestrator.start()
        exit_code = 0
        try:
            microphone_source = _load_microphone_source()
            async with microphone_source(device=device) as mic:
                segmenter.start()
                print("Recording... press Ctrl+C to stop.")
                loop = asyncio.get_running_loop()
                deadline = loop.time() + seconds if seconds else None
                async for block in mic.frames():
                    segmenter.push(block)
                    if deadline is not None and loop.time() >= deadline:
                        break
        except RecordingError as e:
            await orchestrator.report_error("recording", str(e))
            exit_code = 1
        except asyncio.CancelledError:
            logger.info("Recording interrupted")
        finally:
            segmenter.stop()
            print("Recording stopped. Waiting for pending fact-checks...")
            await orchestrator.close()

        print()
        print(render_session(orchestrator.state))
        return exit_code


def serve(host: str, port: int) -> None:
    import uvicorn

    uvicorn.run("factcheck.main:app", host=host, port=port)


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="factcheck", description="Live fact-checking of spoken claims")
    sub = parser.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="Run the HTTP/WebSocket API")
    p_serve.add_argument("--host", default=settings.HOST)
    p_serve.add_argument("--port", type=int, default=settings.PORT)

    p_listen = sub.add_parser("listen", help="Fact-check microphone input live")
    p_listen.add_argument("--api-url", default=settings.API_BASE_URL, help="Base URL of the API server")
    p_listen.add_argument("--seconds", type=float, default=None, help="Stop after N seconds (default: Ctrl+C)")
    p_listen.add_argument("--device", default=None, help="Input device name or index")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()
    if args.command == "serve":
        serve(args.host, args.port)
        return 0
    try:
        return asyncio.run(listen(args.api_url, args.seconds, args.device))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
