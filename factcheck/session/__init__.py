"""Session: explicit state, orchestration pipeline, presentation."""
from .backends import FactCheckBackend, LocalBackend
from .events import SessionEvent
from .orchestrator import SessionOrchestrator
from .presentation import SessionSummary, render_session, summarize
from .state import PENDING, ClaimEntry, SessionState

__all__ = [
    "PENDING",
    "ClaimEntry",
    "FactCheckBackend",
    "LocalBackend",
    "SessionEvent",
    "SessionOrchestrator",
    "SessionState",
    "SessionSummary",
    "render_session",
    "summarize",
]
