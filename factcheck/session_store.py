"""
In-memory store of WebSocket sessions. session_id is generated on the backend.
State is written only by the session's own orchestrator; HTTP only reads snapshots.

Finished sessions are kept SESSION_TTL_SECONDS after they finalize, then evicted
the next time a session is created. Sessions still running are never evicted.
"""
from __future__ import annotations

import logging
import time
import uuid
from typing import Any

from factcheck.config import get_settings
from factcheck.session.presentation import summarize
from factcheck.session.state import SessionState

logger = logging.getLogger(__name__)

# session_id -> {
#   "state": SessionState,
#   "created_at": float,
#   "finalized_at": float | None,   # set once the WebSocket closed and all batches settled
# }
_session_store: dict[str, dict[str, Any]] = {}


def generate_session_id() -> str:
    """Generate a new session_id (UUID hex, 12 chars). Backend only."""
    return uuid.uuid4().hex[:12]


def evict_expired_sessions(ttl_seconds: float | None = None) -> list[str]:
    """Drop finalized sessions older than the TTL. Returns the evicted ids."""
    ttl = ttl_seconds if ttl_seconds is not None else get_settings().SESSION_TTL_SECONDS
    cutoff = time.time() - ttl
    expired = [
        session_id
        for session_id, record in _session_store.items()
        if record["finalized_at"] is not None and record["finalized_at"] <= cutoff
    ]
    for session_id in expired:
        del _session_store[session_id]
    if expired:
        logger.info("Evicted %d expired session(s)", len(expired))
    return expired


def create_session() -> tuple[str, SessionState]:
    evict_expired_sessions()
    session_id = generate_session_id()
    state = SessionState()
    _session_store[session_id] = {"state": state, "created_at": time.time(), "finalized_at": None}
    return session_id, state


def finalize_session(session_id: str) -> None:
    record = _session_store.get(session_id)
    if record is not None:
        record["finalized_at"] = time.time()


def delete_session(session_id: str) -> bool:
    """Remove session from store. Return True if it existed."""
    return _session_store.pop(session_id, None) is not None


def session_snapshot(session_id: str) -> dict[str, Any] | None:
    """State + summary for display, or None if unknown."""
    record = _session_store.get(session_id)
    if record is None:
        return None
    state: SessionState = record["state"]
    summary = summarize(state.entries)
    return {
        "session_id": session_id,
        "finalized": record["finalized_at"] is not None,
        **state.snapshot(),
        "summary": summary.to_dict() if summary else None,
    }
