"""
SessionState: the only mutable state of a fact-checking session.

Mutated exclusively through the transition methods below:
- append_transcript(): grow the running transcript
- append_pending(): register new claims as "pending", assign ids
- resolve(): pending -> true | false | uncertain, exactly once per id
- begin() / end(): busy bookkeeping per activity
- record_error(): surface a failure without touching claims

Ids are "claim-<n>" from a per-session counter: creation order, never content,
never reused. Busy flags are reference counts so overlapping batches cannot clear
each other's flag.
"""
from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Literal

from factcheck.verdict import Verdict

PENDING = "pending"

Activity = Literal["transcribing", "detecting", "verifying"]
_ACTIVITIES: tuple[str, ...] = ("transcribing", "detecting", "verifying")


@dataclass
class ClaimEntry:
    id: str
    claim: str
    segment_index: int
    status: str = PENDING
    explanation: str = ""
    source: str | None = None

    @property
    def is_resolved(self) -> bool:
        return self.status != PENDING

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SessionError:
    """Failure shown next to the step that caused it (recording, transcription, detection)."""

    stage: str
    message: str
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))


class SessionState:
    def __init__(self) -> None:
        self._transcript = ""
        self._entries: list[ClaimEntry] = []
        self._by_id: dict[str, ClaimEntry] = {}
        self._next_id = 1
        self._segments = 0
        self._busy: dict[str, int] = {name: 0 for name in _ACTIVITIES}
        self.errors: list[SessionError] = []

    # --- transcript ---

    @property
    def transcript(self) -> str:
        return self._transcript

    @property
    def segment_count(self) -> int:
        return self._segments

    def append_transcript(self, segment: str) -> int:
        """Append one trimmed, non-empty segment; returns its segment index."""
        cleaned = segment.strip()
        if not cleaned:
            raise ValueError("Transcript segment is empty")
        self._transcript = f"{self._transcript} {cleaned}" if self._transcript else cleaned
        index = self._segments
        self._segments += 1
        return index

    # --- claims ---

    @property
    def entries(self) -> list[ClaimEntry]:
        """All claims in creation order (copy of the list; entries are live)."""
        return list(self._entries)

    def get(self, claim_id: str) -> ClaimEntry:
        return self._by_id[claim_id]

    def append_pending(self, claims: Iterable[str], segment_index: int = -1) -> list[ClaimEntry]:
        created: list[ClaimEntry] = []
        for claim in claims:
            entry = ClaimEntry(id=f"claim-{self._next_id}", claim=claim, segment_index=segment_index)
            self._next_id += 1
            self._entries.append(entry)
            self._by_id[entry.id] = entry
            created.append(entry)
        return created

    def resolve(self, claim_id: str, verdict: Verdict) -> ClaimEntry:
        """One-way pending -> verdict. KeyError for unknown id, ValueError if already resolved."""
        entry = self._by_id[claim_id]
        if entry.is_resolved:
            raise ValueError(f"Claim {claim_id} is already resolved ({entry.status})")
        entry.status = verdict.status
        entry.explanation = verdict.explanation
        entry.source = verdict.source
        return entry

    def pending(self) -> list[ClaimEntry]:
        return [e for e in self._entries if not e.is_resolved]

    def resolved(self) -> list[ClaimEntry]:
        return [e for e in self._entries if e.is_resolved]

    # --- busy flags ---

    def begin(self, activity: Activity) -> None:
        self._busy[activity] += 1

    def end(self, activity: Activity) -> None:
        if self._busy[activity] <= 0:
            raise ValueError(f"end({activity!r}) without matching begin()")
        self._busy[activity] -= 1

    @property
    def is_transcribing(self) -> bool:
        return self._busy["transcribing"] > 0

    @property
    def is_detecting(self) -> bool:
        return self._busy["detecting"] > 0

    @property
    def is_verifying(self) -> bool:
        return self._busy["verifying"] > 0

    @property
    def is_busy(self) -> bool:
        return self.is_transcribing or self.is_detecting or self.is_verifying

    def busy_flags(self) -> dict[str, bool]:
        return {
            "transcribing": self.is_transcribing,
            "detecting": self.is_detecting,
            "verifying": self.is_verifying,
        }

    # --- errors ---

    def record_error(self, stage: str, message: str) -> SessionError:
        error = SessionError(stage=stage, message=message)
        self.errors.append(error)
        return error

    def snapshot(self) -> dict[str, Any]:
        return {
            "transcript": self._transcript,
            "results": [e.to_dict() for e in self._entries],
            "busy": self.busy_flags(),
            "errors": [asdict(e) for e in self.errors],
        }
