"""
SessionEvent: incremental update pushed to whoever displays a session.

- transcript: a new segment was appended (data: text, transcript)
- claim_pending: a claim was registered, verdict outstanding (data: claim entry)
- claim_resolved: a claim got its verdict (data: claim entry)
- status: busy flags changed (data: transcribing, detecting, verifying)
- error: a unit of work failed (data: stage, message)
"""
from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any


def _unix_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class SessionEvent:
    type: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: int = field(default_factory=_unix_ms)

    def to_json(self) -> str:
        return json.dumps({"type": self.type, "timestamp": self.timestamp, **self.data}, ensure_ascii=False)
