"""
Verdict: resolved truth classification of one claim.

coerce_verdict() is the single validation policy for anything that claims to be a
verdict (model output on the server, API body on the client): it never fails and
never returns a pending or unknown status.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal

logger = logging.getLogger(__name__)

VerdictStatus = Literal["true", "false", "uncertain"]
VERDICT_LABELS: tuple[str, ...] = ("true", "false", "uncertain")

STATUS_FORMAT_ERROR = "AI response format error (status)."
EXPLANATION_FORMAT_ERROR = "AI response format error (explanation)."
NO_EXPLANATION = "No explanation provided."


@dataclass(frozen=True)
class Verdict:
    status: VerdictStatus
    explanation: str
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "explanation": self.explanation, "source": self.source}


def uncertain(explanation: str) -> Verdict:
    return Verdict(status="uncertain", explanation=explanation or NO_EXPLANATION, source=None)


def coerce_verdict(payload: Any) -> Verdict:
    """
    Turn a decoded JSON payload into a Verdict.
    - status not one of VERDICT_LABELS -> "uncertain" (keeps a text explanation if given)
    - explanation missing or not text -> fixed placeholder
    - source present but not a non-empty string -> dropped
    """
    if not isinstance(payload, dict):
        logger.warning("Verdict payload is not an object: %r", payload)
        return uncertain(STATUS_FORMAT_ERROR)

    status = payload.get("status")
    explanation = payload.get("explanation")
    if status not in VERDICT_LABELS:
        logger.warning("Invalid verdict status %r, coercing to uncertain", status)
        status = "uncertain"
        if not isinstance(explanation, str) or not explanation.strip():
            explanation = STATUS_FORMAT_ERROR
    if not isinstance(explanation, str):
        logger.warning("Invalid verdict explanation %r", explanation)
        explanation = EXPLANATION_FORMAT_ERROR
    explanation = explanation.strip() or NO_EXPLANATION

    source = payload.get("source")
    if not isinstance(source, str) or not source.strip():
        source = None
    else:
        source = source.strip()
    return Verdict(status=status, explanation=explanation, source=source)
