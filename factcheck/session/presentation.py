"""
Presentation: pure functions from session state to what the user sees.

Pending claims never appear in the checked log or in the summary; the summary is
absent (None) until at least one claim is resolved.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from factcheck.session.state import ClaimEntry, SessionState

TRANSCRIPT_PLACEHOLDER = "Transcript will appear here..."
EMPTY_LOG = "No fact-checks completed yet."


@dataclass(frozen=True)
class StatusStyle:
    icon: str
    label: str
    color: str


STATUS_STYLES: dict[str, StatusStyle] = {
    "true": StatusStyle(icon="✔️", label="TRUE", color="green"),
    "false": StatusStyle(icon="❌", label="FALSE", color="red"),
    "uncertain": StatusStyle(icon="❓", label="UNCERTAIN", color="yellow"),
}


@dataclass(frozen=True)
class SessionSummary:
    total: int
    true_count: int
    false_count: int
    uncertain_count: int
    false_percentage: str  # one decimal, e.g. "25.0"

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "true": self.true_count,
            "false": self.false_count,
            "uncertain": self.uncertain_count,
            "false_percentage": self.false_percentage,
        }


def checked_log(entries: Iterable[ClaimEntry]) -> list[ClaimEntry]:
    """Resolved claims only, in creation order."""
    return [e for e in entries if e.is_resolved]


def summarize(entries: Iterable[ClaimEntry]) -> SessionSummary | None:
    completed = checked_log(entries)
    total = len(completed)
    if total == 0:
        return None
    false_count = sum(1 for e in completed if e.status == "false")
    true_count = sum(1 for e in completed if e.status == "true")
    uncertain_count = sum(1 for e in completed if e.status == "uncertain")
    return SessionSummary(
        total=total,
        true_count=true_count,
        false_count=false_count,
        uncertain_count=uncertain_count,
        false_percentage=f"{false_count / total * 100:.1f}",
    )


def render_transcript(transcript: str) -> str:
    return transcript if transcript else TRANSCRIPT_PLACEHOLDER


def render_alert(entry: ClaimEntry) -> str | None:
    """One alert block per resolved claim; None for pending."""
    style = STATUS_STYLES.get(entry.status)
    if style is None:
        return None
    lines = [f'{style.icon} [{style.label}] "{entry.claim}"', f"    {entry.explanation}"]
    if entry.source:
        lines.append(f"    Source: {entry.source}")
    return "\n".join(lines)


def render_summary(summary: SessionSummary | None) -> str | None:
    if summary is None:
        return None
    return (
        f"Session Summary: {summary.total} claim(s) checked | "
        f"✔️ True: {summary.true_count} | "
        f"❌ False: {summary.false_count} ({summary.false_percentage}%) | "
        f"❓ Uncertain: {summary.uncertain_count}"
    )


def render_session(state: SessionState) -> str:
    """Full text view: transcript, activity, errors, checked log, summary."""
    parts = ["== Transcript ==", render_transcript(state.transcript)]

    activity = []
    if state.is_transcribing:
        activity.append("Processing audio...")
    if state.is_detecting:
        activity.append("Detecting claims...")
    if state.is_verifying:
        activity.append("Fact-checking claims...")
    if activity:
        parts.append(" ".join(activity))

    for error in state.errors:
        parts.append(f"Error ({error.stage}): {error.message}")

    parts.append("== Fact-Check Log ==")
    alerts = [a for a in (render_alert(e) for e in checked_log(state.entries)) if a]
    parts.append("\n".join(alerts) if alerts else EMPTY_LOG)

    summary = render_summary(summarize(state.entries))
    if summary:
        parts.append(summary)
    return "\n".join(parts)
