"""
Decision History & Sync Reporting
=================================

Append-only, in-process log of terminal decisions and their traces, plus the
aggregate sync report.

Entries are numbered with a monotonic sequence under a lock, so insertion
order is completion order even when several cycles finish concurrently.

Usage:
    history = DecisionHistory()
    history.append(decision, trace)
    report = generate_sync_report(history, catalog)
"""

import threading
from dataclasses import dataclass, field
from typing import Iterator, Optional

from decisionforge.decision import Decision, Trace
from decisionforge.errors import IllegalTransition
from decisionforge.patterns import PatternCatalog


@dataclass(frozen=True)
class HistoryEntry:
    """One appended decision with its trace."""
    sequence: int
    decision: Decision
    trace: Trace


class DecisionHistory:
    """Thread-safe append-only decision log."""

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: list[HistoryEntry] = []
        self._next_sequence = 1

    def append(self, decision: Decision, trace: Trace) -> HistoryEntry:
        """
        Append a terminal decision and its trace.

        Raises:
            IllegalTransition: if the decision is still processing
            ValueError: if the trace does not belong to the decision
        """
        if not decision.is_terminal:
            raise IllegalTransition(decision.decision_id, decision.status, "append to history")
        if trace.decision_id != decision.decision_id:
            raise ValueError(
                f"Trace {trace.trace_id} belongs to {trace.decision_id}, "
                f"not {decision.decision_id}"
            )

        with self._lock:
            entry = HistoryEntry(self._next_sequence, decision, trace)
            self._next_sequence += 1
            self._entries.append(entry)
        return entry

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self.entries())

    def entries(self) -> list[HistoryEntry]:
        """Return a copy of the entries in sequence order."""
        with self._lock:
            return list(self._entries)

    def decisions(self) -> list[Decision]:
        return [entry.decision for entry in self.entries()]

    def traces(self) -> list[Trace]:
        return [entry.trace for entry in self.entries()]

    def get(self, decision_id: str) -> Optional[HistoryEntry]:
        """Find an entry by decision id."""
        for entry in self.entries():
            if entry.decision.decision_id == decision_id:
                return entry
        return None

    def completed(self) -> list[Decision]:
        return [d for d in self.decisions() if d.is_completed]

    def failed(self) -> list[Decision]:
        return [d for d in self.decisions() if d.is_failed]


# =============================================================================
# Sync Report
# =============================================================================

@dataclass(frozen=True)
class SyncCapability:
    """Static descriptor of one sync direction."""
    mechanism: str
    confidence: float
    requirements: tuple[str, ...] = field(default_factory=tuple)
    supported: bool = True

    def to_dict(self) -> dict:
        return {
            "supported": self.supported,
            "mechanism": self.mechanism,
            "confidence": self.confidence,
            "requirements": list(self.requirements),
        }


DEFAULT_SYNC_CAPABILITIES: dict[str, SyncCapability] = {
    "offline_to_online": SyncCapability(
        mechanism="Decision history and trace replay",
        confidence=0.92,
        requirements=("Internet connection", "Deployment API access", "Repository authentication"),
    ),
    "online_to_offline": SyncCapability(
        mechanism="Pattern and knowledge download",
        confidence=0.87,
        requirements=("Local storage", "Pattern cache", "Decision history backup"),
    ),
    "bidirectional": SyncCapability(
        mechanism="Intelligent merge with conflict resolution",
        confidence=0.89,
        requirements=("Sync protocol", "Conflict detection", "Approval workflow"),
    ),
}

DEFAULT_SYNC_RECOMMENDATIONS: tuple[str, ...] = (
    "Implement automated sync triggers when internet connectivity is detected",
    "Create conflict resolution UI for decisions made in both online and offline modes",
    "Establish sync priority system (high-risk decisions sync first)",
    "Implement incremental sync to handle large decision histories efficiently",
    "Create sync validation system to ensure data integrity across modes",
)


@dataclass(frozen=True)
class SyncReport:
    """Aggregate statistics over the decision history."""
    total_decisions: int
    completed_decisions: int
    failed_decisions: int
    total_traces: int
    patterns_loaded: int
    avg_confidence: float
    sync_capabilities: dict[str, SyncCapability]
    recommendations: tuple[str, ...]

    def to_dict(self) -> dict:
        return {
            "total_decisions": self.total_decisions,
            "completed_decisions": self.completed_decisions,
            "failed_decisions": self.failed_decisions,
            "total_traces": self.total_traces,
            "patterns_loaded": self.patterns_loaded,
            "avg_confidence": self.avg_confidence,
            "sync_capabilities": {
                name: cap.to_dict() for name, cap in self.sync_capabilities.items()
            },
            "recommendations": list(self.recommendations),
        }


def generate_sync_report(
    history: DecisionHistory,
    catalog: Optional[PatternCatalog] = None,
) -> SyncReport:
    """
    Summarize the history.

    The average confidence is taken over completed decisions only and is 0.0
    when there are none.
    """
    entries = history.entries()
    completed = [e.decision for e in entries if e.decision.is_completed]
    failed = sum(1 for e in entries if e.decision.is_failed)

    avg_confidence = 0.0
    if completed:
        avg_confidence = round(sum(d.confidence for d in completed) / len(completed), 6)

    return SyncReport(
        total_decisions=len(entries),
        completed_decisions=len(completed),
        failed_decisions=failed,
        total_traces=len(entries),
        patterns_loaded=len(catalog) if catalog is not None else 0,
        avg_confidence=avg_confidence,
        sync_capabilities=dict(DEFAULT_SYNC_CAPABILITIES),
        recommendations=DEFAULT_SYNC_RECOMMENDATIONS,
    )
