"""
Decision Recording
==================

Wraps one scenario-processing cycle into an auditable Decision and its paired
Trace.

Decision lifecycle:
    processing --(success)-----------> completed
    processing --(structural error)--> failed

No other transition is legal. Once a decision is terminal its fields are
frozen, except the sync bookkeeping (sync_status, updated_at) owned by the
persistence collaborator.

Usage:
    from decisionforge.decision import DecisionRecorder

    recorder = DecisionRecorder(tenant_id="acme")
    decision, trace = recorder.begin(scenario)
    try:
        ...
        recorder.complete(decision, trace, recommendation, strategies)
    except DecisionEngineError as e:
        recorder.fail(decision, trace, e)
"""

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from decisionforge.errors import DecisionEngineError, IllegalTransition
from decisionforge.models import Recommendation, Scenario, Strategy, StrategyMode


class DecisionStatus(Enum):
    """Lifecycle states of a decision."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class SyncStatus(Enum):
    """Synchronization state of a decision with the persistence store."""
    PENDING = "pending"
    PROCESSING = "processing"
    SYNCED = "synced"
    CONFLICT = "conflict"


ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    DecisionStatus.PROCESSING.value: frozenset({
        DecisionStatus.COMPLETED.value,
        DecisionStatus.FAILED.value,
    }),
    DecisionStatus.COMPLETED.value: frozenset(),
    DecisionStatus.FAILED.value: frozenset(),
}

TERMINAL_STATUSES = frozenset({DecisionStatus.COMPLETED.value, DecisionStatus.FAILED.value})

# Fields the persistence layer may still update on a terminal decision
MUTABLE_AFTER_TERMINAL = frozenset({"sync_status", "updated_at"})


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def new_id(prefix: str) -> str:
    """Generate '<prefix>_<epoch ms>_<random hex>'; unique within a process."""
    return f"{prefix}_{_epoch_ms()}_{uuid.uuid4().hex[:12]}"


@dataclass
class Decision:
    """
    The top-level audit record of one synthesis cycle.

    Status values are DecisionStatus values; sync_status values are
    SyncStatus values. Assigning an illegal status, or changing any audit
    field after the decision is terminal, raises IllegalTransition.
    """
    decision_id: str
    scenario_ref: str
    context: str
    question: str
    trace_id: str
    created_at: datetime
    updated_at: datetime

    status: str = DecisionStatus.PROCESSING.value
    sync_status: str = SyncStatus.PROCESSING.value

    # Recommendation fields (filled on completion)
    recommendation: str = ""
    reasoning: str = ""
    confidence: float = 0.0
    insights: list[str] = field(default_factory=list)
    patterns: list[str] = field(default_factory=list)
    philosophy_alignment: list[str] = field(default_factory=list)
    branch_strategy: str = ""
    deployment_plan: str = ""
    environment_handling: str = ""
    approval_required: bool = False
    risk_assessment: str = "low"
    risk_score: float = 0.0

    # Outcome
    execution_time_ms: int = 0
    failure_kind: Optional[str] = None
    failure_reason: Optional[str] = None

    # Provenance
    source: str = "decision-engine"
    tenant_id: str = "default"
    parent_decision_id: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    _started: float = field(default_factory=time.perf_counter, repr=False, compare=False)

    def __setattr__(self, name: str, value: Any) -> None:
        current = self.__dict__.get("status")
        if current is not None:
            if name == "status":
                if value not in ALLOWED_TRANSITIONS.get(current, frozenset()):
                    raise IllegalTransition(self.decision_id, current, str(value))
            elif current in TERMINAL_STATUSES and name not in MUTABLE_AFTER_TERMINAL:
                raise IllegalTransition(self.decision_id, current, f"modify '{name}'")
        super().__setattr__(name, value)

    @property
    def is_terminal(self) -> bool:
        """Check whether the decision reached completed or failed."""
        return self.status in TERMINAL_STATUSES

    @property
    def is_completed(self) -> bool:
        return self.status == DecisionStatus.COMPLETED.value

    @property
    def is_failed(self) -> bool:
        return self.status == DecisionStatus.FAILED.value

    def summary(self) -> str:
        """Return a brief summary string."""
        if self.is_failed:
            return f"[{self.decision_id}] FAILED ({self.failure_kind}): {self.failure_reason}"
        confidence_pct = self.confidence * 100
        approval = " approval-required" if self.approval_required else ""
        return (
            f"[{self.decision_id}] {self.status} ({confidence_pct:.1f}%, "
            f"risk={self.risk_assessment}{approval}): {self.scenario_ref}"
        )

    def to_record(self) -> dict:
        """Convert to the persisted decision record schema."""
        return {
            "id": self.decision_id,
            "context": self.context,
            "question": self.question,
            "recommendation": self.recommendation,
            "reasoning": self.reasoning,
            "confidence": self.confidence,
            "insights": list(self.insights),
            "patterns": list(self.patterns),
            "timestamp": self.created_at.isoformat(),
            "execution_time_ms": self.execution_time_ms,
            "status": self.status,
            "philosophy_alignment": list(self.philosophy_alignment),
            "source": self.source,
            "tenant_id": self.tenant_id,
            "metadata": dict(self.metadata),
            "trace_id": self.trace_id,
            "parent_decision_id": self.parent_decision_id,
            "branch_strategy": self.branch_strategy,
            "deployment_plan": self.deployment_plan,
            "environment_handling": self.environment_handling,
            "approval_required": self.approval_required,
            "risk_assessment": self.risk_assessment,
            "sync_status": self.sync_status,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class Trace:
    """Timing and outcome record paired with exactly one Decision."""
    trace_id: str
    decision_id: str
    operation: str
    query_text: str
    start_time: int                  # epoch ms
    created_at: datetime
    parameters: dict = field(default_factory=dict)
    end_time: Optional[int] = None   # epoch ms
    duration_ms: Optional[int] = None
    success: Optional[bool] = None   # None while open
    error_message: Optional[str] = None
    metadata: dict = field(default_factory=dict)
    branch_id: str = "main"
    environment: str = "development"

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    def close(self, success: bool, error_message: Optional[str] = None) -> None:
        """
        Close the trace.

        Raises:
            IllegalTransition: if the trace is already closed
        """
        if not self.is_open:
            raise IllegalTransition(self.trace_id, "closed", "close")
        self.end_time = _epoch_ms()
        self.duration_ms = max(0, self.end_time - self.start_time)
        self.success = success
        self.error_message = error_message

    def to_record(self) -> dict:
        """Convert to the persisted trace record schema."""
        return {
            "trace_id": self.trace_id,
            "decision_id": self.decision_id,
            "operation": self.operation,
            "query_text": self.query_text,
            "parameters": dict(self.parameters),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_ms": self.duration_ms,
            "success": self.success,
            "error_message": self.error_message,
            "metadata": dict(self.metadata),
            "branch_id": self.branch_id,
            "environment": self.environment,
            "created_at": self.created_at.isoformat(),
        }


class DecisionRecorder:
    """
    Creates and closes Decision/Trace pairs.

    The recorder holds no per-decision state; every Decision carries its own
    lifecycle, so one recorder can serve concurrent cycles.
    """

    def __init__(
        self,
        source: str = "decision-engine",
        tenant_id: str = "default",
        branch_id: str = "main",
        environment: str = "development",
        operation: str = "process_scenario",
    ):
        self.source = source
        self.tenant_id = tenant_id
        self.branch_id = branch_id
        self.environment = environment
        self.operation = operation

    def begin(
        self,
        scenario: Scenario,
        parent_decision_id: Optional[str] = None,
    ) -> tuple[Decision, Trace]:
        """Create a processing Decision and its open Trace."""
        now = _now()
        decision_id = new_id("dec")
        trace_id = new_id("trace")

        decision = Decision(
            decision_id=decision_id,
            scenario_ref=scenario.name,
            context=scenario.context,
            question=scenario.requirement,
            trace_id=trace_id,
            created_at=now,
            updated_at=now,
            source=self.source,
            tenant_id=self.tenant_id,
            parent_decision_id=parent_decision_id,
            metadata={
                "scenario": scenario.name,
                "kind": scenario.kind,
                "credentials": sorted(scenario.credentials),
                "constraints": list(scenario.all_requirements),
            },
        )
        trace = Trace(
            trace_id=trace_id,
            decision_id=decision_id,
            operation=self.operation,
            query_text=f"Processing: {scenario.requirement}",
            start_time=_epoch_ms(),
            created_at=now,
            parameters={"scenario": scenario.name, "kind": scenario.kind},
            branch_id=self.branch_id,
            environment=self.environment,
        )
        return decision, trace

    def complete(
        self,
        decision: Decision,
        trace: Trace,
        recommendation: Recommendation,
        strategies: dict[StrategyMode, Strategy],
    ) -> Decision:
        """
        Fill the recommendation fields and move the decision to completed.

        Raises:
            IllegalTransition: if the decision is not processing
        """
        self._require_processing(decision, DecisionStatus.COMPLETED)

        decision.recommendation = recommendation.text
        decision.reasoning = recommendation.reasoning
        decision.confidence = recommendation.confidence
        decision.insights = list(recommendation.insights)
        decision.patterns = sorted(recommendation.patterns_applied)
        decision.philosophy_alignment = list(recommendation.philosophy_alignment)
        decision.branch_strategy = recommendation.branch_strategy
        decision.deployment_plan = recommendation.deployment_plan
        decision.environment_handling = recommendation.environment_handling
        decision.approval_required = recommendation.approval_required
        decision.risk_assessment = recommendation.risk_level.value
        decision.risk_score = recommendation.risk_score
        self._finish(decision, DecisionStatus.COMPLETED)

        for mode, strategy in strategies.items():
            trace.parameters[f"{mode.value}_confidence"] = strategy.confidence
            trace.metadata[f"{mode.value}_summary"] = strategy.summary
        trace.parameters["synthesized_confidence"] = recommendation.confidence
        trace.metadata["synthesized_summary"] = recommendation.summary
        trace.metadata["patterns_used"] = sorted(recommendation.patterns_applied)
        trace.close(success=True)
        return decision

    def fail(
        self,
        decision: Decision,
        trace: Trace,
        error: Union[BaseException, str],
    ) -> Decision:
        """
        Move the decision to failed and close its trace with the error.

        Raises:
            IllegalTransition: if the decision is not processing
        """
        self._require_processing(decision, DecisionStatus.FAILED)

        if isinstance(error, DecisionEngineError):
            kind, reason = error.kind, error.message
        elif isinstance(error, BaseException):
            kind, reason = type(error).__name__, str(error) or type(error).__name__
        else:
            kind, reason = "error", str(error)

        decision.failure_kind = kind
        decision.failure_reason = reason
        self._finish(decision, DecisionStatus.FAILED)

        trace.metadata["failure_kind"] = kind
        trace.close(success=False, error_message=f"{kind}: {reason}")
        return decision

    def _require_processing(self, decision: Decision, requested: DecisionStatus) -> None:
        if decision.status != DecisionStatus.PROCESSING.value:
            raise IllegalTransition(decision.decision_id, decision.status, requested.value)

    def _finish(self, decision: Decision, status: DecisionStatus) -> None:
        decision.execution_time_ms = int((time.perf_counter() - decision._started) * 1000)
        decision.sync_status = SyncStatus.PENDING.value
        decision.updated_at = _now()
        decision.status = status.value
