"""
Tests for Decision Recording Module
===================================

Tests for decision.py - Decision/Trace records and the decision state machine.
"""

import re

import pytest

from decisionforge.decision import (
    DecisionRecorder,
    DecisionStatus,
    SyncStatus,
    new_id,
)
from decisionforge.errors import IllegalTransition, ScenarioCancelled, StrategyGenerationFailure
from decisionforge.models import Recommendation, RiskLevel, Scenario, Strategy, StrategyMode


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def scenario():
    return Scenario(
        name="billing-sync",
        kind="api-integration",
        context="Billing service enhancement",
        requirement="Add a second payments API",
        credentials={"apiKey": "secret"},
        constraints=("Keep the service pattern",),
    )


@pytest.fixture
def recorder():
    return DecisionRecorder(source="tests", tenant_id="acme", branch_id="dev", environment="test")


@pytest.fixture
def recommendation():
    return Recommendation(
        text="Hybrid approach",
        reasoning="Because",
        confidence=0.914,
        insights=("one", "two"),
        patterns_applied=frozenset({"b", "a"}),
        philosophy_alignment=("principle",),
        branch_strategy="local -> connected",
        deployment_plan="plan",
        environment_handling="env",
        approval_required=True,
        risk_level=RiskLevel.MEDIUM,
        risk_score=0.6,
        summary="Hybrid summary",
    )


@pytest.fixture
def strategies():
    def make(mode, confidence):
        return Strategy(mode, confidence, (), (), (), (), frozenset(), f"{mode.value} summary")
    return {
        StrategyMode.CONNECTED: make(StrategyMode.CONNECTED, 0.92),
        StrategyMode.LOCAL: make(StrategyMode.LOCAL, 0.78),
    }


# =============================================================================
# Identifier Tests
# =============================================================================

class TestIds:
    """Tests for id generation."""

    def test_id_format(self):
        assert re.fullmatch(r"dec_\d+_[0-9a-f]{12}", new_id("dec"))

    def test_ids_are_unique(self):
        assert len({new_id("trace") for _ in range(500)}) == 500


# =============================================================================
# DecisionRecorder Tests
# =============================================================================

class TestDecisionRecorder:
    """Tests for the DecisionRecorder class."""

    def test_begin(self, recorder, scenario):
        decision, trace = recorder.begin(scenario, parent_decision_id="dec_parent")

        assert decision.status == DecisionStatus.PROCESSING.value
        assert decision.sync_status == SyncStatus.PROCESSING.value
        assert decision.trace_id == trace.trace_id
        assert trace.decision_id == decision.decision_id
        assert decision.question == scenario.requirement
        assert decision.tenant_id == "acme"
        assert decision.parent_decision_id == "dec_parent"
        assert decision.metadata["credentials"] == ["apiKey"]
        assert trace.query_text == "Processing: Add a second payments API"
        assert trace.branch_id == "dev"
        assert trace.is_open

    def test_credentials_values_never_recorded(self, recorder, scenario):
        decision, trace = recorder.begin(scenario)
        assert "secret" not in str(decision.to_record())
        assert "secret" not in str(trace.to_record())

    def test_complete(self, recorder, scenario, recommendation, strategies):
        decision, trace = recorder.begin(scenario)
        recorder.complete(decision, trace, recommendation, strategies)

        assert decision.is_completed
        assert decision.confidence == 0.914
        assert decision.patterns == ["a", "b"]
        assert decision.risk_assessment == "medium"
        assert decision.approval_required
        assert decision.sync_status == SyncStatus.PENDING.value
        assert decision.execution_time_ms >= 0
        assert trace.success is True
        assert trace.duration_ms >= 0
        assert trace.parameters["connected_confidence"] == 0.92
        assert trace.metadata["patterns_used"] == ["a", "b"]

    def test_fail_with_engine_error(self, recorder, scenario):
        decision, trace = recorder.begin(scenario)
        recorder.fail(decision, trace, StrategyGenerationFailure("no template", "x"))

        assert decision.is_failed
        assert decision.failure_kind == "strategy_generation_failure"
        assert decision.failure_reason == "no template"
        assert trace.success is False
        assert trace.error_message == "strategy_generation_failure: no template"

    def test_fail_with_cancellation(self, recorder, scenario):
        decision, trace = recorder.begin(scenario)
        recorder.fail(decision, trace, ScenarioCancelled("cancelled"))
        assert decision.failure_kind == "cancelled"
        assert decision.failure_reason == "cancelled"

    def test_fail_with_plain_exception(self, recorder, scenario):
        decision, trace = recorder.begin(scenario)
        recorder.fail(decision, trace, RuntimeError("boom"))
        assert decision.failure_kind == "RuntimeError"
        assert decision.failure_reason == "boom"

    def test_complete_twice_rejected(self, recorder, scenario, recommendation, strategies):
        decision, trace = recorder.begin(scenario)
        recorder.complete(decision, trace, recommendation, strategies)
        with pytest.raises(IllegalTransition):
            recorder.complete(decision, trace, recommendation, strategies)

    def test_fail_after_complete_rejected(self, recorder, scenario, recommendation, strategies):
        decision, trace = recorder.begin(scenario)
        recorder.complete(decision, trace, recommendation, strategies)
        with pytest.raises(IllegalTransition):
            recorder.fail(decision, trace, "late error")
        assert decision.is_completed
        assert decision.failure_kind is None


# =============================================================================
# State Machine Tests
# =============================================================================

class TestDecisionStateMachine:
    """Tests for the guarded Decision lifecycle."""

    def test_completed_cannot_revert(self, recorder, scenario, recommendation, strategies):
        decision, trace = recorder.begin(scenario)
        recorder.complete(decision, trace, recommendation, strategies)
        with pytest.raises(IllegalTransition) as exc_info:
            decision.status = DecisionStatus.PROCESSING.value
        assert exc_info.value.current == "completed"
        assert exc_info.value.requested == "processing"

    def test_failed_cannot_complete(self, recorder, scenario):
        decision, trace = recorder.begin(scenario)
        recorder.fail(decision, trace, "error")
        with pytest.raises(IllegalTransition):
            decision.status = DecisionStatus.COMPLETED.value

    def test_terminal_fields_are_frozen(self, recorder, scenario):
        decision, trace = recorder.begin(scenario)
        recorder.fail(decision, trace, "error")
        with pytest.raises(IllegalTransition):
            decision.confidence = 0.5

    def test_sync_status_stays_mutable(self, recorder, scenario):
        decision, trace = recorder.begin(scenario)
        recorder.fail(decision, trace, "error")
        decision.sync_status = SyncStatus.SYNCED.value
        assert decision.sync_status == "synced"

    def test_unknown_status_rejected(self, recorder, scenario):
        decision, _ = recorder.begin(scenario)
        with pytest.raises(IllegalTransition):
            decision.status = "archived"

    def test_trace_closes_once(self, recorder, scenario):
        _, trace = recorder.begin(scenario)
        trace.close(success=True)
        with pytest.raises(IllegalTransition):
            trace.close(success=False)


# =============================================================================
# Record Schema Tests
# =============================================================================

class TestRecords:
    """Tests for to_record() schemas."""

    def test_decision_record_keys(self, recorder, scenario, recommendation, strategies):
        decision, trace = recorder.begin(scenario)
        recorder.complete(decision, trace, recommendation, strategies)
        record = decision.to_record()
        assert list(record) == [
            "id", "context", "question", "recommendation", "reasoning",
            "confidence", "insights", "patterns", "timestamp", "execution_time_ms",
            "status", "philosophy_alignment", "source", "tenant_id", "metadata",
            "trace_id", "parent_decision_id", "branch_strategy", "deployment_plan",
            "environment_handling", "approval_required", "risk_assessment",
            "sync_status", "created_at", "updated_at",
        ]
        assert record["status"] == "completed"
        assert record["source"] == "tests"

    def test_trace_record_keys(self, recorder, scenario):
        decision, trace = recorder.begin(scenario)
        recorder.fail(decision, trace, "error")
        record = trace.to_record()
        assert list(record) == [
            "trace_id", "decision_id", "operation", "query_text", "parameters",
            "start_time", "end_time", "duration_ms", "success", "error_message",
            "metadata", "branch_id", "environment", "created_at",
        ]
        assert record["success"] is False
        assert record["environment"] == "test"

    def test_summary(self, recorder, scenario, recommendation, strategies):
        decision, trace = recorder.begin(scenario)
        recorder.complete(decision, trace, recommendation, strategies)
        assert "91.4%" in decision.summary()
        assert "approval-required" in decision.summary()
