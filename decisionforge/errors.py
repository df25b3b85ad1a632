"""
Decision Engine Errors
======================

Structural failures raised by the decision engine. A low-confidence
recommendation is never an error; only the kinds below are.

Each error carries a ``kind`` string so that failed decisions and traces can
record which part of the taxonomy they belong to.
"""

from typing import Optional


class DecisionEngineError(Exception):
    """Base class for all decision engine errors."""

    kind = "decision_engine_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def describe(self) -> str:
        """Return '<kind>: <message>' for trace and decision records."""
        return f"{self.kind}: {self.message}"


class InvalidScenario(DecisionEngineError):
    """Scenario is missing a required field. No decision is created."""

    kind = "invalid_scenario"

    def __init__(self, message: str, missing_fields: Optional[list[str]] = None):
        super().__init__(message)
        self.missing_fields = missing_fields or []


class StrategyGenerationFailure(DecisionEngineError):
    """No strategy template is registered for the scenario kind."""

    kind = "strategy_generation_failure"

    def __init__(self, message: str, scenario_kind: str = ""):
        super().__init__(message)
        self.scenario_kind = scenario_kind


class RiskComputationError(DecisionEngineError):
    """Risk score could not be computed from the given inputs."""

    kind = "risk_computation_error"


class PersistenceFailure(DecisionEngineError):
    """The decision store did not acknowledge an append."""

    kind = "persistence_failure"


class IllegalTransition(DecisionEngineError):
    """A decision was moved out of a terminal state."""

    kind = "illegal_transition"

    def __init__(self, decision_id: str, current: str, requested: str):
        super().__init__(
            f"Decision {decision_id} cannot move from '{current}' to '{requested}'"
        )
        self.decision_id = decision_id
        self.current = current
        self.requested = requested


class ScenarioCancelled(DecisionEngineError):
    """Scenario processing was cancelled before synthesis completed."""

    kind = "cancelled"
