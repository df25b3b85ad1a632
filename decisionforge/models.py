"""
Core Value Types
================

Immutable inputs and intermediate products of one decision cycle:

- Scenario: the task descriptor supplied by the caller
- Strategy: one mode-specific candidate plan
- Recommendation: the blended hybrid output with governance fields

Decision and Trace records live in decisionforge.decision because they carry
lifecycle state.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from decisionforge.errors import InvalidScenario


class StrategyMode(Enum):
    """Execution modes a strategy can be generated for."""
    CONNECTED = "connected"  # Live environment access
    LOCAL = "local"          # Offline / sandboxed access


class RiskLevel(Enum):
    """Coarse risk buckets derived from the numeric risk score."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Scenario:
    """
    An input task descriptor the engine reasons about.

    ``kind`` is the classification tag used to look up a strategy template;
    ``name`` is only a human-readable label.
    """
    name: str
    kind: str
    context: str
    requirement: str
    credentials: dict[str, str] = field(default_factory=dict)
    constraints: tuple[str, ...] = ()
    requirements: tuple[str, ...] = ()
    high_sensitivity: bool = False

    REQUIRED_FIELDS = ("name", "kind", "requirement", "context")

    def __post_init__(self):
        # Accept lists from callers but store tuples
        object.__setattr__(self, "constraints", tuple(self.constraints or ()))
        object.__setattr__(self, "requirements", tuple(self.requirements or ()))
        object.__setattr__(self, "credentials", dict(self.credentials or {}))

    def validate(self) -> "Scenario":
        """
        Check that the scenario carries every required field.

        Raises:
            InvalidScenario: if name, kind, requirement or context is blank
        """
        missing = [
            name for name in self.REQUIRED_FIELDS
            if not str(getattr(self, name) or "").strip()
        ]
        if missing:
            raise InvalidScenario(
                f"Scenario is missing required field(s): {', '.join(missing)}",
                missing_fields=missing,
            )
        return self

    @property
    def all_requirements(self) -> tuple[str, ...]:
        """Constraints and requirements combined, duplicates removed."""
        seen: dict[str, None] = {}
        for item in (*self.constraints, *self.requirements):
            seen.setdefault(item, None)
        return tuple(seen)

    @property
    def search_text(self) -> str:
        """Lower-cased text blob used for pattern relevance."""
        return f"{self.name} {self.requirement} {self.context}".lower()

    def to_dict(self) -> dict:
        """Convert to dictionary. Credential values are masked."""
        return {
            "name": self.name,
            "kind": self.kind,
            "context": self.context,
            "requirement": self.requirement,
            "credentials": {key: "***" for key in self.credentials},
            "constraints": list(self.constraints),
            "requirements": list(self.requirements),
            "high_sensitivity": self.high_sensitivity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Scenario":
        """Create a Scenario from a dictionary (e.g. a JSON scenario file)."""
        return cls(
            name=data.get("name", ""),
            kind=data.get("kind", ""),
            context=data.get("context", ""),
            requirement=data.get("requirement", ""),
            credentials=data.get("credentials") or {},
            constraints=tuple(data.get("constraints") or ()),
            requirements=tuple(data.get("requirements") or ()),
            high_sensitivity=bool(data.get("high_sensitivity", False)),
        )


@dataclass(frozen=True)
class Strategy:
    """One mode-specific candidate plan. Never mutated after creation."""
    mode: StrategyMode
    confidence: float
    steps: tuple[str, ...]
    reasoning: tuple[str, ...]
    advantages: tuple[str, ...]
    limitations: tuple[str, ...]
    patterns_applied: frozenset[str]
    summary: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "mode": self.mode.value,
            "confidence": self.confidence,
            "steps": list(self.steps),
            "reasoning": list(self.reasoning),
            "advantages": list(self.advantages),
            "limitations": list(self.limitations),
            "patterns_applied": sorted(self.patterns_applied),
            "summary": self.summary,
        }


@dataclass(frozen=True)
class Recommendation:
    """The engine's final hybrid output, including governance fields."""
    text: str
    reasoning: str
    confidence: float
    insights: tuple[str, ...]
    patterns_applied: frozenset[str]
    philosophy_alignment: tuple[str, ...]
    branch_strategy: str
    deployment_plan: str
    environment_handling: str
    approval_required: bool
    risk_level: RiskLevel
    risk_score: float
    summary: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "text": self.text,
            "reasoning": self.reasoning,
            "confidence": self.confidence,
            "insights": list(self.insights),
            "patterns_applied": sorted(self.patterns_applied),
            "philosophy_alignment": list(self.philosophy_alignment),
            "branch_strategy": self.branch_strategy,
            "deployment_plan": self.deployment_plan,
            "environment_handling": self.environment_handling,
            "approval_required": self.approval_required,
            "risk_level": self.risk_level.value,
            "risk_score": self.risk_score,
            "summary": self.summary,
        }


def parse_mode(mode: Any) -> StrategyMode:
    """Parse a StrategyMode from an enum member or its string value."""
    if isinstance(mode, StrategyMode):
        return mode
    try:
        return StrategyMode(str(mode).lower())
    except ValueError:
        raise ValueError(f"Unknown strategy mode: {mode!r}") from None
