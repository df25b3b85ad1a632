"""
Risk Assessment Module
======================

Scores the risk of acting on a synthesized recommendation before it is
recorded, so the recommendation can carry an approval gate.

Risk factors (additive, each clamped to [0, 1]):
- Base risk of any change
- Scenario creates a new repository
- Scenario touches many credentials (more than 2)
- Scenario has many constraints/requirements (more than 5)
- The two strategies disagree strongly on confidence (gap over 0.15)

The assessment is deterministic and side-effect free.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from decisionforge.models import RiskLevel, Scenario, Strategy


BASE_RISK = 0.3
REPOSITORY_CREATION_RISK = 0.2
CREDENTIALS_RISK = 0.1
COMPLEXITY_RISK = 0.1
CONFIDENCE_GAP_RISK = 0.1

CREDENTIALS_THRESHOLD = 2
COMPLEXITY_THRESHOLD = 5
CONFIDENCE_GAP_THRESHOLD = 0.15

HIGH_THRESHOLD = 0.7
MEDIUM_THRESHOLD = 0.4
APPROVAL_THRESHOLD = 0.6

# Scores are rounded before comparing against thresholds so that, for
# example, 0.3 + 0.2 + 0.1 compares equal to 0.6.
SCORE_PRECISION = 6

DEFAULT_REPOSITORY_CREATION_KINDS: frozenset[str] = frozenset({"repository-creation"})


@dataclass(frozen=True)
class RiskScore:
    """Bounded risk estimate for one decision cycle."""
    score: float
    level: RiskLevel
    approval_required: bool
    factors: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "score": self.score,
            "level": self.level.value,
            "approval_required": self.approval_required,
            "factors": list(self.factors),
        }


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def classify_level(score: float) -> RiskLevel:
    """Map a risk score to its level: >0.7 high, >0.4 medium, else low."""
    if score > HIGH_THRESHOLD:
        return RiskLevel.HIGH
    if score > MEDIUM_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


class RiskAssessor:
    """
    Computes the additive risk heuristic for a scenario and its strategies.

    Repository-creation and high-sensitivity classes are sets of scenario
    kinds, normally taken from the template registry flags.
    """

    def __init__(
        self,
        repository_creation_kinds: Optional[Iterable[str]] = None,
        high_sensitivity_kinds: Optional[Iterable[str]] = None,
    ):
        if repository_creation_kinds is None:
            repository_creation_kinds = DEFAULT_REPOSITORY_CREATION_KINDS
        self.repository_creation_kinds = frozenset(repository_creation_kinds)
        self.high_sensitivity_kinds = frozenset(high_sensitivity_kinds or ())

    def is_high_sensitivity(self, scenario: Scenario) -> bool:
        """Check whether the scenario is flagged high-sensitivity."""
        return scenario.high_sensitivity or scenario.kind in self.high_sensitivity_kinds

    def assess(
        self,
        scenario: Scenario,
        strategy_a: Strategy,
        strategy_b: Strategy,
    ) -> RiskScore:
        """
        Assess the risk of a scenario given its two candidate strategies.

        Args:
            scenario: The scenario being decided
            strategy_a: First candidate strategy
            strategy_b: Second candidate strategy

        Returns:
            RiskScore with score in [0, 1], level and approval gate
        """
        terms: list[tuple[str, float]] = [("base", BASE_RISK)]

        if scenario.kind in self.repository_creation_kinds:
            terms.append(("repository_creation", REPOSITORY_CREATION_RISK))

        if len(scenario.credentials) > CREDENTIALS_THRESHOLD:
            terms.append(("multiple_credentials", CREDENTIALS_RISK))

        if len(scenario.all_requirements) > COMPLEXITY_THRESHOLD:
            terms.append(("complex_requirements", COMPLEXITY_RISK))

        gap = abs(strategy_a.confidence - strategy_b.confidence)
        if round(gap, SCORE_PRECISION) > CONFIDENCE_GAP_THRESHOLD:
            terms.append(("confidence_variance", CONFIDENCE_GAP_RISK))

        score = _clamp(round(sum(_clamp(value) for _, value in terms), SCORE_PRECISION))
        approval_required = score > APPROVAL_THRESHOLD or self.is_high_sensitivity(scenario)

        return RiskScore(
            score=score,
            level=classify_level(score),
            approval_required=approval_required,
            factors=tuple(name for name, _ in terms),
        )
