"""
Strategy Synthesis
==================

Blends the connected and local strategies into one hybrid Recommendation.

Confidence:
    combined   = 0.6 * connected + 0.4 * local
    confidence = min(0.95, combined + 0.05)

The 0.05 bonus rewards two independent strategies corroborating each other;
the 0.95 cap keeps a synthesis from ever claiming near-certainty.

The recommendation narrative follows a fixed hybrid policy: develop in the
lower-risk mode, validate and deploy in the higher-access mode. It is
templated from mode names, not computed from strategy content.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from decisionforge.models import Recommendation, Strategy, StrategyMode
from decisionforge.risk import RiskScore


CONNECTED_WEIGHT = 0.6
LOCAL_WEIGHT = 0.4
SYNTHESIS_BONUS = 0.05
CONFIDENCE_CAP = 0.95


# Guiding principles emitted as philosophy alignment
DEFAULT_PRINCIPLES: tuple[str, ...] = (
    "Execution-led refinement: develop {develop}, validate {deploy}, deploy incrementally",
    "Progressive enhancement: build core functionality safely, enhance with {deploy} capabilities",
    "Test before deploy: exercise every change before it reaches a live environment",
    "Separation of concerns: keep development and deployment concerns apart",
)


@dataclass(frozen=True)
class HybridPolicy:
    """Phase descriptions for the develop-then-deploy hybrid plan."""
    recommendation: str = (
        "Hybrid approach: {develop} development with {deploy} validation and deployment. "
        "Use {develop} safety for development and {deploy} capabilities for "
        "validation and deployment."
    )
    reasoning: str = (
        "The two strategies have complementary strengths. {develop_title} development "
        "provides safety and thorough testing, while {deploy} capabilities enable "
        "real-world validation and deployment. Combining them keeps the benefits of "
        "both while limiting risk."
    )
    insights: tuple[str, ...] = (
        "Hybrid approach uses the strengths of both {deploy} and {develop} modes",
        "{develop_title} development phase removes the risk of accidental live changes",
        "{deploy_title} validation phase confirms real-world compatibility and performance",
        "Pattern-based implementation keeps the architecture consistent",
        "Testing happens at both the {develop} and preview deployment stages",
    )
    branch_strategy: str = (
        "{develop_title}: {develop}/feature-branch -> {deploy_title}: feature/integration "
        "-> Preview -> Production"
    )
    deployment_plan: str = (
        "{develop_title} development -> Sync to {deploy} -> Preview deployment "
        "-> Stakeholder validation -> Production"
    )
    environment_handling: str = (
        "{develop_title} .env development -> {deploy_title} environment sync "
        "-> Production configuration"
    )
    summary: str = (
        "Hybrid approach combining {develop} safety with {deploy} validation "
        "({confidence:.1f}% confidence)"
    )


class _Names(dict):
    """Leaves unknown placeholders in user-supplied text untouched."""

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def blend_confidence(connected: float, local: float) -> float:
    """Blend two strategy confidences, add the synthesis bonus, apply the cap."""
    combined = CONNECTED_WEIGHT * connected + LOCAL_WEIGHT * local
    return max(0.0, min(CONFIDENCE_CAP, round(combined + SYNTHESIS_BONUS, 6)))


class Synthesizer:
    """
    Combines a connected and a local strategy into a Recommendation.

    Principles and the hybrid policy are injectable so deployments can state
    their own guiding principles.
    """

    def __init__(
        self,
        principles: Optional[Sequence[str]] = None,
        policy: Optional[HybridPolicy] = None,
    ):
        self.principles = tuple(DEFAULT_PRINCIPLES if principles is None else principles)
        self.policy = policy or HybridPolicy()

    def synthesize(
        self,
        connected: Strategy,
        local: Strategy,
        risk: RiskScore,
    ) -> Recommendation:
        """
        Blend the two strategies and the risk score into a Recommendation.

        Raises:
            ValueError: if the strategies are not (connected, local)
        """
        if connected.mode is not StrategyMode.CONNECTED:
            raise ValueError(f"Expected a connected strategy, got {connected.mode.value}")
        if local.mode is not StrategyMode.LOCAL:
            raise ValueError(f"Expected a local strategy, got {local.mode.value}")

        confidence = blend_confidence(connected.confidence, local.confidence)

        names = _Names({
            "develop": local.mode.value,
            "deploy": connected.mode.value,
            "develop_title": local.mode.value.title(),
            "deploy_title": connected.mode.value.title(),
        })
        policy = self.policy

        return Recommendation(
            text=policy.recommendation.format_map(names),
            reasoning=policy.reasoning.format_map(names),
            confidence=confidence,
            insights=tuple(line.format_map(names) for line in policy.insights),
            patterns_applied=connected.patterns_applied | local.patterns_applied,
            philosophy_alignment=tuple(p.format_map(names) for p in self.principles),
            branch_strategy=policy.branch_strategy.format_map(names),
            deployment_plan=policy.deployment_plan.format_map(names),
            environment_handling=policy.environment_handling.format_map(names),
            approval_required=risk.approval_required,
            risk_level=risk.level,
            risk_score=risk.score,
            summary=policy.summary.format_map(_Names(names, confidence=confidence * 100)),
        )
