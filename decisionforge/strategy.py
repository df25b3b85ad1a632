"""
Strategy Generation
===================

Turns a Scenario plus a pattern catalog snapshot into a mode-specific
Strategy. One function serves every mode; the template registry supplies the
per-mode content and the mode supplies the baseline confidence.

generate() is a pure function of its inputs: it performs no I/O and never
mutates the catalog, so the connected and local invocations can run
concurrently.
"""

from typing import Union

from decisionforge.models import Scenario, Strategy, StrategyMode, parse_mode
from decisionforge.patterns import PatternCatalog
from decisionforge.templates import TemplateRegistry


def generate(
    scenario: Scenario,
    mode: Union[StrategyMode, str],
    catalog: PatternCatalog,
    registry: TemplateRegistry,
) -> Strategy:
    """
    Generate the strategy for one mode.

    Args:
        scenario: The scenario to plan for
        mode: Strategy mode (connected or local)
        catalog: Pattern catalog consulted for relevant patterns
        registry: Template registry keyed by scenario kind

    Returns:
        The generated Strategy

    Raises:
        StrategyGenerationFailure: if no template is registered for the
            scenario kind, or the template has no content for the mode
    """
    mode = parse_mode(mode)
    template = registry.resolve(scenario.kind)
    content = template.for_mode(mode)

    patterns_applied = frozenset(p.pattern_id for p in catalog.relevant(scenario))

    return Strategy(
        mode=mode,
        confidence=template.confidence_for(mode),
        steps=content.steps,
        reasoning=content.reasoning,
        advantages=content.advantages,
        limitations=content.limitations,
        patterns_applied=patterns_applied,
        summary=content.summary,
    )
