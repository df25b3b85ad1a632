"""
Tests for Strategy Templates and Generation
===========================================

Tests for templates.py and strategy.py.
"""

import json
import tempfile
from pathlib import Path

import pytest

from decisionforge.errors import StrategyGenerationFailure
from decisionforge.models import Scenario, StrategyMode
from decisionforge.patterns import create_default_catalog
from decisionforge.strategy import generate
from decisionforge.templates import (
    API_INTEGRATION_TEMPLATE,
    MODE_BASELINES,
    REPOSITORY_CREATION_TEMPLATE,
    StrategyTemplate,
    TemplateRegistry,
    create_default_registry,
    load_templates_file,
)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def registry():
    return create_default_registry()


@pytest.fixture
def catalog():
    return create_default_catalog()


@pytest.fixture
def scenario():
    return Scenario(
        name="billing-sync",
        kind="api-integration",
        context="Billing service enhancement",
        requirement="Add a second payments API next to the existing one",
    )


def _template_data(kind="queue-migration", connected_confidence=None):
    connected = {
        "steps": ["Inspect the live queue"],
        "reasoning": ["Live access"],
        "advantages": ["Real data"],
        "limitations": ["Needs network"],
        "summary": "Connected migration",
    }
    if connected_confidence is not None:
        connected["confidence"] = connected_confidence
    return {
        "kind": kind,
        "description": "Move a queue to a new broker",
        "modes": {
            "connected": connected,
            "local": {
                "steps": ["Replay captured messages"],
                "reasoning": ["Offline safety"],
                "advantages": ["No live risk"],
                "limitations": ["Stale data"],
                "summary": "Local migration",
            },
        },
    }


# =============================================================================
# StrategyTemplate Tests
# =============================================================================

class TestStrategyTemplate:
    """Tests for the StrategyTemplate dataclass."""

    def test_baseline_confidence(self):
        assert API_INTEGRATION_TEMPLATE.confidence_for(StrategyMode.CONNECTED) == 0.92
        assert API_INTEGRATION_TEMPLATE.confidence_for(StrategyMode.LOCAL) == 0.78
        assert MODE_BASELINES[StrategyMode.CONNECTED] == 0.92

    def test_confidence_override(self):
        template = StrategyTemplate.from_dict(_template_data(connected_confidence=0.85))
        assert template.confidence_for(StrategyMode.CONNECTED) == 0.85
        assert template.confidence_for(StrategyMode.LOCAL) == 0.78

    def test_repository_creation_flags(self):
        assert REPOSITORY_CREATION_TEMPLATE.high_sensitivity
        assert REPOSITORY_CREATION_TEMPLATE.creates_repository
        assert not API_INTEGRATION_TEMPLATE.high_sensitivity

    def test_from_dict_requires_kind(self):
        data = _template_data()
        del data["kind"]
        with pytest.raises(ValueError):
            StrategyTemplate.from_dict(data)


# =============================================================================
# TemplateRegistry Tests
# =============================================================================

class TestTemplateRegistry:
    """Tests for the TemplateRegistry class."""

    def test_default_kinds(self, registry):
        assert registry.kinds() == ["api-integration", "repository-creation"]
        assert registry.high_sensitivity_kinds() == frozenset({"repository-creation"})
        assert registry.repository_creation_kinds() == frozenset({"repository-creation"})

    def test_resolve_unknown_kind(self, registry):
        with pytest.raises(StrategyGenerationFailure) as exc_info:
            registry.resolve("weather-report")
        assert exc_info.value.scenario_kind == "weather-report"

    def test_register_replaces(self):
        registry = TemplateRegistry()
        registry.register(StrategyTemplate.from_dict(_template_data()))
        registry.register(StrategyTemplate.from_dict(_template_data(connected_confidence=0.5)))
        assert len(registry) == 1
        assert registry.get("queue-migration").confidence_for(StrategyMode.CONNECTED) == 0.5

    def test_load_file_with_wrapper(self, temp_dir):
        path = temp_dir / "templates.json"
        path.write_text(json.dumps({"templates": [_template_data()]}))
        templates = load_templates_file(path)
        assert [t.kind for t in templates] == ["queue-migration"]

    def test_load_file_bare_list(self, temp_dir):
        path = temp_dir / "templates.json"
        path.write_text(json.dumps([_template_data("a"), _template_data("b")]))
        registry = TemplateRegistry()
        assert registry.load_file(path) == 2
        assert "a" in registry and "b" in registry

    def test_default_registry_with_extra_files(self, temp_dir):
        path = temp_dir / "templates.json"
        path.write_text(json.dumps([_template_data()]))
        registry = create_default_registry([path])
        assert len(registry) == 3


# =============================================================================
# Strategy Generation Tests
# =============================================================================

class TestGenerate:
    """Tests for strategy.generate."""

    def test_connected_strategy(self, scenario, catalog, registry):
        strategy = generate(scenario, StrategyMode.CONNECTED, catalog, registry)
        assert strategy.mode is StrategyMode.CONNECTED
        assert strategy.confidence == 0.92
        assert strategy.steps == API_INTEGRATION_TEMPLATE.for_mode(StrategyMode.CONNECTED).steps

    def test_mode_accepts_string(self, scenario, catalog, registry):
        strategy = generate(scenario, "local", catalog, registry)
        assert strategy.mode is StrategyMode.LOCAL
        assert strategy.confidence == 0.78

    def test_unknown_mode(self, scenario, catalog, registry):
        with pytest.raises(ValueError):
            generate(scenario, "hybrid", catalog, registry)

    def test_patterns_applied_are_relevant_ids(self, scenario, catalog, registry):
        strategy = generate(scenario, StrategyMode.CONNECTED, catalog, registry)
        assert strategy.patterns_applied == frozenset(
            p.pattern_id for p in catalog.relevant(scenario)
        )

    def test_generation_does_not_touch_catalog(self, scenario, catalog, registry):
        before = catalog.get_stats()["total_usage"]
        generate(scenario, StrategyMode.LOCAL, catalog, registry)
        assert catalog.get_stats()["total_usage"] == before

    def test_unknown_kind_fails(self, catalog, registry):
        scenario = Scenario(name="x", kind="weather-report", context="c", requirement="r")
        with pytest.raises(StrategyGenerationFailure):
            generate(scenario, StrategyMode.CONNECTED, catalog, registry)
