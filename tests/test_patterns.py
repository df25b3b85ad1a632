"""
Tests for Pattern Catalog Module
================================

Tests for patterns.py - reusable pattern store, relevance and usage bookkeeping.
"""

import logging
import threading

import pytest

from decisionforge.models import Scenario
from decisionforge.patterns import (
    DEFAULT_PATTERNS,
    RELEVANCE_KEYWORDS,
    Pattern,
    PatternCatalog,
    create_default_catalog,
    is_relevant,
)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def catalog():
    """Create a catalog seeded with the default patterns."""
    return create_default_catalog()


@pytest.fixture
def api_scenario():
    return Scenario(
        name="billing-sync",
        kind="api-integration",
        context="Billing service enhancement",
        requirement="Add a second payments API next to the existing one",
    )


@pytest.fixture
def unrelated_scenario():
    return Scenario(
        name="docs-refresh",
        kind="api-integration",
        context="Documentation",
        requirement="Rewrite the onboarding guide",
    )


# =============================================================================
# Pattern Tests
# =============================================================================

class TestPattern:
    """Tests for the Pattern dataclass."""

    def test_values_are_clamped(self):
        """Test out-of-range statistics are clamped."""
        pattern = Pattern("p1", "P", "ctx", "architectural",
                          success_rate=150, usage_count=-3, confidence=1.7)
        assert pattern.success_rate == 100.0
        assert pattern.usage_count == 0
        assert pattern.confidence == 1.0

    def test_identity_is_pattern_id(self):
        """Test equality and hashing use only the id."""
        a = Pattern("p1", "First", "ctx", "architectural")
        b = Pattern("p1", "Renamed", "other", "monitoring")
        assert a == b
        assert len({a, b}) == 1

    def test_round_trip_dict(self):
        """Test to_dict/from_dict preserve fields."""
        original = DEFAULT_PATTERNS[0]
        restored = Pattern.from_dict(original.to_dict())
        assert restored.pattern_id == original.pattern_id
        assert restored.data == original.data
        assert restored.success_rate == original.success_rate


# =============================================================================
# Relevance Tests
# =============================================================================

class TestRelevance:
    """Tests for keyword relevance."""

    def test_keyword_list(self):
        assert RELEVANCE_KEYWORDS == (
            "api", "service", "integration", "singleton", "architecture", "database",
        )

    def test_keyword_must_occur_on_both_sides(self, api_scenario):
        """Test a pattern is relevant only when a keyword appears in both texts."""
        with_api = Pattern("p1", "Gateway", "ctx", "architectural", data={"usage": "API calls"})
        without = Pattern("p2", "Gateway", "ctx", "architectural", data={"usage": "queues"})
        assert is_relevant(with_api, api_scenario)
        assert not is_relevant(without, api_scenario)

    def test_matching_is_case_insensitive(self, api_scenario):
        pattern = Pattern("p1", "SERVICE Registry", "ctx", "architectural")
        assert is_relevant(pattern, api_scenario)

    def test_relevant_returns_frozenset(self, catalog, api_scenario):
        relevant = catalog.relevant(api_scenario)
        assert isinstance(relevant, frozenset)
        assert {p.pattern_id for p in relevant} == {
            "singleton_service_pattern",
            "trace_system_integration",
            "progressive_enhancement_workflow",
        }

    def test_no_relevant_patterns(self, catalog, unrelated_scenario):
        assert catalog.relevant(unrelated_scenario) == frozenset()


# =============================================================================
# PatternCatalog Tests
# =============================================================================

class TestPatternCatalog:
    """Tests for the PatternCatalog class."""

    def test_default_catalog(self, catalog):
        assert len(catalog) == 4
        assert "singleton_service_pattern" in catalog
        assert catalog.get("missing") is None

    def test_default_catalog_is_independent(self, catalog):
        """Test seeding copies the default patterns."""
        catalog.record_usage("singleton_service_pattern")
        assert DEFAULT_PATTERNS[0].usage_count == 156

    def test_add_overwrites_by_id(self, catalog):
        catalog.add(Pattern("singleton_service_pattern", "Replaced", "ctx", "architectural"))
        assert len(catalog) == 4
        assert catalog.get("singleton_service_pattern").name == "Replaced"

    def test_ranked_by_success_rate(self, catalog):
        ranked = catalog.ranked([
            "decision_history_integration",
            "singleton_service_pattern",
            "unknown",
            "trace_system_integration",
        ])
        assert [p.pattern_id for p in ranked] == [
            "singleton_service_pattern",
            "trace_system_integration",
            "decision_history_integration",
        ]

    def test_record_usage(self, catalog):
        pattern = catalog.record_usage("trace_system_integration")
        assert pattern.usage_count == 90
        assert pattern.last_used is not None

    def test_record_usage_unknown_id_warns(self, catalog, caplog):
        """Test unknown ids are logged, not raised."""
        with caplog.at_level(logging.WARNING):
            assert catalog.record_usage("nope") is None
        assert "nope" in caplog.text

    def test_record_usage_is_atomic(self, catalog):
        """Test concurrent increments are not lost."""
        def bump():
            for _ in range(200):
                catalog.record_usage("singleton_service_pattern")

        threads = [threading.Thread(target=bump) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert catalog.get("singleton_service_pattern").usage_count == 156 + 1600

    def test_record_outcome(self, catalog):
        """Test outcomes move the success rate toward the observed ratio."""
        before = catalog.get("decision_history_integration").success_rate
        after_fail = catalog.record_outcome("decision_history_integration", False).success_rate
        assert after_fail < before
        after_success = catalog.record_outcome("decision_history_integration", True).success_rate
        assert after_success > after_fail
        assert 0.0 <= after_success <= 100.0

    def test_record_outcome_unknown_id(self, catalog):
        assert catalog.record_outcome("nope", True) is None

    def test_snapshot_is_independent(self, catalog):
        snapshot = catalog.snapshot()
        catalog.record_usage("singleton_service_pattern")
        assert snapshot.get("singleton_service_pattern").usage_count == 156
        assert catalog.get("singleton_service_pattern").usage_count == 157

    def test_stats(self, catalog):
        stats = catalog.get_stats()
        assert stats["total_patterns"] == 4
        assert stats["by_type"]["monitoring"] == 1
        assert stats["total_usage"] == 156 + 89 + 203 + 67

    def test_empty_stats(self):
        assert PatternCatalog().get_stats()["total_patterns"] == 0
