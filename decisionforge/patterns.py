"""
Pattern Catalog
===============

Keyed store of reusable solution patterns with relevance lookup and usage
bookkeeping.

A catalog instance is passed explicitly to the engine; there is no module
level registry. Mutations (add, record_usage, record_outcome) are guarded by a
lock so one catalog can back concurrently processed decisions.

Usage:
    from decisionforge.patterns import PatternCatalog, DEFAULT_PATTERNS

    catalog = PatternCatalog.from_patterns(DEFAULT_PATTERNS)
    relevant = catalog.relevant(scenario)
    for pattern in catalog.ranked(p.pattern_id for p in relevant):
        print(pattern.name, pattern.success_rate)

    catalog.record_usage("singleton_service_pattern")
"""

import copy
import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, Optional

from decisionforge.models import Scenario

logger = logging.getLogger(__name__)


# Keywords that must appear in both the scenario and the pattern text
RELEVANCE_KEYWORDS: tuple[str, ...] = (
    "api",
    "service",
    "integration",
    "singleton",
    "architecture",
    "database",
)


@dataclass(eq=False)
class Pattern:
    """A reusable, ranked solution fragment with success/usage statistics."""
    pattern_id: str
    name: str
    source_context: str
    pattern_type: str
    success_rate: float = 0.0     # 0-100
    usage_count: int = 0
    confidence: float = 0.5       # 0.0-1.0
    data: dict[str, Any] = field(default_factory=dict)
    last_used: Optional[datetime] = None

    def __post_init__(self):
        self.success_rate = max(0.0, min(100.0, float(self.success_rate)))
        self.confidence = max(0.0, min(1.0, float(self.confidence)))
        self.usage_count = max(0, int(self.usage_count))

    def __hash__(self) -> int:
        return hash(self.pattern_id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Pattern):
            return NotImplemented
        return self.pattern_id == other.pattern_id

    @property
    def search_text(self) -> str:
        """Lower-cased text blob used for relevance matching."""
        payload = json.dumps(self.data, sort_keys=True, default=str)
        return f"{self.name} {self.pattern_type} {payload}".lower()

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "pattern_id": self.pattern_id,
            "name": self.name,
            "source_context": self.source_context,
            "pattern_type": self.pattern_type,
            "success_rate": self.success_rate,
            "usage_count": self.usage_count,
            "confidence": self.confidence,
            "data": self.data,
            "last_used": self.last_used.isoformat() if self.last_used else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Pattern":
        """Create Pattern from dictionary."""
        last_used = data.get("last_used")
        if isinstance(last_used, str):
            last_used = datetime.fromisoformat(last_used)
        return cls(
            pattern_id=data["pattern_id"],
            name=data["name"],
            source_context=data.get("source_context", ""),
            pattern_type=data.get("pattern_type", ""),
            success_rate=data.get("success_rate", 0.0),
            usage_count=data.get("usage_count", 0),
            confidence=data.get("confidence", 0.5),
            data=data.get("data") or {},
            last_used=last_used,
        )


def is_relevant(pattern: Pattern, scenario: Scenario) -> bool:
    """Check whether any relevance keyword occurs in both text blobs."""
    scenario_text = scenario.search_text
    pattern_text = pattern.search_text
    return any(
        keyword in scenario_text and keyword in pattern_text
        for keyword in RELEVANCE_KEYWORDS
    )


class PatternCatalog:
    """
    Keyed store of reusable patterns.

    Read-mostly during a decision cycle. ``record_usage`` is the only write
    the engine performs; ``record_outcome`` is the hook for external outcome
    feedback.
    """

    def __init__(self, patterns: Optional[Iterable[Pattern]] = None):
        self._patterns: dict[str, Pattern] = {}
        self._lock = threading.Lock()
        for pattern in patterns or []:
            self.add(pattern)

    @classmethod
    def from_patterns(cls, patterns: Iterable[Pattern]) -> "PatternCatalog":
        """Build a catalog from independent copies of the given patterns."""
        return cls(copy.deepcopy(p) for p in patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def __contains__(self, pattern_id: object) -> bool:
        return pattern_id in self._patterns

    def __iter__(self) -> Iterator[Pattern]:
        with self._lock:
            return iter(list(self._patterns.values()))

    def add(self, pattern: Pattern) -> None:
        """Insert or overwrite a pattern by id."""
        with self._lock:
            self._patterns[pattern.pattern_id] = pattern

    def get(self, pattern_id: str) -> Optional[Pattern]:
        """Get a pattern by id."""
        return self._patterns.get(pattern_id)

    def relevant(self, scenario: Scenario) -> frozenset[Pattern]:
        """
        Get the patterns relevant to a scenario.

        No ordering is implied; use ranked() to sort by success rate.
        """
        with self._lock:
            candidates = list(self._patterns.values())
        return frozenset(p for p in candidates if is_relevant(p, scenario))

    def ranked(self, pattern_ids: Iterable[str]) -> list[Pattern]:
        """Resolve ids to patterns sorted by success rate (highest first)."""
        found = [self._patterns[pid] for pid in set(pattern_ids) if pid in self._patterns]
        return sorted(found, key=lambda p: (-p.success_rate, p.pattern_id))

    def record_usage(self, pattern_id: str) -> Optional[Pattern]:
        """
        Increment the usage count of a pattern.

        Unknown ids are logged and ignored; instrumentation calls never fail
        a decision.

        Returns:
            The updated Pattern, or None if the id is unknown
        """
        with self._lock:
            pattern = self._patterns.get(pattern_id)
            if pattern is None:
                logger.warning("record_usage: unknown pattern id %r", pattern_id)
                return None
            pattern.usage_count += 1
            pattern.last_used = datetime.now(timezone.utc)
            return pattern

    def record_outcome(self, pattern_id: str, success: bool) -> Optional[Pattern]:
        """
        Fold an observed outcome into a pattern's success rate.

        The success rate is treated as a running ratio over usage_count
        observations. Called by outcome-feedback collaborators, never by the
        engine itself.
        """
        with self._lock:
            pattern = self._patterns.get(pattern_id)
            if pattern is None:
                logger.warning("record_outcome: unknown pattern id %r", pattern_id)
                return None
            observations = max(pattern.usage_count, 1)
            successes = pattern.success_rate / 100.0 * observations
            successes += 1.0 if success else 0.0
            rate = successes / (observations + 1) * 100.0
            pattern.success_rate = round(max(0.0, min(100.0, rate)), 2)
            return pattern

    def snapshot(self) -> "PatternCatalog":
        """Return an independent copy of this catalog."""
        with self._lock:
            patterns = list(self._patterns.values())
        return PatternCatalog.from_patterns(patterns)

    def get_stats(self) -> dict:
        """Get catalog statistics."""
        with self._lock:
            patterns = list(self._patterns.values())
        if not patterns:
            return {
                "total_patterns": 0,
                "by_type": {},
                "total_usage": 0,
                "avg_success_rate": 0.0,
            }

        by_type: dict[str, int] = {}
        for p in patterns:
            by_type[p.pattern_type] = by_type.get(p.pattern_type, 0) + 1

        return {
            "total_patterns": len(patterns),
            "by_type": by_type,
            "total_usage": sum(p.usage_count for p in patterns),
            "avg_success_rate": round(sum(p.success_rate for p in patterns) / len(patterns), 2),
        }


# Seed patterns supplied by the default pattern feed
DEFAULT_PATTERNS: list[Pattern] = [
    Pattern(
        pattern_id="singleton_service_pattern",
        name="Singleton Service Architecture",
        source_context="platform",
        pattern_type="architectural",
        success_rate=97.8,
        usage_count=156,
        confidence=0.95,
        data={
            "implementation": "Class-based singleton with getInstance() method",
            "benefits": ["Centralized logic", "Resource efficiency", "State consistency"],
            "usage": "Database connections, API services, background agents",
        },
    ),
    Pattern(
        pattern_id="trace_system_integration",
        name="Comprehensive Trace System",
        source_context="platform",
        pattern_type="monitoring",
        success_rate=94.2,
        usage_count=89,
        confidence=0.92,
        data={
            "implementation": "Database-backed trace archival with real-time monitoring",
            "benefits": ["Full observability", "Performance tracking", "Decision history"],
            "usage": "All database operations, API calls, decision tracking",
        },
    ),
    Pattern(
        pattern_id="progressive_enhancement_workflow",
        name="Progressive Enhancement Development",
        source_context="platform",
        pattern_type="development",
        success_rate=91.5,
        usage_count=203,
        confidence=0.89,
        data={
            "implementation": "Build core functionality first, enhance incrementally",
            "benefits": ["Reduced risk", "Faster delivery", "Better testing"],
            "usage": "Feature development, API enhancements, UI improvements",
        },
    ),
    Pattern(
        pattern_id="decision_history_integration",
        name="Decision History Integration",
        source_context="platform",
        pattern_type="intelligence",
        success_rate=88.7,
        usage_count=67,
        confidence=0.87,
        data={
            "implementation": "Store decisions with full context, reasoning, and traceability",
            "benefits": ["Learning from history", "Decision transparency", "Pattern recognition"],
            "usage": "All decisions, approval workflows, sync operations",
        },
    ),
]


def create_default_catalog() -> PatternCatalog:
    """Create a PatternCatalog seeded with DEFAULT_PATTERNS."""
    return PatternCatalog.from_patterns(DEFAULT_PATTERNS)
