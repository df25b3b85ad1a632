"""
Decision Engine
===============

Orchestrates one decision cycle per scenario:

    Scenario -> {generate(connected), generate(local)} -> assess
             -> synthesize -> record -> history -> store

The two strategy generations run concurrently in worker threads and are
joined before risk assessment. Every cycle that passes validation ends in
exactly one terminal Decision appended to the history, whether it completed,
failed, or was cancelled.

Usage:
    engine = create_engine_from_config(EngineConfig.load())
    result = await engine.process_scenario(scenario)
    print(result.decision.summary())
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from decisionforge.config import EngineConfig
from decisionforge.decision import Decision, DecisionRecorder, SyncStatus, Trace
from decisionforge.errors import DecisionEngineError, PersistenceFailure, ScenarioCancelled
from decisionforge.history import DecisionHistory, SyncReport, generate_sync_report
from decisionforge.models import Recommendation, Scenario, Strategy, StrategyMode
from decisionforge.patterns import PatternCatalog, create_default_catalog
from decisionforge.risk import RiskAssessor, RiskScore
from decisionforge.store import DecisionStore
from decisionforge.strategy import generate
from decisionforge.synthesis import Synthesizer
from decisionforge.templates import TemplateRegistry, create_default_registry

logger = logging.getLogger(__name__)


@dataclass
class ScenarioResult:
    """Everything one decision cycle produced."""
    decision: Decision
    trace: Trace
    strategies: dict[StrategyMode, Strategy] = field(default_factory=dict)
    recommendation: Optional[Recommendation] = None
    risk: Optional[RiskScore] = None

    @property
    def succeeded(self) -> bool:
        return self.decision.is_completed

    def to_dict(self) -> dict:
        return {
            "decision": self.decision.to_record(),
            "trace": self.trace.to_record(),
            "strategies": {mode.value: s.to_dict() for mode, s in self.strategies.items()},
            "recommendation": self.recommendation.to_dict() if self.recommendation else None,
            "risk": self.risk.to_dict() if self.risk else None,
        }


class DecisionEngine:
    """
    Runs decision cycles against an injected pattern catalog and template
    registry.

    When a store is attached, each terminal decision and its trace are
    persisted after being appended to the history. Records the store does not
    acknowledge stay in ``pending`` until flush_pending() succeeds.
    """

    def __init__(
        self,
        catalog: PatternCatalog,
        registry: TemplateRegistry,
        synthesizer: Optional[Synthesizer] = None,
        assessor: Optional[RiskAssessor] = None,
        recorder: Optional[DecisionRecorder] = None,
        history: Optional[DecisionHistory] = None,
        store: Optional[DecisionStore] = None,
    ):
        self.catalog = catalog
        self.registry = registry
        self.synthesizer = synthesizer or Synthesizer()
        self.assessor = assessor or RiskAssessor(
            repository_creation_kinds=registry.repository_creation_kinds(),
            high_sensitivity_kinds=registry.high_sensitivity_kinds(),
        )
        self.recorder = recorder or DecisionRecorder()
        self.history = history if history is not None else DecisionHistory()
        self.store = store
        self.pending: list[tuple[Decision, Trace]] = []
        self._flush_lock = asyncio.Lock()

    async def process_scenario(
        self,
        scenario: Scenario,
        parent_decision_id: Optional[str] = None,
    ) -> ScenarioResult:
        """
        Run one decision cycle.

        Structural failures (e.g. an unknown scenario kind) do not raise: the
        returned result carries a failed Decision with no recommendation.

        Raises:
            InvalidScenario: before any Decision is created
            asyncio.CancelledError: after the cancelled Decision is recorded
        """
        scenario.validate()
        decision, trace = self.recorder.begin(scenario, parent_decision_id)
        logger.info("Processing scenario %r as %s", scenario.name, decision.decision_id)

        # Generation works on a frozen view; usage is recorded on the live catalog
        snapshot = self.catalog.snapshot()

        try:
            connected, local = await asyncio.gather(
                asyncio.to_thread(generate, scenario, StrategyMode.CONNECTED, snapshot, self.registry),
                asyncio.to_thread(generate, scenario, StrategyMode.LOCAL, snapshot, self.registry),
            )
            risk = self.assessor.assess(scenario, connected, local)
            recommendation = self.synthesizer.synthesize(connected, local, risk)
        except asyncio.CancelledError:
            logger.warning("Scenario %r cancelled", scenario.name)
            self.recorder.fail(decision, trace, ScenarioCancelled("cancelled"))
            self.history.append(decision, trace)
            if self.store is not None:
                self.pending.append((decision, trace))
            raise
        except DecisionEngineError as e:
            logger.warning("Decision %s failed: %s", decision.decision_id, e.describe())
            self.recorder.fail(decision, trace, e)
            await self._record(decision, trace)
            return ScenarioResult(decision=decision, trace=trace)
        except Exception as e:
            self.recorder.fail(decision, trace, e)
            await self._record(decision, trace)
            raise

        strategies = {StrategyMode.CONNECTED: connected, StrategyMode.LOCAL: local}
        self.recorder.complete(decision, trace, recommendation, strategies)

        for pattern_id in sorted(recommendation.patterns_applied):
            self.catalog.record_usage(pattern_id)

        logger.info("%s", decision.summary())
        await self._record(decision, trace)

        return ScenarioResult(
            decision=decision,
            trace=trace,
            strategies=strategies,
            recommendation=recommendation,
            risk=risk,
        )

    def process_scenario_sync(
        self,
        scenario: Scenario,
        parent_decision_id: Optional[str] = None,
    ) -> ScenarioResult:
        """Run process_scenario from synchronous code."""
        return asyncio.run(self.process_scenario(scenario, parent_decision_id))

    async def _record(self, decision: Decision, trace: Trace) -> None:
        self.history.append(decision, trace)
        if self.store is None:
            return
        self.pending.append((decision, trace))
        await self.flush_pending()

    async def flush_pending(self) -> int:
        """
        Retry persisting unacknowledged records, oldest first.

        Flushes run one at a time so concurrent cycles never send or drop
        the same record twice.

        Returns:
            Number of decisions acknowledged by the store
        """
        if self.store is None or not self.pending:
            return 0

        async with self._flush_lock:
            flushed = 0
            while self.pending:
                decision, trace = self.pending[0]
                try:
                    await self.store.append_decision(decision)
                    await self.store.append_trace(trace)
                except PersistenceFailure as e:
                    logger.warning(
                        "Decision %s left pending (%d unsynced): %s",
                        decision.decision_id, len(self.pending), e.message,
                    )
                    break
                self.pending.pop(0)
                decision.sync_status = SyncStatus.SYNCED.value
                flushed += 1
            return flushed

    async def load_patterns(self) -> int:
        """Merge the stored pattern feed into the catalog. Returns the count loaded."""
        if self.store is None:
            return 0
        patterns = await self.store.load_patterns()
        for pattern in patterns:
            self.catalog.add(pattern)
        return len(patterns)

    async def save_patterns(self) -> int:
        """Write the catalog, including usage counts, back to the pattern feed."""
        if self.store is None:
            return 0
        return await self.store.save_patterns(self.catalog)

    def sync_report(self) -> SyncReport:
        """Summarize this engine's decision history."""
        return generate_sync_report(self.history, self.catalog)


def create_engine_from_config(
    config: Optional[EngineConfig] = None,
    store: Optional[DecisionStore] = None,
    catalog: Optional[PatternCatalog] = None,
) -> DecisionEngine:
    """Build an engine with the default catalog and registry plus configured templates."""
    config = config or EngineConfig.load()
    registry = create_default_registry(config.template_files())

    return DecisionEngine(
        catalog=catalog if catalog is not None else create_default_catalog(),
        registry=registry,
        synthesizer=Synthesizer(principles=config.principles or None),
        recorder=DecisionRecorder(
            source=config.source,
            tenant_id=config.tenant_id,
            branch_id=config.branch_id,
            environment=config.environment,
            operation=config.operation,
        ),
        store=store,
    )
