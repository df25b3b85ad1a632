"""
Test database integration for the decision store.
"""

import tempfile
from pathlib import Path

import pytest
import pytest_asyncio

from decisionforge.db import close_db, default_db_path, init_db
from decisionforge.engine import DecisionEngine
from decisionforge.errors import PersistenceFailure
from decisionforge.models import Scenario
from decisionforge.patterns import DEFAULT_PATTERNS, create_default_catalog
from decisionforge.store import DecisionStore
from decisionforge.templates import create_default_registry


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def temp_project():
    """Create a temporary project directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest_asyncio.fixture
async def store(temp_project):
    """Initialize the database and yield a store; dispose the engine afterwards."""
    await init_db(temp_project)
    yield DecisionStore()
    # Close database connections before cleanup
    await close_db()


@pytest.fixture
def api_scenario():
    return Scenario(
        name="billing-sync",
        kind="api-integration",
        context="Billing service enhancement",
        requirement="Add a second payments API next to the existing one",
    )


@pytest.fixture
def repo_scenario():
    return Scenario(
        name="callers-fork",
        kind="repository-creation",
        context="Calling system duplication",
        requirement="Duplicate repo and replace the voice provider",
        requirements=tuple(f"Requirement {i}" for i in range(7)),
    )


def make_engine(store):
    return DecisionEngine(create_default_catalog(), create_default_registry(), store=store)


# =============================================================================
# Store Tests
# =============================================================================

@pytest.mark.asyncio
async def test_database_file_location(temp_project, store):
    """Test the database lives in .decisionforge/decisions.db."""
    assert default_db_path(temp_project).exists()


@pytest.mark.asyncio
async def test_engine_persists_decision_and_trace(store, api_scenario):
    """Test a completed cycle is written and read back in record schema."""
    engine = make_engine(store)
    result = await engine.process_scenario(api_scenario)

    assert engine.pending == []

    decisions = await store.query_decisions()
    assert len(decisions) == 1
    record = decisions[0]
    assert record["id"] == result.decision.decision_id
    assert record["status"] == "completed"
    assert record["confidence"] == pytest.approx(0.914)
    assert record["sync_status"] == "synced"
    assert record["patterns"] == result.decision.patterns

    traces = await store.query_traces(decision_id=result.decision.decision_id)
    assert len(traces) == 1
    assert traces[0]["success"] is True
    assert traces[0]["query_text"].startswith("Processing: ")


@pytest.mark.asyncio
async def test_failed_decision_is_persisted(store):
    engine = make_engine(store)
    scenario = Scenario(name="x", kind="weather-report", context="c", requirement="r")
    result = await engine.process_scenario(scenario)

    failed = await store.query_decisions(status="failed")
    assert [r["id"] for r in failed] == [result.decision.decision_id]
    traces = await store.query_traces(decision_id=result.decision.decision_id)
    assert traces[0]["success"] is False


@pytest.mark.asyncio
async def test_query_filters(store, api_scenario, repo_scenario):
    engine = make_engine(store)
    await engine.process_scenario(api_scenario)
    await engine.process_scenario(repo_scenario)
    await engine.process_scenario(api_scenario)

    assert len(await store.query_decisions(risk_assessment="medium")) == 1
    assert len(await store.query_decisions(risk_assessment="low")) == 2
    assert len(await store.query_decisions(tenant_id="default")) == 3
    assert len(await store.query_decisions(tenant_id="other")) == 0
    assert len(await store.query_decisions(limit=2)) == 2


@pytest.mark.asyncio
async def test_append_is_idempotent(store, api_scenario):
    """Test re-sending an acknowledged record does not duplicate it."""
    engine = make_engine(store)
    result = await engine.process_scenario(api_scenario)

    await store.append_decision(result.decision)
    await store.append_trace(result.trace)

    assert len(await store.query_decisions()) == 1
    assert len(await store.query_traces()) == 1


@pytest.mark.asyncio
async def test_refuses_non_terminal_records(store, api_scenario):
    from decisionforge.decision import DecisionRecorder

    decision, trace = DecisionRecorder().begin(api_scenario)
    with pytest.raises(PersistenceFailure):
        await store.append_decision(decision)
    with pytest.raises(PersistenceFailure):
        await store.append_trace(trace)


@pytest.mark.asyncio
async def test_stats(store, api_scenario, repo_scenario):
    engine = make_engine(store)
    await engine.process_scenario(api_scenario)
    await engine.process_scenario(repo_scenario)
    await engine.process_scenario(Scenario(name="x", kind="unknown", context="c", requirement="r"))

    stats = await store.get_stats()
    assert stats["total_decisions"] == 3
    assert stats["by_status"] == {"completed": 2, "failed": 1}
    assert stats["by_risk"] == {"low": 1, "medium": 1}
    assert stats["approval_required"] == 1
    assert stats["total_traces"] == 3


@pytest.mark.asyncio
async def test_pattern_feed_round_trip(store, api_scenario):
    """Test usage counts survive a save/load cycle."""
    engine = make_engine(store)
    result = await engine.process_scenario(api_scenario)
    assert await engine.save_patterns() == 4

    patterns = await store.load_patterns()
    assert [p.pattern_id for p in patterns] == [p.pattern_id for p in DEFAULT_PATTERNS]

    by_id = {p.pattern_id: p for p in patterns}
    for pattern in DEFAULT_PATTERNS:
        expected = pattern.usage_count + (1 if pattern.pattern_id in result.decision.patterns else 0)
        assert by_id[pattern.pattern_id].usage_count == expected

    fresh = DecisionEngine(create_default_catalog(), create_default_registry(), store=store)
    assert await fresh.load_patterns() == 4


@pytest.mark.asyncio
async def test_uninitialized_store_raises_persistence_failure(api_scenario):
    await close_db()
    with pytest.raises(PersistenceFailure):
        await DecisionStore().query_decisions()
