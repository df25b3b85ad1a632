"""
Decision Store
==============

Persistence adapter between the engine and the SQLite decision database.

Records are appended idempotently by id (a retried append overwrites the
earlier copy), so the engine can safely re-send records the store did not
acknowledge. Every database error is wrapped in PersistenceFailure.

Usage:
    from decisionforge.db import init_db
    from decisionforge.store import DecisionStore

    await init_db(project_dir)
    store = DecisionStore()
    await store.append_decision(decision)
    await store.append_trace(trace)
    rows = await store.query_decisions(status="completed")
"""

import logging
from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from decisionforge.db.connection import get_session_maker
from decisionforge.db.models import DecisionRecord, PatternRecord, TraceRecord
from decisionforge.decision import Decision, SyncStatus, Trace
from decisionforge.errors import PersistenceFailure
from decisionforge.patterns import Pattern

logger = logging.getLogger(__name__)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _decision_row(decision: Decision) -> DecisionRecord:
    record = decision.to_record()
    return DecisionRecord(
        id=record["id"],
        context=record["context"],
        question=record["question"],
        recommendation=record["recommendation"],
        reasoning=record["reasoning"],
        confidence=record["confidence"],
        insights=record["insights"],
        patterns=record["patterns"],
        timestamp=decision.created_at,
        execution_time_ms=record["execution_time_ms"],
        status=record["status"],
        philosophy_alignment=record["philosophy_alignment"],
        source=record["source"],
        tenant_id=record["tenant_id"],
        decision_metadata=record["metadata"],
        trace_id=record["trace_id"],
        parent_decision_id=record["parent_decision_id"],
        branch_strategy=record["branch_strategy"],
        deployment_plan=record["deployment_plan"],
        environment_handling=record["environment_handling"],
        approval_required=record["approval_required"],
        risk_assessment=record["risk_assessment"],
        # The stored copy is the synced copy
        sync_status=SyncStatus.SYNCED.value,
        created_at=decision.created_at,
        updated_at=decision.updated_at,
    )


def _trace_row(trace: Trace) -> TraceRecord:
    return TraceRecord(
        trace_id=trace.trace_id,
        decision_id=trace.decision_id,
        operation=trace.operation,
        query_text=trace.query_text,
        parameters=dict(trace.parameters),
        start_time=trace.start_time,
        end_time=trace.end_time,
        duration_ms=trace.duration_ms,
        success=trace.success,
        error_message=trace.error_message,
        trace_metadata=dict(trace.metadata),
        branch_id=trace.branch_id,
        environment=trace.environment,
        created_at=trace.created_at,
    )


def decision_row_to_record(row: DecisionRecord) -> dict:
    """Convert a stored decision row to the persisted record schema."""
    return {
        "id": row.id,
        "context": row.context,
        "question": row.question,
        "recommendation": row.recommendation,
        "reasoning": row.reasoning,
        "confidence": row.confidence,
        "insights": list(row.insights or []),
        "patterns": list(row.patterns or []),
        "timestamp": _iso(row.timestamp),
        "execution_time_ms": row.execution_time_ms,
        "status": row.status,
        "philosophy_alignment": list(row.philosophy_alignment or []),
        "source": row.source,
        "tenant_id": row.tenant_id,
        "metadata": dict(row.decision_metadata or {}),
        "trace_id": row.trace_id,
        "parent_decision_id": row.parent_decision_id,
        "branch_strategy": row.branch_strategy,
        "deployment_plan": row.deployment_plan,
        "environment_handling": row.environment_handling,
        "approval_required": row.approval_required,
        "risk_assessment": row.risk_assessment,
        "sync_status": row.sync_status,
        "created_at": _iso(row.created_at),
        "updated_at": _iso(row.updated_at),
    }


def trace_row_to_record(row: TraceRecord) -> dict:
    """Convert a stored trace row to the persisted record schema."""
    return {
        "trace_id": row.trace_id,
        "decision_id": row.decision_id,
        "operation": row.operation,
        "query_text": row.query_text,
        "parameters": dict(row.parameters or {}),
        "start_time": row.start_time,
        "end_time": row.end_time,
        "duration_ms": row.duration_ms,
        "success": row.success,
        "error_message": row.error_message,
        "metadata": dict(row.trace_metadata or {}),
        "branch_id": row.branch_id,
        "environment": row.environment,
        "created_at": _iso(row.created_at),
    }


class DecisionStore:
    """
    Async store for decisions, traces and the pattern feed.

    Uses the global session maker from decisionforge.db unless one is
    injected.
    """

    def __init__(self, session_maker: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_maker = session_maker

    def _sessions(self) -> async_sessionmaker[AsyncSession]:
        if self._session_maker is not None:
            return self._session_maker
        try:
            return get_session_maker()
        except RuntimeError as e:
            raise PersistenceFailure(str(e)) from e

    async def _write(self, rows: Iterable[Any], what: str) -> None:
        try:
            async with self._sessions()() as session:
                for row in rows:
                    await session.merge(row)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to persist %s: %s", what, e)
            raise PersistenceFailure(f"Failed to persist {what}: {e}") from e

    async def append_decision(self, decision: Decision) -> None:
        """
        Persist a terminal decision.

        Raises:
            PersistenceFailure: if the decision is not terminal or the write fails
        """
        if not decision.is_terminal:
            raise PersistenceFailure(
                f"Refusing to persist decision {decision.decision_id} in state '{decision.status}'"
            )
        await self._write([_decision_row(decision)], f"decision {decision.decision_id}")

    async def append_trace(self, trace: Trace) -> None:
        """
        Persist a closed trace.

        Raises:
            PersistenceFailure: if the trace is still open or the write fails
        """
        if trace.is_open:
            raise PersistenceFailure(f"Refusing to persist open trace {trace.trace_id}")
        await self._write([_trace_row(trace)], f"trace {trace.trace_id}")

    async def query_decisions(
        self,
        status: Optional[str] = None,
        tenant_id: Optional[str] = None,
        risk_assessment: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict]:
        """Query stored decisions, newest first."""
        stmt = select(DecisionRecord)
        if status:
            stmt = stmt.where(DecisionRecord.status == status)
        if tenant_id:
            stmt = stmt.where(DecisionRecord.tenant_id == tenant_id)
        if risk_assessment:
            stmt = stmt.where(DecisionRecord.risk_assessment == risk_assessment)
        stmt = stmt.order_by(DecisionRecord.created_at.desc())
        if limit:
            stmt = stmt.limit(limit)

        try:
            async with self._sessions()() as session:
                result = await session.execute(stmt)
                return [decision_row_to_record(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Failed to query decisions: {e}") from e

    async def query_traces(self, decision_id: Optional[str] = None) -> list[dict]:
        """Query stored traces, optionally for one decision."""
        stmt = select(TraceRecord)
        if decision_id:
            stmt = stmt.where(TraceRecord.decision_id == decision_id)
        stmt = stmt.order_by(TraceRecord.start_time)

        try:
            async with self._sessions()() as session:
                result = await session.execute(stmt)
                return [trace_row_to_record(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Failed to query traces: {e}") from e

    async def get_stats(self) -> dict:
        """Aggregate counts over the stored decisions."""
        try:
            async with self._sessions()() as session:
                by_status = dict((await session.execute(
                    select(DecisionRecord.status, func.count()).group_by(DecisionRecord.status)
                )).all())
                by_risk = dict((await session.execute(
                    select(DecisionRecord.risk_assessment, func.count())
                    .where(DecisionRecord.status == "completed")
                    .group_by(DecisionRecord.risk_assessment)
                )).all())
                avg_confidence = (await session.execute(
                    select(func.avg(DecisionRecord.confidence))
                    .where(DecisionRecord.status == "completed")
                )).scalar()
                approvals = (await session.execute(
                    select(func.count()).select_from(DecisionRecord)
                    .where(DecisionRecord.approval_required.is_(True))
                )).scalar()
                traces = (await session.execute(
                    select(func.count()).select_from(TraceRecord)
                )).scalar()
                patterns = (await session.execute(
                    select(func.count()).select_from(PatternRecord)
                )).scalar()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Failed to compute stats: {e}") from e

        return {
            "total_decisions": sum(by_status.values()),
            "by_status": by_status,
            "by_risk": by_risk,
            "avg_confidence": round(avg_confidence or 0.0, 6),
            "approval_required": approvals or 0,
            "total_traces": traces or 0,
            "patterns_stored": patterns or 0,
        }

    async def save_patterns(self, patterns: Iterable[Pattern]) -> int:
        """Insert or update patterns in the pattern feed. Returns the count written."""
        rows = [
            PatternRecord(
                pattern_id=p.pattern_id,
                pattern_name=p.name,
                source_context=p.source_context,
                pattern_type=p.pattern_type,
                pattern_data=dict(p.data),
                success_rate=p.success_rate,
                usage_count=p.usage_count,
                confidence_score=p.confidence,
                last_used=p.last_used,
            )
            for p in patterns
        ]
        await self._write(rows, f"{len(rows)} pattern(s)")
        return len(rows)

    async def load_patterns(self) -> list[Pattern]:
        """Load the pattern feed, highest success rate first."""
        stmt = select(PatternRecord).order_by(
            PatternRecord.success_rate.desc(), PatternRecord.pattern_id
        )
        try:
            async with self._sessions()() as session:
                result = await session.execute(stmt)
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Failed to load patterns: {e}") from e

        return [
            Pattern(
                pattern_id=row.pattern_id,
                name=row.pattern_name,
                source_context=row.source_context,
                pattern_type=row.pattern_type,
                success_rate=row.success_rate,
                usage_count=row.usage_count,
                confidence=row.confidence_score,
                data=dict(row.pattern_data or {}),
                last_used=row.last_used,
            )
            for row in rows
        ]
