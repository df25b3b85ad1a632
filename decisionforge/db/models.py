"""
Database Models for Decision Forge
==================================

SQLAlchemy models for the persisted decision records, their traces, and the
cross-repository pattern feed.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any

from sqlalchemy import String, Integer, BigInteger, Float, DateTime, ForeignKey, JSON, Text, Boolean
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class DecisionRecord(Base):
    """One terminal decision produced by a synthesis cycle."""
    __tablename__ = "decisions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    context: Mapped[str] = mapped_column(Text)
    question: Mapped[str] = mapped_column(Text)
    recommendation: Mapped[str] = mapped_column(Text, default="")
    reasoning: Mapped[str] = mapped_column(Text, default="")
    confidence: Mapped[float] = mapped_column(Float, default=0.0)
    insights: Mapped[List[str]] = mapped_column(JSON, default=list)
    patterns: Mapped[List[str]] = mapped_column(JSON, default=list)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    execution_time_ms: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(20), index=True)  # processing, completed, failed
    philosophy_alignment: Mapped[List[str]] = mapped_column(JSON, default=list)
    source: Mapped[str] = mapped_column(String(100), default="decision-engine")
    tenant_id: Mapped[str] = mapped_column(String(100), default="default", index=True)
    decision_metadata: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, default=dict)
    trace_id: Mapped[str] = mapped_column(String(64), index=True)
    parent_decision_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Governance
    branch_strategy: Mapped[str] = mapped_column(Text, default="")
    deployment_plan: Mapped[str] = mapped_column(Text, default="")
    environment_handling: Mapped[str] = mapped_column(Text, default="")
    approval_required: Mapped[bool] = mapped_column(Boolean, default=False)
    risk_assessment: Mapped[str] = mapped_column(String(20), default="low")  # low, medium, high

    sync_status: Mapped[str] = mapped_column(String(20), default="pending")  # pending, processing, synced, conflict
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class TraceRecord(Base):
    """Timing and outcome trace paired with one decision."""
    __tablename__ = "decision_traces"

    trace_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    decision_id: Mapped[str] = mapped_column(ForeignKey("decisions.id"), index=True)
    operation: Mapped[str] = mapped_column(String(100))
    query_text: Mapped[str] = mapped_column(Text)
    parameters: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    start_time: Mapped[int] = mapped_column(BigInteger)  # epoch ms
    end_time: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    success: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    trace_metadata: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, default=dict)
    branch_id: Mapped[str] = mapped_column(String(100), default="main")
    environment: Mapped[str] = mapped_column(String(50), default="development")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class PatternRecord(Base):
    """A reusable pattern from the cross-repository pattern feed."""
    __tablename__ = "cross_repo_patterns"

    pattern_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    pattern_name: Mapped[str] = mapped_column(String(255))
    source_context: Mapped[str] = mapped_column(String(255), default="")
    pattern_type: Mapped[str] = mapped_column(String(100), default="")
    pattern_data: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    success_rate: Mapped[float] = mapped_column(Float, default=0.0)
    usage_count: Mapped[int] = mapped_column(Integer, default=0)
    confidence_score: Mapped[float] = mapped_column(Float, default=0.5)
    last_used: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
