"""
Database Package
================

Exports key database components.
"""

from decisionforge.db.models import (
    Base,
    DecisionRecord,
    TraceRecord,
    PatternRecord,
)
from decisionforge.db.connection import init_db, get_session_maker, close_db, default_db_path
