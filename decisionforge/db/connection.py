"""
Database Connection Manager
===========================

Handles the async connection to the SQLite decision database.
"""

from pathlib import Path
from typing import Optional

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from decisionforge.db.models import Base

DB_DIRNAME = ".decisionforge"
DB_FILENAME = "decisions.db"

# Global session maker
_async_session_maker: Optional[async_sessionmaker[AsyncSession]] = None
_engine = None


def default_db_path(project_path: Path) -> Path:
    """Database location inside a project: .decisionforge/decisions.db"""
    return Path(project_path) / DB_DIRNAME / DB_FILENAME


async def init_db(project_path: Path, db_path: Optional[Path] = None):
    """
    Initialize the database connection and create tables if they don't exist.

    The database file is stored in .decisionforge/decisions.db within the
    project root unless an explicit db_path is given.
    """
    global _async_session_maker, _engine

    if _engine is not None:
        await close_db()

    db_path = Path(db_path) if db_path else default_db_path(project_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    db_url = f"sqlite+aiosqlite:///{db_path}"

    _engine = create_async_engine(db_url, echo=False)

    # Create tables
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    _async_session_maker = async_sessionmaker(_engine, expire_on_commit=False)

    return _async_session_maker


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Get the configured session maker."""
    if _async_session_maker is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _async_session_maker


async def close_db() -> None:
    """Dispose of the engine and forget the session maker."""
    global _async_session_maker, _engine

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _async_session_maker = None
