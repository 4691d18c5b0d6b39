"""
Async SQLAlchemy engine and session factory.

PostgreSQL (asyncpg) in production; SQLite (aiosqlite) works for local runs.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from garage.core.config import settings


def engine_options(database_url: str) -> dict[str, Any]:
    """Per-backend engine keyword arguments."""
    options: dict[str, Any] = {"echo": False, "pool_pre_ping": True}
    backend = make_url(database_url).get_backend_name()
    if backend == "postgresql":
        options.update(pool_size=20, max_overflow=10, pool_recycle=300)
    elif backend == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
    return options


engine = create_async_engine(settings.DATABASE_URL, **engine_options(settings.DATABASE_URL))

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
