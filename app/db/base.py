"""
Database engine and async session factory for the analysis cache store
"""

import logging
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from app.core.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()

# Created on first use so importing models never opens a connection pool
_engine = None
_session_factory = None


def _get_database_url() -> str:
    """Resolve DATABASE_URL, switching plain postgresql:// to the asyncpg driver"""
    database_url = settings.DATABASE_URL or "postgresql+asyncpg://localhost/vigilent"
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


def get_engine() -> AsyncEngine:
    """Get or create the shared async engine"""
    global _engine
    if _engine is None:
        database_url = _get_database_url()
        pool_options = {}
        if database_url.startswith("postgresql"):
            pool_options = {
                "pool_size": settings.DB_POOL_SIZE,
                "max_overflow": settings.DB_MAX_OVERFLOW,
            }
        _engine = create_async_engine(
            database_url,
            pool_pre_ping=True,
            echo=settings.DEBUG,
            **pool_options
        )
    return _engine


def get_session_factory() -> async_sessionmaker:
    """Get or create the session factory bound to the shared engine"""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False
        )
    return _session_factory


async def dispose_engine() -> None:
    """Close pooled connections (no-op if the engine was never created)"""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("Database connection pool closed")
    _engine = None
    _session_factory = None
