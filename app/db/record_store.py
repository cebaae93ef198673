"""
Record store for the analysis cache
The cache only talks to this interface; the SQLAlchemy implementation backs it
with the ai_analysis_cache table.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Protocol

from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite

from app.db.base import get_session_factory
from app.db.models.ai_analysis_cache import AIAnalysisCache
from app.schemas.cache import CacheEntry, CacheStats

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """Storage operations the analysis cache depends on"""

    async def get_contract_hash_entry(self, contract_hash: str) -> Optional[CacheEntry]:
        ...

    async def upsert_contract_hash_entry(self, entry: CacheEntry) -> None:
        ...

    async def delete_expired_entries(self, before: datetime) -> int:
        ...

    async def get_stats(self) -> CacheStats:
        ...


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Some backends (SQLite) hand back naive datetimes; everything stored is UTC"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SQLAlchemyRecordStore:
    """RecordStore over an async SQLAlchemy session factory"""

    def __init__(self, session_factory=None):
        """
        Args:
            session_factory: async_sessionmaker (defaults to the application factory)
        """
        self.session_factory = session_factory or get_session_factory()

    @staticmethod
    def _to_entry(row: AIAnalysisCache) -> CacheEntry:
        return CacheEntry(
            contract_hash=row.contract_hash,
            analysis=row.analysis,
            model_used=row.model_used,
            tokens_used=row.tokens_used or 0,
            created_at=_as_utc(row.created_at),
            expires_at=_as_utc(row.expires_at),
        )

    async def get_contract_hash_entry(self, contract_hash: str) -> Optional[CacheEntry]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(AIAnalysisCache).where(AIAnalysisCache.contract_hash == contract_hash)
            )
            row = result.scalar_one_or_none()
            return self._to_entry(row) if row else None

    @staticmethod
    def _upsert_statement(dialect_name: str, entry: CacheEntry):
        """Single-statement INSERT ... ON CONFLICT (contract_hash) DO UPDATE"""
        insert = sqlite.insert if dialect_name == "sqlite" else postgresql.insert
        values = {
            "contract_hash": entry.contract_hash,
            "analysis": entry.analysis,
            "model_used": entry.model_used,
            "tokens_used": entry.tokens_used,
            "created_at": entry.created_at,
            "expires_at": entry.expires_at,
        }
        stmt = insert(AIAnalysisCache).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=[AIAnalysisCache.contract_hash],
            set_={column: stmt.excluded[column] for column in values if column != "contract_hash"},
        )

    async def upsert_contract_hash_entry(self, entry: CacheEntry) -> None:
        async with self.session_factory() as session:
            try:
                await session.execute(self._upsert_statement(session.bind.dialect.name, entry))
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def delete_expired_entries(self, before: datetime) -> int:
        async with self.session_factory() as session:
            try:
                result = await session.execute(
                    delete(AIAnalysisCache).where(AIAnalysisCache.expires_at < before)
                )
                await session.commit()
                return result.rowcount or 0
            except Exception:
                await session.rollback()
                raise

    async def get_stats(self) -> CacheStats:
        async with self.session_factory() as session:
            result = await session.execute(
                select(
                    func.count(AIAnalysisCache.contract_hash),
                    func.coalesce(func.sum(AIAnalysisCache.tokens_used), 0),
                    func.min(AIAnalysisCache.created_at),
                    func.max(AIAnalysisCache.created_at),
                )
            )
            total, tokens, oldest, newest = result.one()
            return CacheStats(
                total_cached=total or 0,
                total_tokens_saved=tokens or 0,
                oldest_entry_timestamp=_as_utc(oldest),
                newest_entry_timestamp=_as_utc(newest),
            )
