"""
Analysis Cache
Content-addressed, expiring cache of LLM analyses.

Every operation fails soft: storage errors and timeouts are logged and turned
into a miss / no-op so a broken cache never fails an analysis.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from app.core.config import settings
from app.db.record_store import RecordStore
from app.schemas.cache import CacheEntry, CacheError, CacheHit, CacheLookup, CacheMiss, CacheStats
from app.schemas.contract import ContractFacts
from app.utils.checksum import calculate_contract_hash

logger = logging.getLogger(__name__)

CACHE_TTL = timedelta(days=30)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AnalysisCache:
    """Read-through cache for LLM analyses, keyed by contract hash"""

    def __init__(
        self,
        store: RecordStore,
        timeout: Optional[float] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Args:
            store: Backing record store
            timeout: Per-operation timeout in seconds (defaults to CACHE_TIMEOUT_SECONDS)
            clock: Returns the current aware UTC datetime
        """
        self.store = store
        self.timeout = timeout or settings.CACHE_TIMEOUT_SECONDS
        self.clock = clock

    @staticmethod
    def contract_hash(facts: ContractFacts) -> str:
        return calculate_contract_hash(facts)

    async def get(self, contract_hash: str) -> CacheLookup:
        """
        Look up a cached analysis.

        Returns:
            CacheHit for a live entry, CacheMiss if absent or expired,
            CacheError if the store failed (already logged)
        """
        short_hash = contract_hash[:8]
        try:
            entry = await asyncio.wait_for(
                self.store.get_contract_hash_entry(contract_hash),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"Cache lookup timed out for hash {short_hash}...")
            return CacheError(reason="timeout")
        except Exception as e:
            logger.error(f"Error fetching from cache for hash {short_hash}...: {e}")
            return CacheError(reason=str(e) or type(e).__name__)

        if entry is None:
            logger.debug(f"Cache miss for hash {short_hash}...")
            return CacheMiss()

        if entry.is_expired(self.clock()):
            logger.info(f"Cache expired for hash {short_hash}...")
            return CacheMiss(reason="expired")

        logger.info(f"Cache hit for hash {short_hash}...")
        return CacheHit(entry=entry)

    async def lookup(self, contract_hash: str) -> Optional[CacheEntry]:
        """Collapse get() to hit-or-nothing"""
        result = await self.get(contract_hash)
        if isinstance(result, CacheHit):
            return result.entry
        return None

    async def put(
        self,
        contract_hash: str,
        analysis: Dict[str, Any],
        model_used: str,
        tokens_used: Optional[int] = None
    ) -> bool:
        """
        Store an analysis, replacing any previous entry for the hash.

        Returns:
            True if written, False if the write failed (logged, not raised)
        """
        short_hash = contract_hash[:8]
        now = self.clock()
        try:
            entry = CacheEntry(
                contract_hash=contract_hash,
                analysis=analysis,
                model_used=model_used,
                tokens_used=tokens_used or 0,
                created_at=now,
                expires_at=now + CACHE_TTL,
            )
            await asyncio.wait_for(
                self.store.upsert_contract_hash_entry(entry),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"Cache write timed out for hash {short_hash}...")
            return False
        except Exception as e:
            logger.error(f"Error caching analysis for hash {short_hash}...: {e}")
            return False

        logger.info(f"Cached analysis for hash {short_hash}...")
        return True

    async def purge_expired(self) -> int:
        """
        Physically delete expired entries. Meant for periodic maintenance.

        Returns:
            Number of entries removed (0 on failure)
        """
        try:
            deleted = await asyncio.wait_for(
                self.store.delete_expired_entries(self.clock()),
                timeout=self.timeout
            )
        except Exception as e:
            logger.error(f"Error clearing expired cache: {e!r}")
            return 0

        logger.info(f"Cleared {deleted} expired cache entries")
        return deleted

    async def stats(self) -> CacheStats:
        """Aggregate cache statistics (zero-valued on empty cache or failure)"""
        try:
            return await asyncio.wait_for(self.store.get_stats(), timeout=self.timeout)
        except Exception as e:
            logger.error(f"Error getting cache stats: {e!r}")
            return CacheStats()
