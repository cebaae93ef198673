"""
Analysis cache schemas
"""

from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class CacheEntry(BaseModel):
    """A cached LLM analysis keyed by contract hash"""
    model_config = ConfigDict(frozen=True)

    contract_hash: str = Field(..., pattern="^[0-9a-f]{64}$", description="SHA256 hex digest of the hashed contract fields")
    analysis: Dict[str, Any] = Field(..., description="Structured LLM analysis as JSON")
    model_used: Optional[str] = None
    tokens_used: int = Field(0, ge=0)
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class CacheStats(BaseModel):
    """Aggregate view of the cache table"""
    total_cached: int = 0
    total_tokens_saved: int = 0
    oldest_entry_timestamp: Optional[datetime] = None
    newest_entry_timestamp: Optional[datetime] = None


class CacheHit(BaseModel):
    """Lookup found a live entry"""
    model_config = ConfigDict(frozen=True)
    entry: CacheEntry


class CacheMiss(BaseModel):
    """Lookup found nothing usable"""
    model_config = ConfigDict(frozen=True)
    reason: str = "not_found"


class CacheError(BaseModel):
    """Lookup failed; already logged, treated as a miss by callers"""
    model_config = ConfigDict(frozen=True)
    reason: str


CacheLookup = Union[CacheHit, CacheMiss, CacheError]
