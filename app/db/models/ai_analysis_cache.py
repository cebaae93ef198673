"""
AI Analysis Cache database model
Stores LLM contract analyses keyed by contract hash, with expiry
"""

from sqlalchemy import Column, String, Integer, DateTime, Index, JSON
from sqlalchemy.dialects.postgresql import JSONB
from app.db.base import Base


class AIAnalysisCache(Base):
    """
    Model for caching LLM analysis results.

    One row per contract hash. Rows are overwritten on re-analysis and are
    considered absent once expires_at has passed.
    """
    __tablename__ = "ai_analysis_cache"

    # Primary key
    contract_hash = Column(String(64), primary_key=True)  # SHA256 hex digest

    # Cached data
    analysis = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)
    model_used = Column(String(255), nullable=True)
    tokens_used = Column(Integer, nullable=False, default=0)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    # Indexes
    __table_args__ = (
        Index('idx_ai_cache_created_at', 'created_at'),
        Index('idx_ai_cache_expires_at', 'expires_at'),
    )

    def __repr__(self):
        return f"<AIAnalysisCache(hash='{self.contract_hash[:16]}...', model='{self.model_used}')>"
