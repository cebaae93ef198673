"""
Shared route dependencies
"""

from fastapi import Depends

from app.db.record_store import SQLAlchemyRecordStore
from app.services.analysis_cache import AnalysisCache
from app.services.analysis_orchestrator import AnalysisOrchestrator
from app.services.batch_service import BatchAnalysisService
from app.services.llm_analyzer import LLMAnalyzer


def get_analysis_cache() -> AnalysisCache:
    """Dependency to get the database-backed analysis cache"""
    return AnalysisCache(SQLAlchemyRecordStore())


def get_llm_analyzer() -> LLMAnalyzer:
    """Dependency to get the configured LLM analyzer"""
    return LLMAnalyzer()


def get_orchestrator(
    cache: AnalysisCache = Depends(get_analysis_cache),
    llm_analyzer: LLMAnalyzer = Depends(get_llm_analyzer)
) -> AnalysisOrchestrator:
    """Dependency to get an analysis orchestrator instance"""
    return AnalysisOrchestrator(cache=cache, llm_analyzer=llm_analyzer)


def get_batch_service(
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)
) -> BatchAnalysisService:
    """Dependency to get a batch analysis service instance"""
    return BatchAnalysisService(orchestrator)
