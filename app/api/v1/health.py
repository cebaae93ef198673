"""
Health check endpoint
"""

from fastapi import APIRouter, Depends
from app.api.v1.deps import get_llm_analyzer
from app.core.config import settings
from app.services.llm_analyzer import LLMAnalyzer

router = APIRouter()


@router.get("")
async def health(llm_analyzer: LLMAnalyzer = Depends(get_llm_analyzer)):
    """
    Health check endpoint.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "llm_configured": llm_analyzer.is_configured(),
        "llm_model": llm_analyzer.model,
        "database_configured": bool(settings.DATABASE_URL)
    }
