"""
Analysis cache maintenance endpoints
"""

from fastapi import APIRouter, Depends

from app.api.v1.deps import get_analysis_cache
from app.schemas.cache import CacheStats
from app.services.analysis_cache import AnalysisCache

router = APIRouter()


@router.get("/stats", response_model=CacheStats)
async def cache_stats(cache: AnalysisCache = Depends(get_analysis_cache)):
    """
    Cache statistics: number of cached analyses and tokens they saved.
    """
    return await cache.stats()


@router.post("/purge")
async def purge_expired(cache: AnalysisCache = Depends(get_analysis_cache)):
    """
    Delete expired cache entries. Intended for a periodic maintenance job.
    """
    deleted = await cache.purge_expired()
    return {"deleted": deleted}
