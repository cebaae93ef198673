"""
API v1 router
"""

from fastapi import APIRouter
from app.api.v1 import contract_analysis
from app.api.v1 import cache
from app.api.v1 import health

api_router = APIRouter()

api_router.include_router(contract_analysis.router, prefix="/analyze", tags=["analysis"])
api_router.include_router(cache.router, prefix="/cache", tags=["cache"])
api_router.include_router(health.router, prefix="/health", tags=["service"])
