"""
Contract Analysis endpoints
Scores contracts with rules and, when warranted, an LLM.
"""

import logging
from fastapi import APIRouter, HTTPException, Depends

from app.api.v1.deps import get_batch_service, get_orchestrator
from app.schemas.analysis import (
    AnalysisInvariantError,
    AnalysisResult,
    AnalyzeRequest,
    BatchAnalyzeRequest,
    BatchAnalyzeResponse,
)
from app.services.analysis_orchestrator import AnalysisOrchestrator
from app.services.batch_service import BatchAnalysisService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=AnalysisResult)
async def analyze_contract(
    data: AnalyzeRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)
):
    """
    Analyze a single contract.

    Expects:
    {
        "contract": {"contract_id": "...", "title": "...", "buyer_name": "...", ...},
        "options": {"force_ai": null, "bypass_cache": false}
    }

    Returns:
        Risk score, red flags and whether the LLM contributed
    """
    try:
        return await orchestrator.analyze(data.contract, data.options)
    except AnalysisInvariantError as e:
        logger.error(f"Invariant violation analyzing {data.contract.contract_id}: {e.message}")
        raise HTTPException(status_code=500, detail=f"Inconsistent analysis data: {e.message}")


@router.post("/batch", response_model=BatchAnalyzeResponse)
async def analyze_batch(
    data: BatchAnalyzeRequest,
    batch_service: BatchAnalysisService = Depends(get_batch_service)
):
    """
    Analyze a batch of contracts with bounded concurrency.

    Per-contract failures are reported in the result list.
    """
    return await batch_service.analyze_many(data.contracts, data.options)
