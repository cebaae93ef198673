"""
Batch analysis service
Runs the orchestrator over many contracts with bounded concurrency.
"""

import asyncio
import logging
from typing import List, Optional

from app.core.config import settings
from app.schemas.analysis import (
    AnalysisOptions,
    BatchAnalyzeResponse,
    BatchItemResult,
    BatchSummary,
)
from app.schemas.contract import ContractFacts
from app.services.analysis_orchestrator import AnalysisOrchestrator

logger = logging.getLogger(__name__)


class BatchAnalysisService:
    """Service for analyzing import batches"""

    def __init__(self, orchestrator: AnalysisOrchestrator, concurrency: Optional[int] = None):
        """
        Args:
            orchestrator: Single-contract analysis pipeline
            concurrency: Max analyses in flight (defaults to BATCH_CONCURRENCY)
        """
        self.orchestrator = orchestrator
        self.concurrency = max(1, concurrency or settings.BATCH_CONCURRENCY)

    async def analyze_many(
        self,
        contracts: List[ContractFacts],
        options: Optional[AnalysisOptions] = None
    ) -> BatchAnalyzeResponse:
        """
        Analyze contracts concurrently.

        A failing contract is reported in its own result slot and does not
        abort the batch. Results keep input order.
        """
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _analyze_one(facts: ContractFacts) -> BatchItemResult:
            async with semaphore:
                try:
                    result = await self.orchestrator.analyze(facts, options)
                    return BatchItemResult(contract_id=facts.contract_id, result=result)
                except Exception as e:
                    logger.error(f"Error analyzing contract {facts.contract_id}: {e}")
                    return BatchItemResult(contract_id=facts.contract_id, error=str(e))

        logger.info(f"Processing batch of {len(contracts)} contracts (concurrency {self.concurrency})")
        results = await asyncio.gather(*(_analyze_one(facts) for facts in contracts))

        summary = BatchSummary(total=len(results))
        for item in results:
            if item.result is None:
                summary.errors += 1
                continue
            summary.analyzed += 1
            if item.result.ai_powered:
                summary.ai_powered += 1
                if item.result.from_cache:
                    summary.from_cache += 1

        logger.info(
            f"Batch complete. Analyzed: {summary.analyzed} | AI: {summary.ai_powered} | "
            f"Cached: {summary.from_cache} | Errors: {summary.errors}"
        )
        return BatchAnalyzeResponse(results=list(results), summary=summary)
