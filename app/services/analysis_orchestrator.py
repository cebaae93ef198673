"""
Analysis Orchestrator
Complete pipeline: Rules → Escalation check → Cache lookup → LLM → Cache write → Merge
"""

import logging
from enum import Enum
from typing import Optional

from pydantic import ValidationError

from app.db.record_store import SQLAlchemyRecordStore
from app.schemas.analysis import (
    AIAugmentedResult,
    AnalysisInvariantError,
    AnalysisOptions,
    AnalysisResult,
    RulesOnlyResult,
)
from app.schemas.cache import CacheEntry
from app.schemas.contract import ContractFacts
from app.schemas.llm import AIAnalysisRequest, StructuredAnalysis
from app.services.analysis_cache import AnalysisCache
from app.services.escalation_policy import should_use_ai
from app.services.flag_merger import merge_red_flags, merge_risk_scores
from app.services.llm_analyzer import LLMAnalyzer
from app.services.rule_engine import analyze_contract_rules

logger = logging.getLogger(__name__)


class AnalysisState(str, Enum):
    """Terminal states of one analysis run, for logging"""
    SKIP = "skip"
    CACHE_HIT = "cache_hit"
    LLM_SUCCESS = "llm_success"
    LLM_FAILURE = "llm_failure"


class AnalysisOrchestrator:
    """
    Risk analysis for a single contract.

    Steps:
    1. Rules (always, free) - their result is the floor
    2. Escalation policy decides whether an LLM call is warranted
    3. Cache lookup by contract hash (unless bypassed)
    4. On miss: LLM call, then best-effort cache write
    5. Merge rule and LLM flags, take the higher score

    Cache and LLM failures fall back to the rules-only result.
    """

    def __init__(
        self,
        cache: Optional[AnalysisCache] = None,
        llm_analyzer: Optional[LLMAnalyzer] = None
    ):
        """
        Initialize orchestrator.

        Args:
            cache: Analysis cache (defaults to the database-backed cache)
            llm_analyzer: LLM analyzer (defaults to settings-configured analyzer)
        """
        self.cache = cache or AnalysisCache(SQLAlchemyRecordStore())
        self.llm_analyzer = llm_analyzer or LLMAnalyzer()

    async def analyze(
        self,
        facts: ContractFacts,
        options: Optional[AnalysisOptions] = None
    ) -> AnalysisResult:
        """
        Analyze one contract.

        Args:
            facts: Validated contract record
            options: Escalation / cache options and optional LLM context

        Returns:
            RulesOnlyResult or AIAugmentedResult

        Raises:
            AnalysisInvariantError: If a cached or returned analysis breaks the flag contract
        """
        options = options or AnalysisOptions()
        contract_id = facts.contract_id

        rule_result = analyze_contract_rules(facts)

        if options.force_ai is None:
            escalate = should_use_ai(facts, rule_result.risk_score)
        else:
            escalate = options.force_ai

        if not escalate:
            self._log_state(contract_id, AnalysisState.SKIP)
            return rule_result

        contract_hash = self.cache.contract_hash(facts)

        if not options.bypass_cache:
            entry = await self.cache.lookup(contract_hash)
            if entry:
                self._log_state(contract_id, AnalysisState.CACHE_HIT)
                return self._merge(
                    rule_result,
                    self._load_cached_analysis(entry),
                    model_used=entry.model_used or self.llm_analyzer.model,
                    tokens_used=0,
                    from_cache=True,
                )

        request = AIAnalysisRequest.from_facts(
            facts,
            similar_contracts=options.similar_contracts,
            buyer_history=options.buyer_history,
        )
        logger.info(f"Running AI analysis for contract {contract_id}...")
        llm_result = await self.llm_analyzer.analyze(request)

        if llm_result.analysis is None:
            logger.warning(f"AI analysis failed for {contract_id}, using rules only")
            self._log_state(contract_id, AnalysisState.LLM_FAILURE)
            return rule_result

        await self.cache.put(
            contract_hash,
            llm_result.analysis.model_dump(mode="json"),
            llm_result.model,
            llm_result.tokens_used,
        )

        self._log_state(contract_id, AnalysisState.LLM_SUCCESS)
        return self._merge(
            rule_result,
            llm_result.analysis,
            model_used=llm_result.model,
            tokens_used=llm_result.tokens_used,
            from_cache=False,
        )

    @staticmethod
    def _load_cached_analysis(entry: CacheEntry) -> StructuredAnalysis:
        try:
            return StructuredAnalysis.model_validate(entry.analysis)
        except ValidationError as e:
            raise AnalysisInvariantError(
                f"Cached analysis does not match the expected schema: {e}",
                contract_hash=entry.contract_hash,
            )

    @staticmethod
    def _merge(
        rule_result: RulesOnlyResult,
        analysis: StructuredAnalysis,
        model_used: str,
        tokens_used: int,
        from_cache: bool
    ) -> AIAugmentedResult:
        return AIAugmentedResult(
            risk_score=merge_risk_scores(rule_result.risk_score, analysis.risk_score),
            red_flags=merge_red_flags(rule_result.red_flags, analysis.red_flags),
            model_used=model_used,
            tokens_used=tokens_used,
            from_cache=from_cache,
        )

    @staticmethod
    def _log_state(contract_id: str, state: AnalysisState) -> None:
        logger.debug(f"Contract {contract_id}: analysis finished in state {state.value}")
