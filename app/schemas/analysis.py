"""
Analysis result, options and API request/response schemas
"""

from typing import List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.contract import BuyerHistory, ContractFacts, RedFlag, SimilarContract


class AnalysisInvariantError(Exception):
    """
    Raised when data crossing the LLM or cache boundary breaks the structural
    contract (e.g. an unknown severity in a cached payload). Merging cannot
    proceed safely, so this is never absorbed.
    """
    def __init__(self, message: str, contract_hash: Optional[str] = None):
        self.message = message
        self.contract_hash = contract_hash
        super().__init__(self.message)


class RulesOnlyResult(BaseModel):
    """Result produced by the deterministic rules alone"""
    model_config = ConfigDict(frozen=True)

    risk_score: int = Field(..., ge=0, le=100)
    red_flags: Tuple[RedFlag, ...] = ()
    ai_powered: Literal[False] = False


class AIAugmentedResult(BaseModel):
    """Rules merged with an LLM analysis (fresh or cached)"""
    model_config = ConfigDict(frozen=True)

    risk_score: int = Field(..., ge=0, le=100)
    red_flags: Tuple[RedFlag, ...] = ()
    ai_powered: Literal[True] = True
    model_used: str
    tokens_used: int = Field(..., ge=0)
    from_cache: bool


AnalysisResult = Union[RulesOnlyResult, AIAugmentedResult]


class AnalysisOptions(BaseModel):
    """Per-call options recognised by the orchestrator"""
    force_ai: Optional[bool] = Field(
        None,
        description="True always escalates, False never does, None defers to the escalation policy"
    )
    bypass_cache: bool = Field(False, description="Skip the cache lookup (the result is still written back)")
    similar_contracts: Optional[List[SimilarContract]] = None
    buyer_history: Optional[BuyerHistory] = None


class AnalyzeRequest(BaseModel):
    """Request body for single contract analysis"""
    contract: ContractFacts
    options: AnalysisOptions = Field(default_factory=AnalysisOptions)


class BatchAnalyzeRequest(BaseModel):
    """Request body for batch analysis"""
    contracts: List[ContractFacts] = Field(..., min_length=1)
    options: AnalysisOptions = Field(default_factory=AnalysisOptions)


class BatchItemResult(BaseModel):
    """Outcome of one contract within a batch"""
    contract_id: str
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None


class BatchSummary(BaseModel):
    """Counters over a batch run"""
    total: int = 0
    analyzed: int = 0
    ai_powered: int = 0
    from_cache: int = 0
    errors: int = 0


class BatchAnalyzeResponse(BaseModel):
    """Response body for batch analysis"""
    results: List[BatchItemResult]
    summary: BatchSummary
