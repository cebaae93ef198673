"""
LLM-related Pydantic schemas and types
"""

import math
from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from app.schemas.contract import BuyerHistory, ContractFacts, Severity, SimilarContract


class AIModels:
    """Model catalogue for the OpenRouter endpoint"""
    # Free models (bulk analysis)
    FREE_FAST = "deepseek/deepseek-chat"
    FREE_QUALITY = "meta-llama/llama-3.3-70b-instruct"

    # Paid model for high-value contracts
    PREMIUM = "anthropic/claude-sonnet-4"

    FALLBACK = "openai/gpt-3.5-turbo"


class LLMErrorType(str, Enum):
    """Types of LLM call failures"""
    NOT_CONFIGURED = "not_configured"
    RATE_LIMIT = "rate_limit"
    AUTHENTICATION = "authentication"
    INVALID_REQUEST = "invalid_request"
    SERVER_ERROR = "server_error"
    TIMEOUT = "timeout"
    NETWORK = "network"
    EMPTY_RESPONSE = "empty_response"
    MALFORMED_RESPONSE = "malformed_response"
    UNKNOWN = "unknown"


class LLMError(Exception):
    """Custom LLM analyzer error"""
    def __init__(self, message: str, error_type: LLMErrorType, status_code: Optional[int] = None):
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        super().__init__(self.message)


class AIContractPayload(BaseModel):
    """Non-sensitive subset of a contract sent to the model"""
    contract_id: str
    title: str
    buyer_name: str
    winner_name: Optional[str] = None
    contract_value: Optional[float] = None
    estimated_value: Optional[float] = None
    num_bidders: Optional[int] = None
    procedure_type: Optional[str] = None


class AIAnalysisRequest(BaseModel):
    """User payload of the chat completion, serialized as JSON"""
    contract: AIContractPayload
    similar_contracts: Optional[List[SimilarContract]] = None
    buyer_history: Optional[BuyerHistory] = None

    @classmethod
    def from_facts(
        cls,
        facts: ContractFacts,
        similar_contracts: Optional[List[SimilarContract]] = None,
        buyer_history: Optional[BuyerHistory] = None
    ) -> "AIAnalysisRequest":
        contract = AIContractPayload(
            contract_id=facts.contract_id,
            title=facts.title,
            buyer_name=facts.buyer_name,
            winner_name=facts.winner_name,
            contract_value=facts.contract_value,
            estimated_value=facts.estimated_value,
            num_bidders=facts.num_bidders,
            procedure_type=facts.procedure_type,
        )
        return cls(contract=contract, similar_contracts=similar_contracts, buyer_history=buyer_history)


class AIRedFlag(BaseModel):
    """A red flag as returned by the model"""
    type: str = Field(..., min_length=1)
    severity: Severity
    confidence: float = Field(..., ge=0.0, le=1.0)
    explanation: str = Field(..., validation_alias=AliasChoices("explanation", "explanation_ro"))


class StructuredAnalysis(BaseModel):
    """Structured response schema the model must return"""
    risk_score: int = Field(..., ge=0, le=100)
    red_flags: List[AIRedFlag] = Field(default_factory=list)
    summary: str = Field(..., validation_alias=AliasChoices("summary", "summary_ro"))
    recommendations: List[str] = Field(default_factory=list)
    similar_contracts_comparison: Optional[str] = None

    @field_validator("risk_score", mode="before")
    @classmethod
    def round_fractional_score(cls, v):
        """Models sometimes answer 72.5; round half up instead of rejecting the analysis"""
        if isinstance(v, float) and math.isfinite(v) and v >= 0:
            return math.floor(v + 0.5)
        return v


class LLMAnalysisResult(BaseModel):
    """Outcome of one analyzer call; analysis is None on any failure"""
    analysis: Optional[StructuredAnalysis] = None
    tokens_used: int = 0
    model: str
