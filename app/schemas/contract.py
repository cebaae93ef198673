"""
Contract facts and red flag schemas
"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Severity(str, Enum):
    """Red flag severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Presentation order: most severe first
SEVERITY_RANK = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
}


class FlagType(str, Enum):
    """Known red flag tags (rules emit a subset, the LLM may emit any of them)"""
    SINGLE_BIDDER = "single_bidder"
    PRICE_ANOMALY = "price_anomaly"
    NARROW_SPECS = "narrow_specs"
    CONTRACT_SPLITTING = "contract_splitting"
    REPEATED_WINNER = "repeated_winner"
    LAST_MINUTE_CHANGE = "last_minute_change"
    DIRECT_AWARD = "direct_award"
    AWARD_DELAY = "award_delay"
    MISSING_DATA = "missing_data"


class ContractFacts(BaseModel):
    """
    A single public procurement contract record.

    Immutable. Required identity fields are validated on construction so that
    malformed records are rejected before any scoring happens.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    contract_id: str = Field(..., min_length=3, description="Contract identifier from the source registry")
    title: str = Field(..., min_length=5, description="Contract title / object")
    buyer_name: str = Field(..., min_length=3, description="Contracting authority name")
    buyer_tax_id: Optional[str] = Field(None, description="Contracting authority tax id (CUI)")
    winner_name: Optional[str] = Field(None, description="Awarded supplier name")
    winner_tax_id: Optional[str] = Field(None, description="Awarded supplier tax id (CUI)")
    contract_value: Optional[float] = Field(None, ge=0, allow_inf_nan=False, description="Awarded contract value")
    estimated_value: Optional[float] = Field(None, ge=0, allow_inf_nan=False, description="Estimated value published before award")
    num_bidders: Optional[int] = Field(None, ge=0, description="Number of received bids")
    procedure_type: Optional[str] = Field(None, description="Procurement procedure (open, negotiated, direct, ...)")
    award_date: Optional[date] = None
    publication_date: Optional[date] = None

    # Descriptive metadata, carried through but never scored or hashed
    description: Optional[str] = None
    currency: str = "RON"
    cpv_code: Optional[str] = None
    location: Optional[str] = None

    @field_validator("contract_id", "title", "buyer_name", mode="before")
    @classmethod
    def strip_required_text(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("winner_name", "procedure_type", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class RedFlag(BaseModel):
    """A typed, severity-ranked, confidence-scored anomaly finding"""
    model_config = ConfigDict(frozen=True)

    flag_type: str = Field(..., min_length=1, description="Flag tag, dedup identity")
    severity: Severity
    confidence: float = Field(..., ge=0.0, le=1.0)
    description: str
    ai_explanation: Optional[str] = Field(None, description="Natural-language explanation for citizens")


class SimilarContract(BaseModel):
    """Comparable contract passed to the LLM as context"""
    contract_value: float
    num_bidders: int


class BuyerHistory(BaseModel):
    """Aggregate history of a contracting authority"""
    total_contracts: int = Field(..., ge=0)
    avg_risk_score: float = Field(..., ge=0, le=100)
