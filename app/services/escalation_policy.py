"""
Escalation Policy
Decides whether a contract is worth a paid LLM call on top of the free rules.
"""

from app.schemas.contract import ContractFacts
from app.services.rule_engine import PRICE_DEVIATION_THRESHOLD, price_deviation

HIGH_STAKES_VALUE = 500_000
MEDIUM_RISK_SCORE = 50


def should_use_ai(facts: ContractFacts, rule_score: int) -> bool:
    """
    Return True if any cheap signal justifies LLM analysis.

    Overlaps with the single-bidder and price-anomaly rules on purpose, so
    those signals escalate on their own regardless of the final rule score.
    """
    is_high_value = facts.contract_value is not None and facts.contract_value > HIGH_STAKES_VALUE
    is_medium_risk = rule_score >= MEDIUM_RISK_SCORE
    is_single_bidder = facts.num_bidders == 1

    deviation = price_deviation(facts)
    has_price_anomaly = deviation is not None and abs(deviation) > PRICE_DEVIATION_THRESHOLD

    return is_high_value or is_medium_risk or is_single_bidder or has_price_anomaly
