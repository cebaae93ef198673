"""
Rule Engine
Deterministic corruption-risk rules over a single contract record.
Pure: no I/O, no configuration, same input always yields the same output.
"""

from typing import List, Optional

from app.schemas.analysis import RulesOnlyResult
from app.schemas.contract import ContractFacts, FlagType, RedFlag, Severity

MAX_RISK_SCORE = 100

PRICE_DEVIATION_THRESHOLD = 0.30
DIRECT_AWARD_VALUE_THRESHOLD = 50_000
HIGH_VALUE_THRESHOLD = 1_000_000

SINGLE_BIDDER_POINTS = 30
PRICE_OVER_ESTIMATE_POINTS = 35
PRICE_UNDER_ESTIMATE_POINTS = 25
DIRECT_AWARD_POINTS = 25
HIGH_VALUE_POINTS = 10
MISSING_DATA_POINTS = 15


def price_deviation(facts: ContractFacts) -> Optional[float]:
    """
    Relative deviation of the awarded value from the estimate.

    Returns None when either value is missing or the estimate is zero.
    """
    if facts.contract_value is None or not facts.estimated_value:
        return None
    return (facts.contract_value - facts.estimated_value) / facts.estimated_value


def _single_bidder(facts: ContractFacts) -> Optional[RedFlag]:
    if facts.num_bidders != 1:
        return None
    return RedFlag(
        flag_type=FlagType.SINGLE_BIDDER.value,
        severity=Severity.HIGH,
        confidence=0.95,
        description="Contract had only one bidder",
        ai_explanation=(
            "Acest contract a avut un singur ofertant, ceea ce ridică suspiciuni de manipulare "
            "a licitației. În piețe competitive ar trebui să existe mai mulți ofertanți."
        ),
    )


def _price_anomaly(deviation: float) -> RedFlag:
    percent = abs(deviation) * 100
    over = deviation > 0
    return RedFlag(
        flag_type=FlagType.PRICE_ANOMALY.value,
        severity=Severity.CRITICAL if over else Severity.HIGH,
        confidence=0.85,
        description=(
            f"Contract value {'exceeds' if over else 'is below'} estimated value by {percent:.1f}%"
        ),
        ai_explanation=(
            f"Valoarea contractului este cu {percent:.1f}% {'mai mare' if over else 'mai mică'} "
            "decât estimarea inițială. Acest lucru poate indica manipularea specificațiilor "
            "sau o evaluare incorectă."
        ),
    )


def _direct_award(facts: ContractFacts) -> Optional[RedFlag]:
    procedure = (facts.procedure_type or "").lower()
    if "direct" not in procedure:
        return None
    if facts.contract_value is None or facts.contract_value <= DIRECT_AWARD_VALUE_THRESHOLD:
        return None
    return RedFlag(
        flag_type=FlagType.DIRECT_AWARD.value,
        severity=Severity.HIGH,
        confidence=0.80,
        description="High-value direct award",
        ai_explanation=(
            "Contract de valoare mare atribuit direct, fără competiție deschisă. "
            "Acest lucru necesită o justificare clară conform legislației achizițiilor publice."
        ),
    )


def missing_critical_fields(facts: ContractFacts) -> List[str]:
    """Names of the critical fields absent from the record, in a fixed order"""
    missing = []
    if facts.award_date is None:
        missing.append("award_date")
    if facts.winner_name is None:
        missing.append("winner_name")
    if facts.contract_value is None:
        missing.append("contract_value")
    return missing


def _missing_data(missing: List[str]) -> RedFlag:
    fields = ", ".join(missing)
    return RedFlag(
        flag_type=FlagType.MISSING_DATA.value,
        severity=Severity.MEDIUM,
        confidence=1.0,
        description=f"Missing critical fields: {fields}",
        ai_explanation=(
            f"Lipsesc informații critice: {fields}. Lipsa transparenței poate indica "
            "probleme în procesul de achiziție."
        ),
    )


def analyze_contract_rules(facts: ContractFacts) -> RulesOnlyResult:
    """
    Score a contract with the deterministic rule set.

    Every rule contributes independently to the score, which is capped at 100.
    Flags are emitted in rule order.

    Args:
        facts: Validated contract record

    Returns:
        RulesOnlyResult with risk score and red flags
    """
    red_flags: List[RedFlag] = []
    risk_score = 0

    # Rule 1: single bidder
    flag = _single_bidder(facts)
    if flag:
        red_flags.append(flag)
        risk_score += SINGLE_BIDDER_POINTS

    # Rule 2: price far from estimate
    deviation = price_deviation(facts)
    if deviation is not None and abs(deviation) > PRICE_DEVIATION_THRESHOLD:
        red_flags.append(_price_anomaly(deviation))
        risk_score += PRICE_OVER_ESTIMATE_POINTS if deviation > 0 else PRICE_UNDER_ESTIMATE_POINTS

    # Rule 3: direct award above the threshold
    flag = _direct_award(facts)
    if flag:
        red_flags.append(flag)
        risk_score += DIRECT_AWARD_POINTS

    # Rule 4: very high value raises the baseline, no flag
    if facts.contract_value is not None and facts.contract_value > HIGH_VALUE_THRESHOLD:
        risk_score += HIGH_VALUE_POINTS

    # Rule 5: missing critical data
    missing = missing_critical_fields(facts)
    if len(missing) >= 2:
        red_flags.append(_missing_data(missing))
        risk_score += MISSING_DATA_POINTS

    return RulesOnlyResult(
        risk_score=min(MAX_RISK_SCORE, risk_score),
        red_flags=tuple(red_flags),
    )
