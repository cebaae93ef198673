"""
Red flag merging
Reconciles rule-based and LLM-based findings into one result.
"""

from typing import Dict, Iterable, List, Sequence, Tuple

from pydantic import ValidationError

from app.schemas.analysis import AnalysisInvariantError
from app.schemas.contract import SEVERITY_RANK, RedFlag
from app.schemas.llm import AIRedFlag

AI_DESCRIPTION_PREFIX = "AI-detected: "


def ai_flag_to_red_flag(flag: AIRedFlag) -> RedFlag:
    """Re-tag an LLM flag so it can be told apart from rule flags"""
    try:
        return RedFlag(
            flag_type=flag.type,
            severity=flag.severity,
            confidence=flag.confidence,
            description=f"{AI_DESCRIPTION_PREFIX}{flag.type}",
            ai_explanation=flag.explanation,
        )
    except ValidationError as e:
        raise AnalysisInvariantError(f"LLM flag violates red flag contract: {e}")


def dedupe_flags(flags: Iterable[RedFlag]) -> List[RedFlag]:
    """
    Keep one flag per flag_type, the one with the highest confidence.

    On equal confidence the first one seen wins. Result order follows the
    first appearance of each type.
    """
    by_type: Dict[str, RedFlag] = {}
    for flag in flags:
        current = by_type.get(flag.flag_type)
        if current is None or flag.confidence > current.confidence:
            by_type[flag.flag_type] = flag
    return list(by_type.values())


def sort_by_severity(flags: Sequence[RedFlag]) -> Tuple[RedFlag, ...]:
    """Critical first, then high, medium, low; stable within a severity"""
    return tuple(sorted(flags, key=lambda f: SEVERITY_RANK[f.severity]))


def merge_red_flags(
    rule_flags: Sequence[RedFlag],
    ai_flags: Sequence[AIRedFlag],
) -> Tuple[RedFlag, ...]:
    """
    Merge rule flags with LLM flags.

    Args:
        rule_flags: Flags from the rule engine
        ai_flags: Flags from the structured LLM analysis

    Returns:
        Deduplicated flags ordered by severity
    """
    converted = [ai_flag_to_red_flag(flag) for flag in ai_flags]
    return sort_by_severity(dedupe_flags([*rule_flags, *converted]))


def merge_risk_scores(rule_score: int, ai_score: int) -> int:
    """Either signal alone is enough evidence, so take the stronger one"""
    return max(rule_score, ai_score)
