"""
Red flag merge tests
"""

import pytest
from pydantic import ValidationError

from app.schemas.analysis import AnalysisInvariantError
from app.schemas.contract import RedFlag, Severity
from app.schemas.llm import AIRedFlag
from app.services.flag_merger import (
    ai_flag_to_red_flag,
    dedupe_flags,
    merge_red_flags,
    merge_risk_scores,
    sort_by_severity,
)


def _flag(flag_type, confidence, severity=Severity.HIGH, description="rule"):
    return RedFlag(flag_type=flag_type, severity=severity, confidence=confidence, description=description)


def _ai_flag(flag_type, confidence, severity="medium"):
    return AIRedFlag(type=flag_type, severity=severity, confidence=confidence, explanation=f"{flag_type} explicat")


class TestDedupe:

    def test_higher_confidence_survives(self):
        low = _flag("single_bidder", 0.6, description="low")
        high = _flag("single_bidder", 0.9, description="high")

        assert dedupe_flags([low, high]) == [high]
        assert dedupe_flags([high, low]) == [high]

    def test_equal_confidence_keeps_first(self):
        first = _flag("price_anomaly", 0.85, description="first")
        second = _flag("price_anomaly", 0.85, description="second")

        assert dedupe_flags([first, second]) == [first]

    def test_disjoint_types_commute(self):
        a = [_flag("single_bidder", 0.95), _flag("missing_data", 1.0, Severity.MEDIUM)]
        b = [_flag("repeated_winner", 0.7, Severity.LOW), _flag("direct_award", 0.8)]

        forward = sort_by_severity(dedupe_flags(a + b))
        backward = sort_by_severity(dedupe_flags(b + a))

        assert set(forward) == set(backward)
        assert len(forward) == 4


class TestSeverityOrder:

    def test_sorted_critical_first_and_stable(self):
        flags = [
            _flag("a", 0.5, Severity.LOW),
            _flag("b", 0.5, Severity.HIGH),
            _flag("c", 0.5, Severity.CRITICAL),
            _flag("d", 0.5, Severity.HIGH),
            _flag("e", 0.5, Severity.MEDIUM),
        ]

        assert [f.flag_type for f in sort_by_severity(flags)] == ["c", "b", "d", "e", "a"]


class TestMergeRedFlags:

    def test_ai_flags_are_retagged(self):
        converted = ai_flag_to_red_flag(_ai_flag("narrow_specs", 0.6))

        assert converted.flag_type == "narrow_specs"
        assert converted.description == "AI-detected: narrow_specs"
        assert converted.ai_explanation == "narrow_specs explicat"

    def test_ai_flag_with_higher_confidence_replaces_rule_flag(self):
        rule = [_flag("single_bidder", 0.6)]
        ai = [_ai_flag("single_bidder", 0.9, severity="critical")]

        merged = merge_red_flags(rule, ai)

        assert len(merged) == 1
        assert merged[0].confidence == 0.9
        assert merged[0].description.startswith("AI-detected")

    def test_rule_flag_with_higher_confidence_is_kept(self):
        rule = [_flag("single_bidder", 0.95)]
        ai = [_ai_flag("single_bidder", 0.6)]

        merged = merge_red_flags(rule, ai)

        assert merged == (rule[0],)

    def test_one_sided_flags_pass_through(self):
        rule = [_flag("missing_data", 1.0, Severity.MEDIUM)]
        ai = [_ai_flag("award_delay", 0.4, severity="low")]

        merged = merge_red_flags(rule, ai)

        assert [f.flag_type for f in merged] == ["missing_data", "award_delay"]


class TestMergeRiskScores:

    @pytest.mark.parametrize("rule_score,ai_score", [(0, 0), (30, 70), (85, 40), (100, 100), (15, 16)])
    def test_takes_max(self, rule_score, ai_score):
        assert merge_risk_scores(rule_score, ai_score) == max(rule_score, ai_score)


class TestInvariantViolations:

    def test_unknown_severity_from_model_is_rejected(self):
        with pytest.raises(ValidationError):
            AIRedFlag(type="single_bidder", severity="extreme", confidence=0.9, explanation="x")

    def test_invalid_converted_flag_raises_invariant_error(self):
        bad = AIRedFlag.model_construct(type="single_bidder", severity="extreme", confidence=0.9, explanation="x")

        with pytest.raises(AnalysisInvariantError):
            ai_flag_to_red_flag(bad)
