"""
FinTrace Forensics - Risk Scoring Tests

Unit tests for the additive transaction risk scorer.
"""

import pytest
from datetime import datetime
from decimal import Decimal

from fintrace.models.forensic import LegitimacyAssessment, RiskLevel
from fintrace.schemas.forensic import TransactionRecord
from fintrace.services.risk_scoring import (
    HeuristicWeights,
    TransactionRiskScorer,
    is_round_dollar,
)


TUESDAY = datetime(2024, 3, 5, 10, 0)
SATURDAY = datetime(2024, 3, 9, 11, 0)


def record(amount: str, when=TUESDAY, description="Office supplies for Q1 operations") -> TransactionRecord:
    return TransactionRecord(amount=Decimal(amount), date=when, description=description)


class TestHeuristics:
    """Each heuristic fires on its own condition."""

    def setup_method(self):
        self.scorer = TransactionRiskScorer()

    def test_clean_transaction_scores_zero(self):
        result = self.scorer.score(record("1234.56"))

        assert result.score == 0
        assert result.red_flags == []
        assert result.risk_level == RiskLevel.LOW
        assert result.legitimacy_assessment == LegitimacyAssessment.PROPER

    def test_all_heuristics_in_table_order(self):
        result = self.scorer.score(record("75000", when=SATURDAY, description="cash"))

        # round 15 + large 25 + weekend 20 + vague 10 + keyword 15
        assert result.score == 85
        assert result.red_flags == [
            "Round dollar amount",
            "Unusually large amount",
            "Weekend transaction",
            "Vague or missing description",
            "Suspicious description keywords",
        ]
        assert result.risk_level == RiskLevel.HIGH
        assert result.legitimacy_assessment == LegitimacyAssessment.IMPROPER

    def test_negative_amounts_use_absolute_value(self):
        result = self.scorer.score(record("-500.00"))

        assert result.red_flags == ["Round dollar amount"]
        assert result.score == 15

    def test_round_dollar_requires_at_least_100(self):
        assert is_round_dollar(Decimal("100")) is True
        assert is_round_dollar(Decimal("99")) is False
        assert is_round_dollar(Decimal("100.50")) is False
        assert is_round_dollar(Decimal("-2500.00")) is True

    def test_large_amount_is_strictly_above_threshold(self):
        at_threshold = self.scorer.score(record("50000.01"))
        below = self.scorer.score(record("49999.99"))

        assert "Unusually large amount" in at_threshold.red_flags
        assert "Unusually large amount" not in below.red_flags

    def test_missing_description_is_vague(self):
        result = self.scorer.score(TransactionRecord(amount=Decimal("12.34"), date=TUESDAY))

        assert result.red_flags == ["Vague or missing description"]
        assert result.score == 10

    def test_keyword_match_is_case_insensitive_substring(self):
        result = self.scorer.score(record("12.34", description="Reimbursed MISCellaneous items"))

        assert "Suspicious description keywords" in result.red_flags

    def test_undated_transaction_never_flags_weekend(self):
        result = self.scorer.score(TransactionRecord(
            amount=Decimal("12.34"), description="Office supplies for Q1 operations"
        ))

        assert result.score == 0


class TestThresholds:
    """Risk level and legitimacy boundaries are exact."""

    def setup_method(self):
        self.scorer = TransactionRiskScorer()

    @pytest.mark.parametrize("score,expected", [
        (0, RiskLevel.LOW),
        (24, RiskLevel.LOW),
        (25, RiskLevel.MEDIUM),
        (49, RiskLevel.MEDIUM),
        (50, RiskLevel.HIGH),
    ])
    def test_risk_level(self, score, expected):
        assert self.scorer.risk_level_for(score) == expected

    @pytest.mark.parametrize("score,expected", [
        (19, LegitimacyAssessment.PROPER),
        (20, LegitimacyAssessment.UNABLE_TO_DETERMINE),
        (39, LegitimacyAssessment.UNABLE_TO_DETERMINE),
        (40, LegitimacyAssessment.QUESTIONABLE),
        (59, LegitimacyAssessment.QUESTIONABLE),
        (60, LegitimacyAssessment.IMPROPER),
    ])
    def test_legitimacy(self, score, expected):
        assert self.scorer.legitimacy_for(score) == expected

    def test_boundary_scores_through_custom_weights(self):
        scorer = TransactionRiskScorer(HeuristicWeights(weekend_points=49))
        result = scorer.score(record("12.34", when=SATURDAY))

        assert result.score == 49
        assert result.risk_level == RiskLevel.MEDIUM
        assert result.legitimacy_assessment == LegitimacyAssessment.QUESTIONABLE


class TestDeterminism:

    def test_same_input_same_output(self):
        scorer = TransactionRiskScorer()
        transaction = record("60000", when=SATURDAY, description="consulting")

        assert scorer.score(transaction) == scorer.score(transaction)

    def test_adding_a_feature_never_lowers_the_score(self):
        scorer = TransactionRiskScorer()
        weekday = scorer.score(record("1234.56"))
        weekend = scorer.score(record("1234.56", when=SATURDAY))

        assert weekend.score == weekday.score + 20

    def test_weights_are_immutable(self):
        weights = HeuristicWeights()

        with pytest.raises(AttributeError):
            weights.weekend_points = 0

    def test_batch_keeps_input_order_and_duplicates(self):
        scorer = TransactionRiskScorer()
        transactions = [record("100"), record("1234.56"), record("100")]

        results = scorer.score_many(transactions)

        assert [r.score for r in results] == [15, 0, 15]
