"""
FinTrace Forensics - Transaction Risk Scoring

Additive heuristic scoring of single transactions. Each heuristic either
fires or not; the points of every fired heuristic are summed and the sum
is mapped to a risk level and a legitimacy assessment.

| Heuristic          | Condition                                   | Points |
|--------------------|---------------------------------------------|--------|
| Round amount       | whole-dollar amount of at least 100         | 15     |
| Large amount       | absolute amount above 50,000                | 25     |
| Weekend            | dated on a Saturday or Sunday               | 20     |
| Vague description  | description missing or under 10 characters  | 10     |
| Suspicious keyword | cash, consulting, misc, various, expenses   | 15     |
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Tuple

from fintrace.models.forensic import LegitimacyAssessment, RiskLevel
from fintrace.schemas.forensic import TransactionAnalysisResult, TransactionRecord


ROUND_DOLLAR_FLAG = "Round dollar amount"
LARGE_AMOUNT_FLAG = "Unusually large amount"
WEEKEND_FLAG = "Weekend transaction"
VAGUE_DESCRIPTION_FLAG = "Vague or missing description"
SUSPICIOUS_KEYWORD_FLAG = "Suspicious description keywords"


@dataclass(frozen=True)
class HeuristicWeights:
    """
    Points, thresholds and keyword list used by the scorer.

    Instances are immutable; build a new one to override a value for a
    tenant or a test.
    """
    round_amount_points: int = 15
    large_amount_points: int = 25
    weekend_points: int = 20
    vague_description_points: int = 10
    suspicious_keyword_points: int = 15

    round_amount_minimum: Decimal = Decimal("100")
    large_amount_threshold: Decimal = Decimal("50000")
    min_description_length: int = 10
    suspicious_keywords: Tuple[str, ...] = ("cash", "consulting", "misc", "various", "expenses")

    high_risk_score: int = 50
    medium_risk_score: int = 25
    improper_score: int = 60
    questionable_score: int = 40
    proper_below_score: int = 20


DEFAULT_WEIGHTS = HeuristicWeights()


def is_round_dollar(amount: Decimal, minimum: Decimal = DEFAULT_WEIGHTS.round_amount_minimum) -> bool:
    """Whole-dollar amount at or above the minimum."""
    value = abs(Decimal(amount))
    return value % 1 == 0 and value >= minimum


class TransactionRiskScorer:
    """Deterministic scorer for single transactions."""

    def __init__(self, weights: HeuristicWeights = DEFAULT_WEIGHTS):
        self.weights = weights

    def risk_level_for(self, score: int) -> RiskLevel:
        if score >= self.weights.high_risk_score:
            return RiskLevel.HIGH
        if score >= self.weights.medium_risk_score:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def legitimacy_for(self, score: int) -> LegitimacyAssessment:
        # 20-39 is deliberately left undetermined
        if score >= self.weights.improper_score:
            return LegitimacyAssessment.IMPROPER
        if score >= self.weights.questionable_score:
            return LegitimacyAssessment.QUESTIONABLE
        if score < self.weights.proper_below_score:
            return LegitimacyAssessment.PROPER
        return LegitimacyAssessment.UNABLE_TO_DETERMINE

    def score(self, transaction: TransactionRecord) -> TransactionAnalysisResult:
        """
        Score one transaction.

        Red flags are listed in heuristic order, so equal inputs always
        produce equal outputs.
        """
        w = self.weights
        amount = abs(transaction.amount)
        description = transaction.description or ""

        points = 0
        red_flags: List[str] = []

        if is_round_dollar(amount, w.round_amount_minimum):
            points += w.round_amount_points
            red_flags.append(ROUND_DOLLAR_FLAG)

        if amount > w.large_amount_threshold:
            points += w.large_amount_points
            red_flags.append(LARGE_AMOUNT_FLAG)

        if transaction.date is not None and transaction.date.weekday() >= 5:
            points += w.weekend_points
            red_flags.append(WEEKEND_FLAG)

        if len(description) < w.min_description_length:
            points += w.vague_description_points
            red_flags.append(VAGUE_DESCRIPTION_FLAG)

        lowered = description.lower()
        if any(keyword in lowered for keyword in w.suspicious_keywords):
            points += w.suspicious_keyword_points
            red_flags.append(SUSPICIOUS_KEYWORD_FLAG)

        return TransactionAnalysisResult(
            transaction_id=transaction.id,
            risk_level=self.risk_level_for(points),
            legitimacy_assessment=self.legitimacy_for(points),
            red_flags=red_flags,
            score=points,
        )

    def score_many(self, transactions: Iterable[TransactionRecord]) -> List[TransactionAnalysisResult]:
        """Score a batch in input order. Duplicates are scored twice."""
        return [self.score(transaction) for transaction in transactions]


# Default scorer instance
risk_scorer = TransactionRiskScorer()
