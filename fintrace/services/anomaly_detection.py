"""
FinTrace Forensics - Anomaly Detectors

Batch detectors over a transaction snapshot:
1. Duplicate payments - same amount, description and day
2. Unusual timing - weekend and after-hours activity
3. Round-dollar bias - too many whole-dollar amounts

Each detector is a pure function of its input and returns an empty list
when nothing is found.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from fintrace.models.forensic import AnomalySeverity, AnomalyType
from fintrace.schemas.forensic import AnomalyDetectionResult, TransactionRecord
from fintrace.services.risk_scoring import DEFAULT_WEIGHTS, HeuristicWeights, is_round_dollar


# Business hours are [6:00, 22:00)
BUSINESS_HOURS_START = 6
BUSINESS_HOURS_END = 22

DEFAULT_ROUND_DOLLAR_THRESHOLD_PCT = 30.0


def _ref(transaction: TransactionRecord) -> str:
    return str(transaction.id) if transaction.id is not None else ""


class AnomalyDetector:
    """Duplicate, timing and round-dollar detectors sharing one configuration."""

    def __init__(
        self,
        round_dollar_threshold_pct: float = DEFAULT_ROUND_DOLLAR_THRESHOLD_PCT,
        weights: HeuristicWeights = DEFAULT_WEIGHTS,
    ):
        self.round_dollar_threshold_pct = round_dollar_threshold_pct
        self.weights = weights

    def detect_duplicate_payments(
        self,
        transactions: Sequence[TransactionRecord],
    ) -> List[AnomalyDetectionResult]:
        """Group by (amount, description, day); every group of two or more is a hit."""
        groups: Dict[Tuple[Decimal, str, Optional[date]], List[TransactionRecord]] = defaultdict(list)
        for transaction in transactions:
            day = transaction.date.date() if transaction.date is not None else None
            key = (transaction.amount, transaction.description or "none", day)
            groups[key].append(transaction)

        results = []
        for members in groups.values():
            if len(members) < 2:
                continue
            results.append(AnomalyDetectionResult(
                anomaly_type=AnomalyType.DUPLICATE_PAYMENT,
                severity=AnomalySeverity.HIGH,
                description=f"{len(members)} duplicate transactions with same amount, date, and description",
                affected_transactions=[_ref(t) for t in members],
            ))
        return results

    def detect_unusual_timing(
        self,
        transactions: Sequence[TransactionRecord],
    ) -> List[AnomalyDetectionResult]:
        """Flag weekend activity and activity outside business hours."""
        results = []
        for transaction in transactions:
            if transaction.date is None:
                continue
            when = transaction.date

            if when.weekday() >= 5:
                results.append(AnomalyDetectionResult(
                    anomaly_type=AnomalyType.UNUSUAL_TIMING,
                    severity=AnomalySeverity.MEDIUM,
                    description=f"Weekend transaction on {when.date().isoformat()}",
                    affected_transactions=[_ref(transaction)],
                ))

            if when.hour < BUSINESS_HOURS_START or when.hour >= BUSINESS_HOURS_END:
                results.append(AnomalyDetectionResult(
                    anomaly_type=AnomalyType.UNUSUAL_TIMING,
                    severity=AnomalySeverity.MEDIUM,
                    description=f"Transaction occurred outside business hours ({when.hour}:00)",
                    affected_transactions=[_ref(transaction)],
                ))
        return results

    def detect_round_dollar_anomalies(
        self,
        transactions: Sequence[TransactionRecord],
    ) -> List[AnomalyDetectionResult]:
        """One anomaly when the round-dollar share strictly exceeds the threshold."""
        if not transactions:
            return []

        minimum = self.weights.round_amount_minimum
        round_dollar = [t for t in transactions if is_round_dollar(t.amount, minimum)]
        percentage = len(round_dollar) * 100 / len(transactions)

        if percentage <= self.round_dollar_threshold_pct:
            return []

        return [AnomalyDetectionResult(
            anomaly_type=AnomalyType.ROUND_DOLLAR,
            severity=AnomalySeverity.MEDIUM,
            description=(
                f"Excessive round dollar amounts: {percentage:.1f}% of transactions "
                f"are round dollar amounts (expected: <20%)"
            ),
            affected_transactions=[_ref(t) for t in round_dollar],
        )]


# Default detector instance
anomaly_detector = AnomalyDetector()
