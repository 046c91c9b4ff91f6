"""
FinTrace Forensics - Anomaly Detector Tests

Unit tests for duplicate, timing and round-dollar detectors.
"""

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from fintrace.models.forensic import AnomalySeverity, AnomalyType, DetectionMethod
from fintrace.schemas.forensic import TransactionRecord
from fintrace.services.anomaly_detection import AnomalyDetector


def tx(amount: str, when=datetime(2024, 3, 5, 10, 0), description="Monthly hosting invoice") -> TransactionRecord:
    return TransactionRecord(id=uuid4(), amount=Decimal(amount), date=when, description=description)


class TestDuplicatePayments:

    def setup_method(self):
        self.detector = AnomalyDetector()

    def test_exact_matches_group_together(self):
        first = tx("250.10", when=datetime(2024, 3, 5, 9, 0))
        second = tx("250.10", when=datetime(2024, 3, 5, 17, 45))
        different = tx("250.10", description="Annual hosting invoice")

        results = self.detector.detect_duplicate_payments([first, second, different])

        assert len(results) == 1
        assert results[0].anomaly_type == AnomalyType.DUPLICATE_PAYMENT
        assert results[0].severity == AnomalySeverity.HIGH
        assert results[0].affected_transactions == [str(first.id), str(second.id)]
        assert results[0].description == "2 duplicate transactions with same amount, date, and description"
        assert results[0].detection_method == DetectionMethod.AUTOMATED

    def test_different_day_is_not_a_duplicate(self):
        results = self.detector.detect_duplicate_payments([
            tx("250.10", when=datetime(2024, 3, 5, 9, 0)),
            tx("250.10", when=datetime(2024, 3, 6, 9, 0)),
        ])

        assert results == []

    def test_missing_descriptions_group_as_none(self):
        results = self.detector.detect_duplicate_payments([
            tx("80.00", description=None),
            tx("80.00", description=None),
            tx("80.00", description=None),
        ])

        assert len(results) == 1
        assert len(results[0].affected_transactions) == 3

    def test_empty_input(self):
        assert self.detector.detect_duplicate_payments([]) == []


class TestUnusualTiming:

    def setup_method(self):
        self.detector = AnomalyDetector()

    def test_weekend_and_after_hours_both_reported(self):
        late_saturday = tx("10.00", when=datetime(2024, 3, 9, 23, 30))

        results = self.detector.detect_unusual_timing([late_saturday])

        assert [r.description for r in results] == [
            "Weekend transaction on 2024-03-09",
            "Transaction occurred outside business hours (23:00)",
        ]
        assert all(r.severity == AnomalySeverity.MEDIUM for r in results)
        assert all(r.anomaly_type == AnomalyType.UNUSUAL_TIMING for r in results)

    def test_business_hours_window_is_half_open(self):
        results = self.detector.detect_unusual_timing([
            tx("1", when=datetime(2024, 3, 5, 5, 59)),
            tx("2", when=datetime(2024, 3, 5, 6, 0)),
            tx("3", when=datetime(2024, 3, 5, 21, 59)),
            tx("4", when=datetime(2024, 3, 5, 22, 0)),
        ])

        assert [r.description for r in results] == [
            "Transaction occurred outside business hours (5:00)",
            "Transaction occurred outside business hours (22:00)",
        ]

    def test_undated_transactions_are_skipped(self):
        undated = TransactionRecord(id=uuid4(), amount=Decimal("10"), description="No date recorded")

        assert self.detector.detect_unusual_timing([undated]) == []


class TestRoundDollar:

    def setup_method(self):
        self.detector = AnomalyDetector(round_dollar_threshold_pct=30.0)

    def _population(self, round_count: int, total: int = 100):
        return (
            [tx("500.00") for _ in range(round_count)]
            + [tx("123.45") for _ in range(total - round_count)]
        )

    def test_31_percent_triggers(self):
        transactions = self._population(31)

        results = self.detector.detect_round_dollar_anomalies(transactions)

        assert len(results) == 1
        assert results[0].anomaly_type == AnomalyType.ROUND_DOLLAR
        assert results[0].severity == AnomalySeverity.MEDIUM
        assert len(results[0].affected_transactions) == 31
        assert results[0].description.startswith("Excessive round dollar amounts: 31.0%")

    def test_30_percent_does_not_trigger(self):
        assert self.detector.detect_round_dollar_anomalies(self._population(30)) == []

    def test_small_round_amounts_do_not_count(self):
        transactions = [tx("50.00") for _ in range(10)]

        assert self.detector.detect_round_dollar_anomalies(transactions) == []

    def test_empty_snapshot_never_triggers(self):
        assert self.detector.detect_round_dollar_anomalies([]) == []
