"""
FinTrace Forensics - Damage Calculator Tests

Unit tests for direct loss, net-worth method and pre-judgment interest.
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from fintrace.models.transaction import TransactionType
from fintrace.schemas.forensic import TransactionRecord
from fintrace.services.damage_calculator import DamageCalculator
from fintrace.utils.error_handling import InvalidAmountException, ValidationException


AS_OF = datetime(2025, 6, 30, 12, 0, tzinfo=timezone.utc)


class TestDirectLoss:

    def setup_method(self):
        self.calculator = DamageCalculator()

    def test_breakdown_sums_exactly_to_total(self):
        transactions = [
            TransactionRecord(id=uuid4(), amount=Decimal("-1000.10"), description="Shell vendor payment"),
            TransactionRecord(id=uuid4(), amount=Decimal("-0.20"), description="Rounding skim"),
            TransactionRecord(id=uuid4(), amount=Decimal("333.33"), type=TransactionType.INCOME,
                              description="Diverted receipt"),
        ]

        result = self.calculator.direct_loss(transactions)

        assert result.total_damage == Decimal("1333.63")
        assert sum(item.amount for item in result.breakdown) == result.total_damage
        assert [item.category for item in result.breakdown] == ["expense", "expense", "income"]
        assert result.confidence_level == "high"
        assert result.method == "direct_loss"

    def test_description_falls_back_to_title(self):
        result = self.calculator.direct_loss([
            TransactionRecord(amount=Decimal("-50"), title="Petty Cash"),
            TransactionRecord(amount=Decimal("-25")),
        ])

        assert [item.description for item in result.breakdown] == ["Petty Cash", "Improper transaction"]

    def test_assumptions_and_limitations_are_stated(self):
        result = self.calculator.direct_loss([])

        assert result.total_damage == Decimal("0")
        assert result.assumptions == [
            "All identified transactions are improper",
            "Amounts are accurate as recorded",
        ]
        assert result.limitations == [
            "Does not include consequential damages",
            "Does not include interest",
        ]


class TestNetWorthMethod:

    def test_unexplained_wealth(self):
        calculator = DamageCalculator()

        result = calculator.net_worth(
            beginning_net_worth=Decimal("100000"),
            ending_net_worth=Decimal("250000"),
            personal_expenditures=Decimal("60000"),
            legitimate_income=Decimal("80000"),
        )

        assert result.total_damage == Decimal("130000")
        assert [item.amount for item in result.breakdown] == [
            Decimal("150000"), Decimal("60000"), Decimal("-80000"),
        ]
        assert sum(item.amount for item in result.breakdown) == result.total_damage
        assert result.confidence_level == "medium"
        assert len(result.assumptions) == 3
        assert len(result.limitations) == 3


class TestPreJudgmentInterest:

    def setup_method(self):
        self.calculator = DamageCalculator()

    def test_one_julian_year_is_exact(self):
        loss_date = AS_OF - timedelta(days=365.25)

        interest = self.calculator.pre_judgment_interest(
            Decimal("10000"), loss_date, Decimal("0.05"), as_of=AS_OF
        )

        assert interest == Decimal("500.00")

    def test_one_calendar_year_ago_is_about_500(self):
        one_year_ago = datetime.now(timezone.utc) - timedelta(days=365)

        interest = self.calculator.pre_judgment_interest(Decimal("10000"), one_year_ago, Decimal("0.05"))

        assert abs(interest - Decimal("500")) < Decimal("1")

    def test_interest_is_simple_not_compound(self):
        loss_date = AS_OF - timedelta(days=365.25 * 2)

        interest = self.calculator.pre_judgment_interest(
            Decimal("10000"), loss_date, Decimal("0.10"), as_of=AS_OF
        )

        assert interest == Decimal("2000.00")

    def test_naive_loss_date_is_treated_as_utc(self):
        naive = (AS_OF - timedelta(days=365.25)).replace(tzinfo=None)

        interest = self.calculator.pre_judgment_interest(Decimal("10000"), naive, Decimal("0.05"), as_of=AS_OF)

        assert interest == Decimal("500.00")

    def test_negative_rate_rejected(self):
        with pytest.raises(ValidationException) as exc_info:
            self.calculator.pre_judgment_interest(Decimal("100"), AS_OF, Decimal("-0.01"), as_of=AS_OF)
        assert exc_info.value.field == "rate"

    def test_negative_amount_rejected(self):
        with pytest.raises(InvalidAmountException):
            self.calculator.pre_judgment_interest(Decimal("-100"), AS_OF, Decimal("0.05"), as_of=AS_OF)

    def test_future_loss_date_rejected(self):
        with pytest.raises(ValidationException) as exc_info:
            self.calculator.pre_judgment_interest(
                Decimal("100"), AS_OF + timedelta(days=1), Decimal("0.05"), as_of=AS_OF
            )
        assert exc_info.value.field == "loss_date"
