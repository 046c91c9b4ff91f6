"""
FinTrace Forensics - Damage Calculator

Quantified loss under accepted methodologies:
1. Direct loss - sum of identified improper transactions
2. Net-worth method - unexplained wealth from disclosed finances
3. Pre-judgment interest - simple interest on a loss amount

Every calculation states its assumptions and limitations; a damage
figure without them is not auditable.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence

from fintrace.schemas.forensic import DamageBreakdownItem, DamageCalculation, TransactionRecord
from fintrace.utils.error_handling import InvalidAmountException, ValidationException


CENTS = Decimal("0.01")
DAYS_PER_YEAR = Decimal("365.25")
SECONDS_PER_DAY = Decimal(86400)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DamageCalculator:
    """Pure damage arithmetic on Decimal values."""

    def direct_loss(self, transactions: Sequence[TransactionRecord]) -> DamageCalculation:
        breakdown = []
        total = Decimal("0")
        for transaction in transactions:
            amount = abs(transaction.amount)
            total += amount
            breakdown.append(DamageBreakdownItem(
                category=transaction.type.value,
                amount=amount,
                description=transaction.description or transaction.title or "Improper transaction",
            ))

        return DamageCalculation(
            method="direct_loss",
            total_damage=total,
            breakdown=breakdown,
            confidence_level="high",
            assumptions=[
                "All identified transactions are improper",
                "Amounts are accurate as recorded",
            ],
            limitations=[
                "Does not include consequential damages",
                "Does not include interest",
            ],
        )

    def net_worth(
        self,
        beginning_net_worth: Decimal,
        ending_net_worth: Decimal,
        personal_expenditures: Decimal,
        legitimate_income: Decimal,
    ) -> DamageCalculation:
        """Unexplained wealth = (ending - beginning) + expenditures - legitimate income."""
        increase = Decimal(ending_net_worth) - Decimal(beginning_net_worth)
        expenditures = Decimal(personal_expenditures)
        income = Decimal(legitimate_income)
        unexplained = increase + expenditures - income

        return DamageCalculation(
            method="net_worth",
            total_damage=unexplained,
            breakdown=[
                DamageBreakdownItem(
                    category="Net Worth Increase",
                    amount=increase,
                    description="Increase in assets minus liabilities",
                ),
                DamageBreakdownItem(
                    category="Personal Expenditures",
                    amount=expenditures,
                    description="Living expenses and purchases",
                ),
                DamageBreakdownItem(
                    category="Legitimate Income",
                    amount=-income,
                    description="Verified income from legitimate sources",
                ),
            ],
            confidence_level="medium",
            assumptions=[
                "All assets and liabilities have been identified",
                "Legitimate income has been fully documented",
                "No significant gifts or inheritances",
            ],
            limitations=[
                "Requires access to personal financial records",
                "May not capture cash transactions",
                "Estimates may be required for some values",
            ],
        )

    def pre_judgment_interest(
        self,
        amount: Decimal,
        loss_date: datetime,
        rate: Decimal,
        as_of: Optional[datetime] = None,
    ) -> Decimal:
        """
        Simple (non-compounding) interest from the loss date to as_of.

        Years are measured as elapsed days / 365.25 and the result is
        rounded half-up to cents.

        Raises:
            ValidationException: negative amount or rate, or a loss date after as_of
        """
        amount = Decimal(amount)
        rate = Decimal(rate)
        if amount < 0:
            raise InvalidAmountException(amount)
        if rate < 0:
            raise ValidationException("Interest rate must not be negative", field="rate")

        loss_date = _aware(loss_date)
        as_of = _aware(as_of) if as_of is not None else datetime.now(timezone.utc)
        if loss_date > as_of:
            raise ValidationException("Loss date must not be in the future", field="loss_date")

        elapsed: timedelta = as_of - loss_date
        years = Decimal(str(elapsed.total_seconds())) / SECONDS_PER_DAY / DAYS_PER_YEAR
        return (amount * rate * years).quantize(CENTS, rounding=ROUND_HALF_UP)


# Default calculator instance
damage_calculator = DamageCalculator()
