"""
FinTrace Forensics - Benford's Law Analysis

Benford's Law states that in naturally occurring numerical data the
leading digit is distributed logarithmically: digit 1 leads about 30.1%
of the time, digit 9 only about 4.6%. Fabricated figures tend to be
spread more evenly, so a large deviation is a prompt for a manual
data-manipulation review.
"""

from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional

from fintrace.schemas.forensic import BenfordAnalysisSummary, BenfordDigitResult


def _default_expected() -> Mapping[int, float]:
    return MappingProxyType({
        1: 30.1,
        2: 17.6,
        3: 12.5,
        4: 9.7,
        5: 7.9,
        6: 6.7,
        7: 5.8,
        8: 5.1,
        9: 4.6,
    })


@dataclass(frozen=True)
class BenfordTable:
    """Expected first-digit frequencies in percent, plus pass/fail tolerances."""
    expected_pct: Mapping[int, float] = field(default_factory=_default_expected)
    tolerance_pct: float = 2.0
    violation_digits: int = 3


DEFAULT_BENFORD_TABLE = BenfordTable()


def leading_digit(amount) -> Optional[int]:
    """
    First character of the absolute amount in fixed-point notation.

    Amounts below 1 (including zero) have no qualifying leading digit.
    """
    try:
        value = abs(Decimal(str(amount)))
    except (InvalidOperation, ValueError):
        return None
    if value < 1:
        return None
    return int(format(value, "f")[0])


class BenfordsLawAnalyzer:
    """First-digit Benford test with per-digit chi-square contributions."""

    def __init__(self, table: BenfordTable = DEFAULT_BENFORD_TABLE):
        self.table = table

    def analyze(self, amounts: Iterable) -> BenfordAnalysisSummary:
        digits = [d for d in (leading_digit(a) for a in amounts) if d is not None]
        total = len(digits)
        counts = Counter(digits)

        results: List[BenfordDigitResult] = []
        total_chi_square = 0.0
        failed = 0

        for digit, expected_pct in self.table.expected_pct.items():
            count = counts.get(digit, 0)
            observed_pct = (count / total * 100) if total else 0.0
            deviation = observed_pct - expected_pct

            expected_count = total * expected_pct / 100
            chi_square = ((count - expected_count) ** 2 / expected_count) if expected_count else 0.0
            total_chi_square += chi_square

            passed = abs(deviation) <= self.table.tolerance_pct
            if not passed:
                failed += 1

            results.append(BenfordDigitResult(
                digit=digit,
                observed_pct=round(observed_pct, 2),
                expected_pct=expected_pct,
                deviation=round(deviation, 2),
                chi_square=round(chi_square, 2),
                passed=passed,
            ))

        return BenfordAnalysisSummary(
            results=results,
            sample_size=total,
            total_chi_square=round(total_chi_square, 2),
            failed_digits=failed,
            violation=total > 0 and failed >= self.table.violation_digits,
        )


# Default analyzer instance
benford_analyzer = BenfordsLawAnalyzer()
