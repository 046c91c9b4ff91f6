"""
FinTrace Forensics - Record Numbering

Human-readable numbers (FI-YYYY-NNNN, EV-NNNN, FR-YYYY-NNNNN) can also be
supplied by callers, so the next number follows the highest existing
numeric suffix rather than the row count.
"""

from typing import Iterable, Optional


def next_sequence(numbers: Iterable[Optional[str]], prefix: str) -> int:
    """One more than the highest numeric suffix among numbers starting with prefix."""
    highest = 0
    for number in numbers:
        if not number or not number.startswith(prefix):
            continue
        suffix = number[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return highest + 1
