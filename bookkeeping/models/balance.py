"""
Balance validation for journal lines.

Works on anything with debit_amount and credit_amount
attributes: persisted JournalLine rows and incoming request
lines alike. Amounts are Decimal (or int) and are summed
exactly; a float is refused outright because binary rounding
can make a balanced entry compare unequal.
"""

from decimal import Decimal
from typing import Iterable, Protocol

ZERO = Decimal("0")


class HasAmounts(Protocol):
    debit_amount: Decimal | None
    credit_amount: Decimal | None


def _amount(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, float):
        raise TypeError("monetary amounts must be Decimal or int, not float")
    return Decimal(value)


def total_debits(lines: Iterable[HasAmounts]) -> Decimal:
    return sum((_amount(line.debit_amount) for line in lines), ZERO)


def total_credits(lines: Iterable[HasAmounts]) -> Decimal:
    return sum((_amount(line.credit_amount) for line in lines), ZERO)


def compute_imbalance(lines: Iterable[HasAmounts]) -> Decimal:
    """
    Return sum(debit) - sum(credit).

    Zero means balanced. A positive result means debits exceed
    credits by that amount; negative means credits exceed debits.
    """
    lines = list(lines)
    return total_debits(lines) - total_credits(lines)


def is_balanced(lines: Iterable[HasAmounts]) -> bool:
    return compute_imbalance(lines) == ZERO
