# tutorslot/services/pricing.py
"""
Session pricing.

All money is ``Decimal``; totals are rounded once, to cents, half-up, so
recomputing a total from the same inputs always gives the same answer.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CENTS = Decimal("0.01")
MINUTES_PER_HOUR = Decimal(60)

Money = Union[Decimal, int, str]


def to_money(value: Money) -> Decimal:
    """Coerce an amount to Decimal without passing through float."""
    if isinstance(value, float):
        raise TypeError("Money amounts must not be floats")
    return Decimal(value) if not isinstance(value, Decimal) else value


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


class PricingCalculator:
    """Derives ``total_amount`` from an hourly rate and a duration."""

    def total_amount(self, hourly_rate: Money, duration_minutes: int) -> Decimal:
        rate = to_money(hourly_rate)
        if rate < 0:
            raise ValueError("Hourly rate must be non-negative")
        if duration_minutes < 0:
            raise ValueError("Duration must be non-negative")
        return round_money(rate * Decimal(duration_minutes) / MINUTES_PER_HOUR)
