# tutorslot/services/cancellation.py
import math
from datetime import datetime
from decimal import Decimal

from tutorslot.models.session import TutoringSession
from tutorslot.services.pricing import round_money, to_money

SECONDS_PER_HOUR = 3600


def hours_until(start: datetime, now: datetime) -> int:
    """Whole hours from ``now`` to ``start``, floored (negative once started)."""
    return math.floor((start - now).total_seconds() / SECONDS_PER_HOUR)


class CancellationFeePolicy:
    """
    Fee owed if a session were cancelled at ``now``.

    - ``free_hours`` or more ahead: nothing
    - less than that but not yet started: ``late_rate`` of the total
    - at or after the start: the full total

    Advisory only; it does not change the session.
    """

    def __init__(self, free_hours: int = 12, late_rate: Decimal = Decimal("0.5")):
        if free_hours < 1:
            raise ValueError("free_hours must be at least 1")
        self.free_hours = free_hours
        self.late_rate = to_money(late_rate)

    def fee_for(self, total_amount: Decimal, hours: int) -> Decimal:
        total = to_money(total_amount)
        if hours >= self.free_hours:
            return round_money(Decimal(0))
        if hours > 0:
            return round_money(total * self.late_rate)
        return round_money(total)

    def fee(self, session: TutoringSession, now: datetime) -> Decimal:
        return self.fee_for(session.total_amount, hours_until(session.scheduled_start, now))
