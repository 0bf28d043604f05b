"""
Cancellation Refund Policy

One tiered schedule, keyed on whole days until the storage period starts
(rounded up):

    more than 30 days  -> 100%
    8 to 30 days       -> 80%
    1 to 7 days        -> 50%
    0 days or fewer    -> 0%
"""

import math
from datetime import datetime, timedelta
from decimal import Decimal

from shared.domain.value_objects import Money

REFUND_TIERS = (
    (0, Decimal('0')),
    (7, Decimal('0.5')),
    (30, Decimal('0.8')),
)
FULL_REFUND = Decimal('1')


def days_until_start(start: datetime, now: datetime) -> int:
    return math.ceil((start - now) / timedelta(days=1))


def hours_until_start(start: datetime, now: datetime) -> float:
    return (start - now) / timedelta(hours=1)


def refund_percentage(days: int) -> Decimal:
    for limit, share in REFUND_TIERS:
        if days <= limit:
            return share
    return FULL_REFUND


def calculate_refund(total: Money, start: datetime, now: datetime) -> Money:
    share = refund_percentage(days_until_start(start, now))
    return (total * share).rounded()
