"""
Quote Calculator

Pure pricing functions. A quote is only ever produced from a valid rate
card, a positive quantity and a well-formed window, so a zero total is
never returned: bad inputs raise instead.

    total        = round(base_rate * duration_units * quantity)
    platform_fee = round(total * fee_rate)
    owner_amount = total - platform_fee

Rounding is half-up to whole currency units.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from apps.warehouses.domain.entities import RateCard
from shared.domain.base import ValueObject
from shared.domain.exceptions import InvalidQuantity, InvalidRateCard
from shared.domain.value_objects import Duration, Money, TimeWindow


def parse_quantity(value) -> Decimal:
    """Coerce a requested quantity to a positive Decimal"""
    if value is None or isinstance(value, bool):
        raise InvalidQuantity(f"Quantity must be a positive number, got {value!r}", quantity=repr(value))
    try:
        quantity = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidQuantity(f"Quantity must be a positive number, got {value!r}", quantity=repr(value))
    if not quantity.is_finite() or quantity <= 0:
        raise InvalidQuantity(f"Quantity must be greater than 0, got {value!r}", quantity=str(value))
    return quantity


@dataclass(frozen=True)
class Quote(ValueObject):
    """Priced booking request, total split between platform and owner"""
    base_rate: Money
    duration: Duration
    quantity: Decimal
    fee_rate: Decimal
    total_amount: Money
    platform_fee: Money
    owner_amount: Money

    def __post_init__(self):
        if self.platform_fee + self.owner_amount != self.total_amount:
            raise ValueError("Platform fee and owner amount must add up to the total")

    @property
    def currency(self) -> str:
        return self.total_amount.currency

    @property
    def duration_units(self) -> int:
        return self.duration.units

    def to_dict(self) -> dict:
        return {
            'base_rate': str(self.base_rate.amount),
            'duration_units': self.duration.units,
            'duration_unit': self.duration.unit_kind,
            'quantity': str(self.quantity),
            'total_amount': str(self.total_amount.amount),
            'platform_fee': str(self.platform_fee.amount),
            'owner_amount': str(self.owner_amount.amount),
            'currency': self.currency,
        }


def price(rate_card: RateCard, duration: Duration, quantity) -> Quote:
    """
    Price an already-derived duration

    Used directly by reconciliation, which must price the stored duration
    rather than re-deriving one from the window.
    """
    quantity = parse_quantity(quantity)
    rate_card.validate()

    base = rate_card.base_price
    total = (base * duration.units * quantity).rounded()
    if total.is_zero:
        raise InvalidRateCard(
            f"Base rate {base} for {duration} and quantity {quantity} rounds to a zero total",
            problems=["total rounds to zero"],
        )

    platform_fee = (total * rate_card.fee_rate).rounded()
    owner_amount = total - platform_fee

    return Quote(
        base_rate=base,
        duration=duration,
        quantity=quantity,
        fee_rate=rate_card.fee_rate,
        total_amount=total,
        platform_fee=platform_fee,
        owner_amount=owner_amount,
    )


def quote(rate_card: RateCard, window: TimeWindow, quantity) -> Quote:
    """Price a storage window under the given rate card"""
    if not isinstance(window, TimeWindow):
        start, end = window
        window = TimeWindow.parse(start, end)
    quantity = parse_quantity(quantity)
    duration = Duration.of(window, rate_card.period_kind)
    return price(rate_card, duration, quantity)
