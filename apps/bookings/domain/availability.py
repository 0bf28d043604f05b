"""
Availability Checker

Decides whether a warehouse can take a requested quantity over a window.
The answer is advisory: the booking command re-runs the check under a
warehouse row lock, and payment confirmation decrements capacity.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from apps.bookings.domain.entities import CAPACITY_HOLDING_STATUSES, BookingStatus
from apps.bookings.domain.pricing import Quote, parse_quantity, price
from apps.warehouses.domain.entities import WarehouseSnapshot
from shared.domain.base import ValueObject
from shared.domain.exceptions import BookingValidationError
from shared.domain.value_objects import Duration, TimeWindow


@dataclass(frozen=True)
class BookingRef(ValueObject):
    """The part of an existing booking that matters for capacity"""
    booking_id: str
    window: TimeWindow
    quantity: Decimal
    status: BookingStatus

    def holds_capacity(self) -> bool:
        return self.status in CAPACITY_HOLDING_STATUSES

    def to_dict(self) -> dict:
        return {
            'booking_id': self.booking_id,
            'start_date': self.window.start.isoformat(),
            'end_date': self.window.end.isoformat(),
            'quantity': str(self.quantity),
            'status': self.status.value,
        }


@dataclass(frozen=True)
class AvailabilityResult(ValueObject):
    available: bool
    remaining_capacity: Decimal
    duration_units: int
    conflicting_bookings: Tuple[BookingRef, ...] = ()
    reasons: Tuple[str, ...] = ()
    quote: Optional[Quote] = field(default=None, compare=False)

    def to_dict(self) -> dict:
        return {
            'available': self.available,
            'remaining_capacity': str(self.remaining_capacity),
            'duration_units': self.duration_units,
            'conflicting_bookings': [ref.to_dict() for ref in self.conflicting_bookings],
            'reasons': list(self.reasons),
            'quote': self.quote.to_dict() if self.quote else None,
        }


def find_conflicts(window: TimeWindow, bookings: Iterable[BookingRef]) -> List[BookingRef]:
    """Capacity-holding bookings whose window overlaps the requested one"""
    return [
        ref for ref in bookings
        if ref.holds_capacity() and ref.window.overlaps_with(window)
    ]


def check_availability(
    warehouse: WarehouseSnapshot,
    window: TimeWindow,
    quantity,
    existing_bookings: Iterable[BookingRef],
) -> AvailabilityResult:
    """
    Check capacity, bookability and duration terms

    remaining = capacity.available - sum(conflicting quantities)

    Every failed constraint is reported in ``reasons``; a quote preview is
    attached whenever the rate card can price the request.
    """
    quantity = parse_quantity(quantity)
    duration = Duration.of(window, warehouse.rate_card.period_kind)

    conflicts = find_conflicts(window, existing_bookings)
    held = sum((ref.quantity for ref in conflicts), Decimal('0'))
    remaining = warehouse.capacity.available - held

    reasons = []
    if remaining < quantity:
        reasons.append(
            f"Insufficient capacity: {remaining} {warehouse.capacity.unit} remaining "
            f"for the requested period, {quantity} requested"
        )
    for problem in warehouse.bookability_problems():
        reasons.append(f"Warehouse is not bookable: {problem}")
    for problem in warehouse.rate_card.problems():
        reasons.append(f"Warehouse pricing is invalid: {problem}")
    if not warehouse.accepts_duration(duration.units):
        reasons.append(
            f"Duration of {duration} is outside the allowed range "
            f"{warehouse.minimum_booking_duration}-{warehouse.maximum_booking_duration}"
        )

    try:
        preview = price(warehouse.rate_card, duration, quantity)
    except BookingValidationError:
        preview = None

    return AvailabilityResult(
        available=not reasons,
        remaining_capacity=remaining,
        duration_units=duration.units,
        conflicting_bookings=tuple(conflicts),
        reasons=tuple(reasons),
        quote=preview,
    )
