"""
Booking Queries

Read-only use cases. Nothing here writes or locks.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID
import logging

from shared.domain.value_objects import TimeWindow
from apps.bookings.domain.availability import AvailabilityResult, check_availability

logger = logging.getLogger(__name__)


@dataclass
class CheckAvailabilityQuery:
    warehouse_id: UUID
    start_date: object
    end_date: object
    quantity: object
    exclude_booking_id: Optional[str] = None


class CheckAvailabilityHandler:
    """
    Advisory availability check with a price preview

    Booking creation repeats the same check under a warehouse lock, so a
    positive answer here is not a reservation.
    """

    def __init__(self, booking_repo, warehouse_repo):
        self.booking_repo = booking_repo
        self.warehouse_repo = warehouse_repo

    def handle(self, query: CheckAvailabilityQuery) -> AvailabilityResult:
        window = TimeWindow.parse(query.start_date, query.end_date)
        warehouse = self.warehouse_repo.get(query.warehouse_id)
        holders = self.booking_repo.capacity_holders(
            warehouse.id,
            window,
            exclude=query.exclude_booking_id,
        )

        result = check_availability(warehouse, window, query.quantity, holders)
        logger.debug(
            f"Availability for warehouse {warehouse.id} {window}: "
            f"{'available' if result.available else 'unavailable'} "
            f"({result.remaining_capacity} remaining)"
        )
        return result
