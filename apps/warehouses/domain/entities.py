"""
Warehouse Domain Objects

The warehouse is the bookable resource. The booking engine never mutates it
through these objects; it reads an immutable snapshot, and the one write it
performs (capacity decrement on payment) goes through the repository.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import List
from uuid import UUID

from shared.domain.base import ValueObject
from shared.domain.exceptions import InvalidRateCard
from shared.domain.value_objects import Money, SUPPORTED_CURRENCIES


class WarehouseStatus(Enum):
    DRAFT = 'draft'
    ACTIVE = 'active'
    INACTIVE = 'inactive'
    MAINTENANCE = 'maintenance'
    SUSPENDED = 'suspended'


class VerificationStatus(Enum):
    PENDING = 'pending'
    VERIFIED = 'verified'
    REJECTED = 'rejected'


class RateUnit(Enum):
    """
    What one unit of base rate buys

    Weekly and monthly rates bill per started week or month, every other
    unit bills per day. The total always scales with the stored quantity.
    """
    PER_DAY = 'per_day'
    PER_WEEK = 'per_week'
    PER_MONTH = 'per_month'
    PER_KG = 'per_kg'
    PER_TON = 'per_ton'
    PER_QUINTAL = 'per_quintal'
    PER_BAG = 'per_bag'
    PER_SQFT = 'per_sqft'
    PER_CUBIC_METER = 'per_cubic_meter'

    @property
    def period_kind(self) -> str:
        if self is RateUnit.PER_WEEK:
            return 'week'
        if self is RateUnit.PER_MONTH:
            return 'month'
        return 'day'


@dataclass(frozen=True)
class RateCard(ValueObject):
    """
    Warehouse price list

    fee_rate is the platform's share of the total as a fraction in [0, 1).
    """
    base_rate: Decimal
    rate_unit: RateUnit = RateUnit.PER_DAY
    currency: str = 'INR'
    fee_rate: Decimal = Decimal('0.05')

    def problems(self) -> List[str]:
        """Every reason this card cannot price a booking"""
        problems = []
        if self.base_rate is None:
            problems.append("base rate is missing")
        elif self.base_rate <= 0:
            problems.append(f"base rate must be greater than 0 (got {self.base_rate})")
        if self.fee_rate is None:
            problems.append("platform fee rate is missing")
        elif not (Decimal('0') <= self.fee_rate < Decimal('1')):
            problems.append(f"platform fee rate must be in [0, 1) (got {self.fee_rate})")
        if self.currency not in SUPPORTED_CURRENCIES:
            problems.append(f"unsupported currency {self.currency!r}")
        return problems

    @property
    def is_valid(self) -> bool:
        return not self.problems()

    def validate(self) -> None:
        problems = self.problems()
        if problems:
            raise InvalidRateCard(
                f"Invalid warehouse pricing: {', '.join(problems)}",
                problems=problems,
            )

    @property
    def base_price(self) -> Money:
        self.validate()
        return Money(self.base_rate, self.currency)

    @property
    def period_kind(self) -> str:
        return self.rate_unit.period_kind


@dataclass(frozen=True)
class Capacity(ValueObject):
    total: Decimal
    available: Decimal
    unit: str = 'kg'

    def __post_init__(self):
        if self.available < 0:
            raise ValueError("Available capacity cannot be negative")
        if self.available > self.total:
            raise ValueError(
                f"Available capacity ({self.available}) exceeds total capacity ({self.total})"
            )


@dataclass(frozen=True)
class WarehouseSnapshot(ValueObject):
    """Read-only view of a warehouse as the booking engine sees it"""
    id: UUID
    owner_id: int
    name: str
    rate_card: RateCard
    capacity: Capacity
    minimum_booking_duration: int = 1
    maximum_booking_duration: int = 365
    status: WarehouseStatus = WarehouseStatus.DRAFT
    verification_status: VerificationStatus = VerificationStatus.PENDING
    is_available: bool = True

    def bookability_problems(self) -> List[str]:
        problems = []
        if self.status is not WarehouseStatus.ACTIVE:
            problems.append(f"warehouse is {self.status.value}, not active")
        if self.verification_status is not VerificationStatus.VERIFIED:
            problems.append(f"warehouse verification is {self.verification_status.value}")
        if not self.is_available:
            problems.append("warehouse is not accepting bookings")
        return problems

    @property
    def is_bookable(self) -> bool:
        return not self.bookability_problems()

    def accepts_duration(self, units: int) -> bool:
        return self.minimum_booking_duration <= units <= self.maximum_booking_duration

    def __str__(self):
        return f"Warehouse {self.name} ({self.id})"
