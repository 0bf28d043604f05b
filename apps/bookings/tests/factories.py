"""Builders shared by the booking tests."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from apps.bookings.domain.entities import Booking, Demand
from apps.bookings.domain.pricing import quote
from apps.warehouses.domain.entities import (
    Capacity,
    RateCard,
    RateUnit,
    VerificationStatus,
    WarehouseSnapshot,
    WarehouseStatus,
)
from shared.domain.value_objects import TimeWindow

NOW = datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)

RENTER_ID = 11
OWNER_ID = 22


def rate_card(base_rate="50", rate_unit=RateUnit.PER_DAY, fee_rate="0.05") -> RateCard:
    return RateCard(
        base_rate=Decimal(base_rate),
        rate_unit=rate_unit,
        currency="INR",
        fee_rate=Decimal(fee_rate),
    )


def snapshot(
    *,
    base_rate="50",
    available="1000",
    total="1000",
    status=WarehouseStatus.ACTIVE,
    verification=VerificationStatus.VERIFIED,
    is_available=True,
    minimum=1,
    maximum=365,
) -> WarehouseSnapshot:
    return WarehouseSnapshot(
        id=uuid.uuid4(),
        owner_id=OWNER_ID,
        name="Nashik Cold Store",
        rate_card=rate_card(base_rate),
        capacity=Capacity(total=Decimal(total), available=Decimal(available), unit="tons"),
        minimum_booking_duration=minimum,
        maximum_booking_duration=maximum,
        status=status,
        verification_status=verification,
        is_available=is_available,
    )


def window(days_ahead=10, days=4, now=NOW) -> TimeWindow:
    start = now + timedelta(days=days_ahead)
    return TimeWindow(start, start + timedelta(days=days))


def booking(
    *,
    days_ahead=10,
    days=4,
    quantity="100",
    base_rate="50",
    now=NOW,
) -> Booking:
    """Pending booking priced under a per-day rate card, events cleared"""
    period = window(days_ahead, days, now)
    created = Booking.create(
        booking_id="BK20250301100000ABCDEF",
        renter_id=RENTER_ID,
        owner_id=OWNER_ID,
        warehouse_id=uuid.uuid4(),
        window=period,
        demand=Demand(quantity=Decimal(quantity), unit="tons", produce_type="onion"),
        quote=quote(rate_card(base_rate), period, quantity),
        now=now,
    )
    created.clear_events()
    return created


def paid_booking(**kwargs) -> Booking:
    paid = booking(**kwargs)
    paid.attach_order("order_test", NOW)
    paid.confirm_payment("order_test", "pay_test", NOW)
    paid.clear_events()
    return paid


# ===== Database rows =====

def create_user(email: str, role: str | None = None, **extra):
    from apps.users.models import CustomUser

    return CustomUser.objects.create_user(
        email=email,
        password="StrongPass123",
        role=role or CustomUser.RoleChoices.FARMER,
        **extra,
    )


def create_warehouse(owner, **overrides):
    from apps.warehouses.models import Warehouse

    fields = {
        "name": "Nashik Cold Store",
        "city": "Nashik",
        "state": "Maharashtra",
        "capacity_total": Decimal("1000"),
        "capacity_available": Decimal("1000"),
        "capacity_unit": Warehouse.CapacityUnit.TONS,
        "base_rate": Decimal("50"),
        "rate_unit": Warehouse.RateUnitChoices.PER_DAY,
        "fee_rate": Decimal("0.05"),
        "status": Warehouse.Status.ACTIVE,
        "verification_status": Warehouse.Verification.VERIFIED,
    }
    fields.update(overrides)
    return Warehouse.objects.create(owner=owner, **fields)
