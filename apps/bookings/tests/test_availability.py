"""Availability checker tests."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from apps.bookings.domain.availability import BookingRef, check_availability, find_conflicts
from apps.bookings.domain.entities import BookingStatus
from apps.warehouses.domain.entities import WarehouseStatus
from shared.domain.exceptions import InvalidQuantity
from shared.domain.value_objects import TimeWindow

from .factories import snapshot, window


def ref(booking_id, period, quantity, status=BookingStatus.PENDING) -> BookingRef:
    return BookingRef(booking_id=booking_id, window=period, quantity=Decimal(quantity), status=status)


def test_free_warehouse_is_available_with_quote_preview():
    result = check_availability(snapshot(), window(days=4), 100, [])

    assert result.available
    assert result.remaining_capacity == Decimal("1000")
    assert result.duration_units == 4
    assert result.quote.total_amount.amount == Decimal("20000")
    assert result.reasons == ()


def test_overlapping_booking_reduces_remaining_capacity():
    period = window(days=4)
    first = ref("BK1", period, "600")

    result = check_availability(snapshot(), period, 500, [first])

    assert not result.available
    assert result.remaining_capacity == Decimal("400")
    assert result.conflicting_bookings == (first,)
    assert "Insufficient capacity" in result.reasons[0]


def test_back_to_back_bookings_do_not_conflict():
    period = window(days=4)
    earlier = TimeWindow(period.start - timedelta(days=3), period.start)
    later = TimeWindow(period.end, period.end + timedelta(days=2))

    result = check_availability(snapshot(), period, 1000, [ref("BK1", earlier, "900"), ref("BK2", later, "900")])

    assert result.available
    assert result.conflicting_bookings == ()


@pytest.mark.parametrize("status", [BookingStatus.CANCELLED, BookingStatus.REJECTED, BookingStatus.COMPLETED])
def test_closed_bookings_hold_no_capacity(status):
    period = window()

    assert find_conflicts(period, [ref("BK1", period, "900", status)]) == []


@pytest.mark.parametrize(
    "status",
    [BookingStatus.PENDING, BookingStatus.AWAITING_APPROVAL, BookingStatus.APPROVED, BookingStatus.ACTIVE],
)
def test_open_bookings_hold_capacity(status):
    period = window()

    assert len(find_conflicts(period, [ref("BK1", period, "1", status)])) == 1


def test_inactive_warehouse_is_reported_but_still_priced():
    result = check_availability(snapshot(status=WarehouseStatus.MAINTENANCE), window(), 10, [])

    assert not result.available
    assert any("not bookable" in reason for reason in result.reasons)
    assert result.quote is not None


def test_hidden_warehouse_is_not_available():
    result = check_availability(snapshot(is_available=False), window(), 10, [])

    assert not result.available


def test_duration_outside_warehouse_terms():
    result = check_availability(snapshot(minimum=7), window(days=3), 10, [])

    assert not result.available
    assert any("outside the allowed range" in reason for reason in result.reasons)


def test_unpriceable_rate_card_gives_no_preview():
    result = check_availability(snapshot(base_rate="0"), window(), 10, [])

    assert not result.available
    assert result.quote is None
    assert result.reasons == ("Warehouse pricing is invalid: base rate must be greater than 0 (got 0)",)


def test_quantity_must_be_positive():
    with pytest.raises(InvalidQuantity):
        check_availability(snapshot(), window(), 0, [])


def test_to_dict_is_json_ready():
    period = window(days=4)
    data = check_availability(snapshot(), period, 500, [ref("BK1", period, "600")]).to_dict()

    assert data["available"] is False
    assert data["remaining_capacity"] == "400"
    assert data["conflicting_bookings"][0]["booking_id"] == "BK1"
    assert data["quote"]["total_amount"] == "100000"
