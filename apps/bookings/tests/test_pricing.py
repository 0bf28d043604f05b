"""Quote calculator tests."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from apps.bookings.domain.pricing import parse_quantity, price, quote
from apps.warehouses.domain.entities import RateUnit
from shared.domain.exceptions import InvalidQuantity, InvalidRateCard, InvalidWindow
from shared.domain.value_objects import Duration, TimeWindow

from .factories import NOW, rate_card, window


def test_four_days_of_one_hundred_tons_at_fifty_per_day():
    result = quote(rate_card("50"), window(days=4), 100)

    assert result.duration_units == 4
    assert result.total_amount.amount == Decimal("20000")
    assert result.platform_fee.amount == Decimal("1000")
    assert result.owner_amount.amount == Decimal("19000")
    assert result.currency == "INR"


def test_partial_day_is_billed_as_a_whole_day():
    period = TimeWindow(NOW, NOW + timedelta(days=2, hours=6))

    result = quote(rate_card("10"), period, 1)

    assert result.duration_units == 3
    assert result.total_amount.amount == Decimal("30")


def test_weekly_rate_bills_per_started_week():
    result = quote(rate_card("700", rate_unit=RateUnit.PER_WEEK), window(days=10), 2)

    assert result.duration.unit_kind == "week"
    assert result.duration_units == 2
    assert result.total_amount.amount == Decimal("2800")


def test_total_and_fee_round_half_up():
    result = quote(rate_card("0.5"), window(days=3), 1)

    assert result.total_amount.amount == Decimal("2")
    assert result.platform_fee.amount == Decimal("0")
    assert result.owner_amount.amount == Decimal("2")


@pytest.mark.parametrize("base_rate,days,quantity", [("13.37", 7, "3.5"), ("99.99", 31, "250"), ("1", 1, "1")])
def test_fee_and_owner_amount_always_add_up_to_total(base_rate, days, quantity):
    result = quote(rate_card(base_rate, fee_rate="0.0725"), window(days=days), quantity)

    assert result.platform_fee + result.owner_amount == result.total_amount
    assert result.total_amount.amount > 0


def test_accepts_iso_strings_for_the_window():
    result = quote(rate_card("50"), ("2025-04-01", "2025-04-05"), "100")

    assert result.total_amount.amount == Decimal("20000")


@pytest.mark.parametrize("quantity", [0, -5, "0", "abc", None, True])
def test_rejects_non_positive_or_non_numeric_quantity(quantity):
    with pytest.raises(InvalidQuantity):
        quote(rate_card("50"), window(), quantity)


def test_rejects_empty_window():
    with pytest.raises(InvalidWindow):
        quote(rate_card("50"), (NOW, NOW), 1)


def test_rejects_end_before_start():
    with pytest.raises(InvalidWindow):
        quote(rate_card("50"), (NOW, NOW - timedelta(days=1)), 1)


def test_zero_base_rate_is_an_invalid_rate_card():
    with pytest.raises(InvalidRateCard) as excinfo:
        quote(rate_card("0"), window(), 10)

    assert excinfo.value.kind == "validation"
    assert "base rate must be greater than 0 (got 0)" in excinfo.value.details["problems"]


def test_total_rounding_to_zero_is_rejected():
    with pytest.raises(InvalidRateCard):
        price(rate_card("0.01"), Duration(1), "0.5")


def test_fee_rate_of_one_is_rejected():
    with pytest.raises(InvalidRateCard):
        quote(rate_card("50", fee_rate="1"), window(), 1)


def test_parse_quantity_returns_decimal():
    assert parse_quantity("12.5") == Decimal("12.5")
