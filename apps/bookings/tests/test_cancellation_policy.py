"""Refund schedule tests."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from apps.bookings.domain.cancellation import (
    calculate_refund,
    days_until_start,
    hours_until_start,
    refund_percentage,
)
from shared.domain.value_objects import Money

from .factories import NOW


@pytest.mark.parametrize(
    "days,share",
    [
        (45, Decimal("1")),
        (31, Decimal("1")),
        (30, Decimal("0.8")),
        (8, Decimal("0.8")),
        (7, Decimal("0.5")),
        (1, Decimal("0.5")),
        (0, Decimal("0")),
        (-2, Decimal("0")),
    ],
)
def test_refund_percentage_tiers(days, share):
    assert refund_percentage(days) == share


def test_days_until_start_rounds_partial_days_up():
    assert days_until_start(NOW + timedelta(days=6, hours=12), NOW) == 7
    assert days_until_start(NOW + timedelta(days=7), NOW) == 7
    assert days_until_start(NOW - timedelta(hours=3), NOW) == 0


def test_hours_until_start():
    assert hours_until_start(NOW + timedelta(hours=36), NOW) == 36


def test_refund_at_thirty_days_is_eighty_percent():
    refund = calculate_refund(Money(Decimal("20000")), NOW + timedelta(days=30), NOW)

    assert refund == Money(Decimal("16000"))


def test_refund_is_rounded_to_whole_units():
    refund = calculate_refund(Money(Decimal("1001")), NOW + timedelta(days=5), NOW)

    assert refund.amount == Decimal("501")


def test_no_refund_once_started():
    refund = calculate_refund(Money(Decimal("20000")), NOW, NOW)

    assert refund.is_zero
