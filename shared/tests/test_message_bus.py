"""Message bus and value object tests."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from shared.application.message_bus import MessageBus
from shared.domain.base import DomainEvent
from shared.domain.exceptions import InvalidWindow, NotFound
from shared.domain.value_objects import Duration, Money, TimeWindow, parse_instant


@dataclass
class Ping:
    value: int


@dataclass(kw_only=True)
class Pinged(DomainEvent):
    value: int


def test_command_goes_to_its_single_handler():
    bus = MessageBus()
    bus.register_command_handler(Ping, lambda command: command.value * 2)

    assert bus.handle_command(Ping(21)) == 42
    assert bus.has_command_handler(Ping)
    with pytest.raises(ValueError):
        bus.register_command_handler(Ping, lambda command: None)


def test_domain_errors_propagate():
    bus = MessageBus()

    def handler(command):
        raise NotFound("missing", value=command.value)

    bus.register_command_handler(Ping, handler)

    with pytest.raises(NotFound):
        bus.handle_command(Ping(1))


def test_failing_event_handler_does_not_stop_the_others():
    bus = MessageBus()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    bus.register_event_handler(Pinged, broken)
    bus.register_event_handler(Pinged, lambda event: seen.append(event.value))

    bus.publish_events([Pinged(value=3)])

    assert seen == [3]


def test_event_payload_is_plain_json():
    event = Pinged(value=3)

    assert event.payload() == {"value": 3}
    assert event.to_dict()["event_type"] == "Pinged"


def test_parse_instant_accepts_dates_and_naive_values():
    assert parse_instant(date(2025, 3, 1)) == datetime(2025, 3, 1, tzinfo=timezone.utc)
    assert parse_instant("2025-03-01T05:30:00+05:30") == datetime(2025, 3, 1, tzinfo=timezone.utc)
    with pytest.raises(InvalidWindow):
        parse_instant("next tuesday")
    with pytest.raises(InvalidWindow):
        parse_instant(None)


def test_window_overlap_is_half_open():
    start = datetime(2025, 3, 1, tzinfo=timezone.utc)
    first = TimeWindow(start, start + timedelta(days=2))

    assert not first.overlaps_with(TimeWindow(start + timedelta(days=2), start + timedelta(days=3)))
    assert first.overlaps_with(TimeWindow(start + timedelta(days=1), start + timedelta(days=3)))


def test_duration_rounds_up_to_whole_units():
    start = datetime(2025, 3, 1, tzinfo=timezone.utc)

    assert Duration.of(TimeWindow(start, start + timedelta(hours=1))).units == 1
    assert Duration.of(TimeWindow(start, start + timedelta(days=31)), "month").units == 2


def test_money_rejects_mixed_currencies_and_negatives():
    with pytest.raises(ValueError):
        Money(Decimal("1"), "INR") + Money(Decimal("1"), "USD")
    with pytest.raises(ValueError):
        Money(Decimal("-1"))
    assert Money(Decimal("12.345")).minor_units == 1235
