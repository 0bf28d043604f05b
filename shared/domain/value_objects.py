"""
Common Value Objects

Value objects used across multiple domains:
- Money: Represents monetary amounts with currency
- TimeWindow: Represents a half-open [start, end) storage period
- Duration: Whole billing units derived from a TimeWindow
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from shared.domain.base import ValueObject
from shared.domain.exceptions import InvalidWindow

SUPPORTED_CURRENCIES = ('INR', 'USD', 'EUR')

WHOLE_UNIT = Decimal('1')


def round_half_up(amount: Decimal) -> Decimal:
    """Round to the nearest whole currency unit, halves away from zero"""
    return amount.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Represents a monetary amount with currency.
    Immutable and supports arithmetic operations.
    """
    amount: Decimal
    currency: str = 'INR'

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            try:
                object.__setattr__(self, 'amount', Decimal(str(self.amount)))
            except InvalidOperation:
                raise ValueError(f"Invalid amount: {self.amount!r}")
        if not self.amount.is_finite():
            raise ValueError(f"Invalid amount: {self.amount!r}")
        # Validation
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if not self.currency:
            raise ValueError("Currency is required")
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency}")

    @classmethod
    def zero(cls, currency: str = 'INR') -> 'Money':
        return cls(Decimal('0'), currency)

    def __add__(self, other: 'Money') -> 'Money':
        """Add two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only add Money to Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot add different currencies: {self.currency} and {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        """Subtract two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only subtract Money from Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot subtract different currencies: {self.currency} and {other.currency}")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor) -> 'Money':
        """Multiply money by a factor"""
        if isinstance(factor, bool) or not isinstance(factor, (int, float, Decimal)):
            raise TypeError("Can only multiply Money by number")
        return Money(self.amount * Decimal(str(factor)), self.currency)

    def rounded(self) -> 'Money':
        """Same amount rounded half-up to a whole currency unit"""
        return Money(round_half_up(self.amount), self.currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    def to_dict(self) -> dict:
        return {'amount': str(self.amount), 'currency': self.currency}

    @property
    def minor_units(self) -> int:
        """Amount in paise/cents, as payment providers expect it"""
        return int(round_half_up(self.amount * 100))

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"


def parse_instant(value) -> datetime:
    """
    Parse a date, datetime or ISO-8601 string into an aware UTC datetime

    Naive values are taken to be UTC. Dates map to midnight.
    Raises InvalidWindow for anything else.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            raise InvalidWindow(f"Invalid date format: {value!r}", value=value)
    else:
        raise InvalidWindow(f"Invalid date: {value!r}", value=repr(value))

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class TimeWindow(ValueObject):
    """
    Storage period value object

    Represents a range from start (inclusive) to end (exclusive).
    Used for booking periods, availability checks, etc.
    """
    start: datetime
    end: datetime

    def __post_init__(self):
        for name in ('start', 'end'):
            value = getattr(self, name)
            if not isinstance(value, datetime) or value.tzinfo is None:
                object.__setattr__(self, name, parse_instant(value))
        if self.start >= self.end:
            raise InvalidWindow(
                f"End date ({self.end.isoformat()}) must be after start date ({self.start.isoformat()})",
                start=self.start.isoformat(),
                end=self.end.isoformat(),
            )

    @classmethod
    def parse(cls, start, end) -> 'TimeWindow':
        return cls(parse_instant(start), parse_instant(end))

    def overlaps_with(self, other: 'TimeWindow') -> bool:
        """
        Check if this window overlaps with another

        end is exclusive, so a window ending exactly when another starts
        does not overlap it.
        """
        if not isinstance(other, TimeWindow):
            raise TypeError("Can only check overlap with another TimeWindow")

        return self.start < other.end and self.end > other.start

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    @property
    def length(self) -> timedelta:
        return self.end - self.start

    def __str__(self):
        return f"{self.start:%d.%m.%Y %H:%M} - {self.end:%d.%m.%Y %H:%M}"

    def __repr__(self):
        return f"TimeWindow({self.start.isoformat()}, {self.end.isoformat()})"


UNIT_LENGTHS = {
    'day': timedelta(days=1),
    'week': timedelta(days=7),
    'month': timedelta(days=30),
}


@dataclass(frozen=True)
class Duration(ValueObject):
    """
    Number of whole billing units a window spans

    Any partial unit is billed as a full one, matching how capacity is held.
    """
    units: int
    unit_kind: str = 'day'

    def __post_init__(self):
        if self.unit_kind not in UNIT_LENGTHS:
            raise ValueError(f"Unsupported duration unit: {self.unit_kind}")
        if isinstance(self.units, bool) or not isinstance(self.units, int) or self.units < 1:
            raise ValueError(f"Duration must be a positive whole number of units, got {self.units!r}")

    @classmethod
    def of(cls, window: TimeWindow, unit_kind: str = 'day') -> 'Duration':
        unit_length = UNIT_LENGTHS[unit_kind]
        units = math.ceil(window.length / unit_length)
        return cls(max(1, units), unit_kind)

    @property
    def unit_length(self) -> timedelta:
        return UNIT_LENGTHS[self.unit_kind]

    def __int__(self):
        return self.units

    def __str__(self):
        suffix = '' if self.units == 1 else 's'
        return f"{self.units} {self.unit_kind}{suffix}"
