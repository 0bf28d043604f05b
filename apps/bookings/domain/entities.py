"""
Booking Domain Entities

Core business entities for the booking domain:
- Booking: Main aggregate representing a storage reservation
- BookingStatus: FSM states for booking lifecycle
- PaymentStatus: Payment sub-state tracking
- Demand, Pricing, PaymentRecord, Approval, Cancellation: value objects
  the aggregate replaces wholesale on each transition
"""

import secrets
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from uuid import UUID

from shared.domain.base import Aggregate, ValueObject
from shared.domain.exceptions import (
    CancellationNotAllowed,
    InvalidTransition,
    PaymentVerificationFailed,
    PermissionDenied,
)
from shared.domain.value_objects import Duration, Money, TimeWindow


class BookingStatus(Enum):
    """
    Booking Status Finite State Machine

    State transitions:
    - PENDING -> AWAITING_APPROVAL (payment verified)
    - AWAITING_APPROVAL -> APPROVED (owner approved)
    - AWAITING_APPROVAL -> REJECTED (owner rejected, full refund)
    - APPROVED -> ACTIVE (storage period started)
    - APPROVED|ACTIVE -> COMPLETED (storage period ended)
    - PENDING|AWAITING_APPROVAL|APPROVED -> CANCELLED (renter cancelled)
    """
    PENDING = 'pending'                        # Created, waiting for payment
    AWAITING_APPROVAL = 'awaiting-approval'    # Paid, owner has to decide
    APPROVED = 'approved'                      # Owner accepted
    ACTIVE = 'active'                          # Goods in storage
    REJECTED = 'rejected'                      # Owner declined
    CANCELLED = 'cancelled'                    # Renter cancelled
    COMPLETED = 'completed'                    # Storage period over


class PaymentStatus(Enum):
    """Payment status tracking"""
    PENDING = 'pending'
    PAID = 'paid'
    FAILED = 'failed'
    REFUNDED = 'refunded'
    PARTIALLY_REFUNDED = 'partially-refunded'


class ApprovalStatus(Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


CAPACITY_HOLDING_STATUSES = frozenset({
    BookingStatus.PENDING,
    BookingStatus.AWAITING_APPROVAL,
    BookingStatus.APPROVED,
    BookingStatus.ACTIVE,
})

TERMINAL_STATUSES = frozenset({
    BookingStatus.REJECTED,
    BookingStatus.CANCELLED,
    BookingStatus.COMPLETED,
})


def generate_booking_id(now: datetime) -> str:
    """Human legible unique reference, e.g. BK20250301101500A1B2C3"""
    return f"BK{now:%Y%m%d%H%M%S}{secrets.token_hex(3).upper()}"


@dataclass(frozen=True)
class Demand(ValueObject):
    quantity: Decimal
    unit: str
    produce_type: str = ''
    description: str = ''


@dataclass(frozen=True)
class Pricing(ValueObject):
    """
    Stored price breakdown

    Kept as raw decimals because stored rows may carry a missing or zero
    total that reconciliation has to detect and repair.
    """
    base_rate: Optional[Decimal] = None
    total_amount: Optional[Decimal] = None
    platform_fee: Optional[Decimal] = None
    owner_amount: Optional[Decimal] = None
    currency: str = 'INR'

    @classmethod
    def from_quote(cls, quote) -> 'Pricing':
        return cls(
            base_rate=quote.base_rate.amount,
            total_amount=quote.total_amount.amount,
            platform_fee=quote.platform_fee.amount,
            owner_amount=quote.owner_amount.amount,
            currency=quote.currency,
        )

    @property
    def is_missing(self) -> bool:
        return self.total_amount is None or self.total_amount <= 0

    @property
    def total(self) -> Money:
        if self.is_missing:
            return Money.zero(self.currency)
        return Money(self.total_amount, self.currency)


@dataclass(frozen=True)
class PaymentRecord(ValueObject):
    status: PaymentStatus = PaymentStatus.PENDING
    provider_order_ref: str = ''
    provider_payment_ref: str = ''
    paid_at: Optional[datetime] = None
    amount_due: Optional[Decimal] = None
    refunded_amount: Optional[Decimal] = None
    refunded_at: Optional[datetime] = None
    provider_refund_ref: str = ''


@dataclass(frozen=True)
class Approval(ValueObject):
    status: ApprovalStatus = ApprovalStatus.PENDING
    decided_at: Optional[datetime] = None
    decided_by: Optional[int] = None
    reason: str = ''
    notes: str = ''


@dataclass(frozen=True)
class Cancellation(ValueObject):
    cancelled_at: datetime
    cancelled_by: int
    reason: str = ''
    refund_eligible: bool = False
    refund_amount: Decimal = Decimal('0')


@dataclass(kw_only=True, eq=False)
class Booking(Aggregate):
    """
    Booking Aggregate Root

    A farmer's reservation of warehouse capacity for a storage period.

    Key invariants:
    - window.end > window.start; duration is derived from the window
    - pricing.total_amount = platform_fee + owner_amount
    - payment.amount_due is 0 exactly when payment is paid
    - status only changes through the named transitions below, each of
      which checks its source state before touching anything
    """

    # Booking identification
    booking_id: str

    # References
    renter_id: int
    owner_id: int
    warehouse_id: UUID

    # Storage period and demand
    window: TimeWindow
    duration: Optional[Duration]
    demand: Demand
    duration_unit: str = 'day'

    pricing: Pricing = field(default_factory=Pricing)
    payment: PaymentRecord = field(default_factory=PaymentRecord)
    status: BookingStatus = BookingStatus.PENDING
    approval: Approval = field(default_factory=Approval)
    cancellation: Optional[Cancellation] = None
    notes: str = ''

    # Timestamps
    activated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Optimistic concurrency token, bumped by the repository on each save
    version: int = 0

    @classmethod
    def create(
        cls,
        *,
        booking_id: str,
        renter_id: int,
        owner_id: int,
        warehouse_id: UUID,
        window: TimeWindow,
        demand: Demand,
        quote,
        now: datetime,
        notes: str = '',
    ) -> 'Booking':
        """New pending booking priced by a quote; emits BookingCreated"""
        from apps.bookings.domain.events import BookingCreated

        booking = cls(
            booking_id=booking_id,
            renter_id=renter_id,
            owner_id=owner_id,
            warehouse_id=warehouse_id,
            window=window,
            duration=quote.duration,
            duration_unit=quote.duration.unit_kind,
            demand=demand,
            pricing=Pricing.from_quote(quote),
            payment=PaymentRecord(amount_due=quote.total_amount.amount),
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        booking.add_event(BookingCreated(
            **booking._event_refs(),
            start_date=window.start,
            end_date=window.end,
            quantity=demand.quantity,
            total_amount=quote.total_amount,
        ))
        return booking

    # ===== Guards =====

    def _require_status(self, action: str, *allowed: BookingStatus):
        if self.status not in allowed:
            raise InvalidTransition(
                f"Cannot {action} booking {self.booking_id} in status {self.status.value}. "
                f"Allowed: {', '.join(s.value for s in allowed)}",
                booking_id=self.booking_id,
                status=self.status.value,
            )

    def _require_owner(self, actor_id: int):
        if actor_id != self.owner_id:
            raise PermissionDenied(
                f"Only the warehouse owner can decide on booking {self.booking_id}",
                booking_id=self.booking_id,
            )

    def _require_renter(self, actor_id: int):
        if actor_id != self.renter_id:
            raise PermissionDenied(
                f"Only the renter can cancel booking {self.booking_id}",
                booking_id=self.booking_id,
            )

    def _event_refs(self) -> dict:
        return {
            'aggregate_id': self.id,
            'booking_id': self.booking_id,
            'renter_id': self.renter_id,
            'owner_id': self.owner_id,
            'warehouse_id': self.warehouse_id,
        }

    # ===== Transitions =====

    def attach_order(self, order_ref: str, now: datetime):
        """Remember the provider order the renter will pay against"""
        self._require_status('attach a payment order to', BookingStatus.PENDING)
        self.payment = replace(self.payment, provider_order_ref=order_ref)
        self.updated_at = now

    def is_paid_with(self, payment_ref: str) -> bool:
        return (
            self.payment.status == PaymentStatus.PAID
            and self.payment.provider_payment_ref == payment_ref
        )

    def ensure_payment_confirmable(self, order_ref: str):
        """Raise unless a payment against ``order_ref`` may be recorded now"""
        self._require_status('confirm payment for', BookingStatus.PENDING)
        if self.payment.status not in (PaymentStatus.PENDING, PaymentStatus.FAILED):
            raise InvalidTransition(
                f"Payment for booking {self.booking_id} is already {self.payment.status.value}",
                booking_id=self.booking_id,
                payment_status=self.payment.status.value,
            )
        if not self.payment.provider_order_ref:
            raise PaymentVerificationFailed(
                f"Booking {self.booking_id} has no payment order to pay against",
                booking_id=self.booking_id,
            )
        if order_ref != self.payment.provider_order_ref:
            raise PaymentVerificationFailed(
                f"Payment order {order_ref} does not belong to booking {self.booking_id}",
                booking_id=self.booking_id,
            )

    def confirm_payment(self, order_ref: str, payment_ref: str, now: datetime):
        """
        Record a verified payment (PENDING -> AWAITING_APPROVAL)

        The signature has already been checked by the payment gateway;
        this only enforces that it was made against this booking's order.
        Events: PaymentVerified
        """
        self.ensure_payment_confirmable(order_ref)

        from apps.bookings.domain.events import PaymentVerified

        self.status = BookingStatus.AWAITING_APPROVAL
        self.payment = replace(
            self.payment,
            status=PaymentStatus.PAID,
            provider_order_ref=order_ref,
            provider_payment_ref=payment_ref,
            paid_at=now,
            amount_due=Decimal('0'),
        )
        self.updated_at = now

        self.add_event(PaymentVerified(
            **self._event_refs(),
            provider_payment_ref=payment_ref,
            amount=self.pricing.total,
        ))

    def approve(self, actor_id: int, now: datetime, notes: str = ''):
        """
        Owner accepts the booking (AWAITING_APPROVAL -> APPROVED)

        Events: BookingApproved
        """
        self._require_owner(actor_id)
        self._require_status('approve', BookingStatus.AWAITING_APPROVAL)

        from apps.bookings.domain.events import BookingApproved

        self.status = BookingStatus.APPROVED
        self.approval = Approval(
            status=ApprovalStatus.APPROVED,
            decided_at=now,
            decided_by=actor_id,
            notes=notes,
        )
        self.updated_at = now

        self.add_event(BookingApproved(**self._event_refs(), notes=notes))

    def reject(self, actor_id: int, now: datetime, reason: str = '', notes: str = ''):
        """
        Owner declines the booking (AWAITING_APPROVAL -> REJECTED)

        The full total becomes refundable; the refund itself is issued by
        the caller after the rejection is stored.
        Events: BookingRejected
        """
        self._require_owner(actor_id)
        self._require_status('reject', BookingStatus.AWAITING_APPROVAL)

        from apps.bookings.domain.events import BookingRejected

        self.status = BookingStatus.REJECTED
        self.approval = Approval(
            status=ApprovalStatus.REJECTED,
            decided_at=now,
            decided_by=actor_id,
            reason=reason,
            notes=notes,
        )
        self.updated_at = now

        self.add_event(BookingRejected(
            **self._event_refs(),
            reason=reason,
            refund_due=self.outstanding_refund,
        ))

    def cancel(self, actor_id: int, now: datetime, grace_hours: int, reason: str = ''):
        """
        Renter cancels (PENDING|AWAITING_APPROVAL|APPROVED -> CANCELLED)

        Allowed only while more than ``grace_hours`` remain before the
        storage period starts. A paid booking becomes eligible for a refund
        under the tiered schedule.
        Events: BookingCancelled
        """
        from apps.bookings.domain.cancellation import calculate_refund, hours_until_start

        self._require_renter(actor_id)
        self._require_status(
            'cancel',
            BookingStatus.PENDING,
            BookingStatus.AWAITING_APPROVAL,
            BookingStatus.APPROVED,
        )

        hours_left = hours_until_start(self.window.start, now)
        if hours_left <= grace_hours:
            raise CancellationNotAllowed(
                f"Booking {self.booking_id} can only be cancelled more than "
                f"{grace_hours} hours before the start date",
                booking_id=self.booking_id,
                hours_until_start=round(hours_left, 2),
            )

        refund = Money.zero(self.pricing.currency)
        if self.payment.status == PaymentStatus.PAID:
            refund = calculate_refund(self.pricing.total, self.window.start, now)

        from apps.bookings.domain.events import BookingCancelled

        old_status = self.status
        self.status = BookingStatus.CANCELLED
        self.cancellation = Cancellation(
            cancelled_at=now,
            cancelled_by=actor_id,
            reason=reason,
            refund_eligible=not refund.is_zero,
            refund_amount=refund.amount,
        )
        self.updated_at = now

        self.add_event(BookingCancelled(
            **self._event_refs(),
            reason=reason,
            old_status=old_status.value,
            refund_amount=refund,
        ))

    @property
    def outstanding_refund(self) -> Optional[Money]:
        """
        Refund owed but not yet issued

        Rejected bookings owe the full total, cancelled ones the amount the
        refund schedule allowed. Only a still-paid payment can owe anything.
        """
        if self.payment.status != PaymentStatus.PAID:
            return None
        if self.status == BookingStatus.REJECTED:
            total = self.pricing.total
            return None if total.is_zero else total
        if self.status == BookingStatus.CANCELLED and self.cancellation:
            if self.cancellation.refund_amount > 0:
                return Money(self.cancellation.refund_amount, self.pricing.currency)
        return None

    def record_refund(self, amount: Money, refund_ref: str, now: datetime):
        """
        Record a refund the provider accepted

        Full refunds move payment to REFUNDED, anything less to
        PARTIALLY_REFUNDED.
        Events: BookingRefunded
        """
        self._require_status('refund', BookingStatus.REJECTED, BookingStatus.CANCELLED)
        if self.payment.status != PaymentStatus.PAID:
            raise InvalidTransition(
                f"Cannot refund booking {self.booking_id} with payment {self.payment.status.value}",
                booking_id=self.booking_id,
                payment_status=self.payment.status.value,
            )

        from apps.bookings.domain.events import BookingRefunded

        full = amount.amount >= self.pricing.total.amount
        self.payment = replace(
            self.payment,
            status=PaymentStatus.REFUNDED if full else PaymentStatus.PARTIALLY_REFUNDED,
            refunded_amount=amount.amount,
            refunded_at=now,
            provider_refund_ref=refund_ref,
        )
        self.payment = replace(self.payment, amount_due=self.expected_amount_due())
        self.updated_at = now

        self.add_event(BookingRefunded(
            **self._event_refs(),
            amount=amount,
            provider_refund_ref=refund_ref,
            payment_status=self.payment.status.value,
        ))

    def activate(self, now: datetime):
        """
        Storage period started (APPROVED -> ACTIVE)

        Events: BookingActivated
        """
        self._require_status('activate', BookingStatus.APPROVED)
        if now < self.window.start:
            raise InvalidTransition(
                f"Booking {self.booking_id} starts at {self.window.start.isoformat()}",
                booking_id=self.booking_id,
            )

        from apps.bookings.domain.events import BookingActivated

        self.status = BookingStatus.ACTIVE
        self.activated_at = now
        self.updated_at = now

        self.add_event(BookingActivated(**self._event_refs()))

    def complete(self, now: datetime):
        """
        Storage period ended (APPROVED|ACTIVE -> COMPLETED)

        Events: BookingCompleted
        """
        self._require_status('complete', BookingStatus.APPROVED, BookingStatus.ACTIVE)
        if now <= self.window.end:
            raise InvalidTransition(
                f"Booking {self.booking_id} runs until {self.window.end.isoformat()}",
                booking_id=self.booking_id,
            )

        from apps.bookings.domain.events import BookingCompleted

        self.status = BookingStatus.COMPLETED
        self.completed_at = now
        self.updated_at = now

        self.add_event(BookingCompleted(**self._event_refs()))

    # ===== Reconciliation =====

    def expected_amount_due(self) -> Optional[Decimal]:
        """
        Amount the renter still owes

        Paid bookings owe nothing; refunded and unpaid ones owe the total;
        partially refunded ones owe back the refunded part.
        """
        if self.pricing.total_amount is None:
            return None
        if self.payment.status == PaymentStatus.PAID:
            return Decimal('0')
        if self.payment.status == PaymentStatus.PARTIALLY_REFUNDED:
            return self.payment.refunded_amount or Decimal('0')
        return self.pricing.total_amount

    def reconcile(self, rate_card=None) -> List[str]:
        """
        Restore derived fields from stored source data

        The duration is re-derived from the window. Pricing is only filled
        in when the stored total is missing or not positive, from
        ``rate_card`` and the stored duration and quantity; an unusable
        rate card raises before anything changes. Status and payment
        status are never touched. Returns the names of changed fields.
        """
        changes = []

        duration = Duration.of(self.window, self.duration_unit)
        quote = None
        if self.pricing.is_missing and rate_card is not None:
            from apps.bookings.domain.pricing import price

            quote = price(rate_card, duration, self.demand.quantity)

        if duration != self.duration:
            self.duration = duration
            changes.append('duration')

        if quote is not None:
            self.pricing = Pricing.from_quote(quote)
            changes.append('pricing')

        amount_due = self.expected_amount_due()
        if amount_due != self.payment.amount_due:
            self.payment = replace(self.payment, amount_due=amount_due)
            changes.append('amount_due')

        if changes:
            from apps.bookings.domain.events import BookingReconciled

            self.add_event(BookingReconciled(**self._event_refs(), changes=list(changes)))

        return changes

    # ===== Queries =====

    def holds_capacity(self) -> bool:
        return self.status in CAPACITY_HOLDING_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_party(self, user_id: int) -> bool:
        return user_id in (self.renter_id, self.owner_id)

    def __str__(self):
        return f"Booking {self.booking_id} ({self.status.value})"

    def __repr__(self):
        return (
            f"Booking(id={self.id}, booking_id={self.booking_id}, "
            f"status={self.status.value}, window={self.window!r})"
        )
