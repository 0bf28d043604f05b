"""
Booking Command Handlers

These are the use cases for the booking domain.
They orchestrate domain operations within transactions.

Commands:
- CreateBookingCommand: Create a pending booking and open a payment order
- ConfirmPaymentCommand: Record a verified payment
- ApproveBookingCommand / RejectBookingCommand: Owner decision
- CancelBookingCommand: Renter cancellation with tiered refund
- RetryRefundCommand: Re-issue a refund that failed earlier
- ActivateBookingCommand / CompleteBookingCommand: Time driven transitions

Payment provider calls never run inside a transaction. Handlers that move
money do so only after their own transition has been stored, so a request
that loses a race never refunds anything.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List
from uuid import UUID
import logging

from django.conf import settings

from shared.application.uow import DjangoUnitOfWork
from shared.domain.base import utcnow
from shared.domain.exceptions import (
    BookingDurationOutOfRange,
    CapacityUnavailable,
    ConcurrentModification,
    DomainError,
    InvalidTransition,
    PaymentProviderError,
    PaymentVerificationFailed,
    ResourceNotBookable,
)
from shared.domain.value_objects import TimeWindow
from apps.bookings.domain.availability import check_availability
from apps.bookings.domain.entities import (
    Booking,
    BookingStatus,
    Demand,
    PaymentStatus,
    generate_booking_id,
)
from apps.bookings.domain.pricing import parse_quantity, quote

logger = logging.getLogger(__name__)


# ===== Commands =====

@dataclass
class CreateBookingCommand:
    """
    Command to create a new booking

    start_date/end_date may be datetimes, dates or ISO-8601 strings.
    unit defaults to the warehouse's capacity unit.
    """
    warehouse_id: UUID
    renter_id: int
    start_date: object
    end_date: object
    quantity: object
    unit: str = ''
    produce_type: str = ''
    produce_description: str = ''
    notes: str = ''


@dataclass
class ConfirmPaymentCommand:
    """Command to record a payment the renter completed with the provider"""
    booking_id: str
    order_id: str
    payment_id: str
    signature: str


@dataclass
class ApproveBookingCommand:
    booking_id: str
    actor_id: int
    notes: str = ''


@dataclass
class RejectBookingCommand:
    booking_id: str
    actor_id: int
    reason: str = ''
    notes: str = ''


@dataclass
class CancelBookingCommand:
    """Command to cancel a booking on behalf of its renter"""
    booking_id: str
    actor_id: int
    reason: str = ''


@dataclass
class RetryRefundCommand:
    """Command to re-issue the outstanding refund of a rejected or cancelled booking"""
    booking_id: str


@dataclass
class ActivateBookingCommand:
    booking_id: str


@dataclass
class CompleteBookingCommand:
    booking_id: str


@dataclass
class BookingResult:
    """
    Outcome of a booking command

    warnings carry best-effort failures (payment order creation, refunds)
    that did not stop the transition itself.
    """
    booking: Booking
    warnings: List[str] = field(default_factory=list)


def cancellation_grace_hours() -> int:
    return int(getattr(settings, 'BOOKING_CANCELLATION_GRACE_HOURS', 24))


# ===== Command Handlers =====

class CreateBookingHandler:
    """
    Handler for CreateBooking command

    Strategy:
    1. Validate window and quantity before touching the database
    2. Lock the warehouse row (SELECT FOR UPDATE) so concurrent creates
       against one warehouse run one at a time
    3. Validate rate card, bookability and duration terms, then price
    4. Re-check capacity against overlapping bookings under the lock
    5. Insert the booking; BookingCreated is published after commit
    6. Outside the transaction, open a provider order. A failure here
       leaves the booking pending and is returned as a warning.
    """

    def __init__(self, booking_repo, warehouse_repo, gateway_factory: Callable):
        self.booking_repo = booking_repo
        self.warehouse_repo = warehouse_repo
        self.gateway_factory = gateway_factory

    def handle(self, command: CreateBookingCommand) -> BookingResult:
        logger.info(
            f"Creating booking for warehouse {command.warehouse_id}, "
            f"renter {command.renter_id}, period {command.start_date} - {command.end_date}"
        )

        window = TimeWindow.parse(command.start_date, command.end_date)
        quantity = parse_quantity(command.quantity)
        now = utcnow()

        with DjangoUnitOfWork() as uow:
            warehouse = self.warehouse_repo.get(command.warehouse_id, lock=True)

            warehouse.rate_card.validate()
            problems = warehouse.bookability_problems()
            if problems:
                raise ResourceNotBookable(
                    f"{warehouse} is not bookable: {', '.join(problems)}",
                    warehouse_id=str(warehouse.id),
                    problems=problems,
                )

            priced = quote(warehouse.rate_card, window, quantity)
            if not warehouse.accepts_duration(priced.duration.units):
                raise BookingDurationOutOfRange(
                    f"Duration of {priced.duration} is outside the allowed range "
                    f"{warehouse.minimum_booking_duration}-{warehouse.maximum_booking_duration}",
                    duration_units=priced.duration.units,
                    minimum=warehouse.minimum_booking_duration,
                    maximum=warehouse.maximum_booking_duration,
                )

            holders = self.booking_repo.capacity_holders(warehouse.id, window)
            availability = check_availability(warehouse, window, quantity, holders)
            if availability.remaining_capacity < quantity:
                raise CapacityUnavailable(
                    f"Only {availability.remaining_capacity} {warehouse.capacity.unit} available "
                    f"for the requested period, {quantity} requested",
                    remaining_capacity=str(availability.remaining_capacity),
                    conflicting_bookings=[ref.booking_id for ref in availability.conflicting_bookings],
                )

            booking = Booking.create(
                booking_id=generate_booking_id(now),
                renter_id=command.renter_id,
                owner_id=warehouse.owner_id,
                warehouse_id=warehouse.id,
                window=window,
                demand=Demand(
                    quantity=quantity,
                    unit=command.unit or warehouse.capacity.unit,
                    produce_type=command.produce_type,
                    description=command.produce_description,
                ),
                quote=priced,
                now=now,
                notes=command.notes,
            )

            uow.collect_events(booking)
            self.booking_repo.add(booking)

        logger.info(
            f"Booking created: {booking.booking_id} "
            f"(total {booking.pricing.total}, {booking.duration})"
        )

        warnings = self._open_payment_order(booking)
        return BookingResult(booking=booking, warnings=warnings)

    def _open_payment_order(self, booking: Booking) -> List[str]:
        try:
            order = self.gateway_factory().create_order(
                booking.pricing.total,
                booking.pricing.currency,
                booking.booking_id,
            )
            with DjangoUnitOfWork():
                booking.attach_order(order['order_id'], utcnow())
                self.booking_repo.save(booking)
        except DomainError as e:
            logger.warning(f"Payment order for booking {booking.booking_id} not created: {e}")
            return [f"Payment order could not be created: {e.message}"]
        except (KeyError, TypeError) as e:
            logger.exception(f"Malformed payment order for booking {booking.booking_id}: {e!r}")
            return ["Payment order could not be created: unexpected provider response"]

        logger.info(f"Payment order {booking.payment.provider_order_ref} attached to {booking.booking_id}")
        return []


class ConfirmPaymentHandler:
    """
    Handler for confirming payment

    The provider signature is verified before any transaction starts. The
    booking transition and the capacity decrement then share one
    transaction; the decrement sits in a savepoint and may fail alone.
    A retry with the same payment id after success returns the booking.
    """

    def __init__(self, booking_repo, warehouse_repo, gateway_factory: Callable):
        self.booking_repo = booking_repo
        self.warehouse_repo = warehouse_repo
        self.gateway_factory = gateway_factory

    def handle(self, command: ConfirmPaymentCommand) -> BookingResult:
        logger.info(f"Confirming payment {command.payment_id} for booking {command.booking_id}")

        booking = self.booking_repo.get(command.booking_id)
        if booking.is_paid_with(command.payment_id):
            logger.info(f"Payment {command.payment_id} already recorded for {booking.booking_id}")
            return BookingResult(booking=booking)

        booking.ensure_payment_confirmable(command.order_id)

        verified = self.gateway_factory().verify_payment(
            command.order_id,
            command.payment_id,
            command.signature,
        )
        if not verified:
            raise PaymentVerificationFailed(
                f"Payment {command.payment_id} could not be verified for booking {booking.booking_id}",
                booking_id=booking.booking_id,
            )

        try:
            with DjangoUnitOfWork() as uow:
                booking.confirm_payment(command.order_id, command.payment_id, utcnow())
                uow.collect_events(booking)
                self.booking_repo.save(booking)

                with uow.best_effort('capacity decrement'):
                    self.warehouse_repo.decrement_capacity(
                        booking.warehouse_id,
                        booking.demand.quantity,
                        booking.demand.unit,
                    )
        except ConcurrentModification:
            current = self.booking_repo.get(command.booking_id)
            if current.is_paid_with(command.payment_id):
                return BookingResult(booking=current)
            raise

        logger.info(f"Payment confirmed for booking {booking.booking_id}")
        return BookingResult(booking=booking)


class RefundIssuer:
    """
    Issues the outstanding refund of a booking and records it

    Refund failures never raise: the booking keeps its status and the
    failure comes back as a warning so the refund can be retried.
    """

    def __init__(self, booking_repo, gateway_factory: Callable):
        self.booking_repo = booking_repo
        self.gateway_factory = gateway_factory

    def issue(self, booking: Booking, reason: str) -> List[str]:
        amount = booking.outstanding_refund
        if amount is None:
            return []

        try:
            refund = self.gateway_factory().create_refund(
                booking.payment.provider_payment_ref,
                amount,
                {'booking_id': booking.booking_id, 'reason': reason},
            )
        except PaymentProviderError as e:
            logger.error(
                f"Refund of {amount} for booking {booking.booking_id} failed: {e}. "
                f"Booking stays {booking.status.value} with payment {booking.payment.status.value}"
            )
            return [f"Refund of {amount} failed and must be retried: {e.message}"]

        refund_id = refund['refund_id']
        try:
            self._record(booking, amount, refund_id)
        except ConcurrentModification:
            booking = self.booking_repo.get(booking.booking_id)
            if booking.payment.status != PaymentStatus.PAID:
                logger.error(
                    f"Refund {refund_id} issued for booking {booking.booking_id} "
                    f"which is already {booking.payment.status.value}"
                )
                return [f"Refund {refund_id} was issued but the booking had already been refunded"]
            self._record(booking, amount, refund_id)

        logger.info(f"Refund {refund_id} of {amount} recorded for booking {booking.booking_id}")
        return []

    def _record(self, booking: Booking, amount, refund_id: str):
        with DjangoUnitOfWork() as uow:
            booking.record_refund(amount, refund_id, utcnow())
            uow.collect_events(booking)
            self.booking_repo.save(booking)


class ApproveBookingHandler:
    """Handler for the owner's approval"""

    def __init__(self, booking_repo):
        self.booking_repo = booking_repo

    def handle(self, command: ApproveBookingCommand) -> BookingResult:
        logger.info(f"Approving booking {command.booking_id} by user {command.actor_id}")

        with DjangoUnitOfWork() as uow:
            booking = self.booking_repo.get(command.booking_id)
            booking.approve(command.actor_id, utcnow(), notes=command.notes)
            uow.collect_events(booking)
            self.booking_repo.save(booking)

        logger.info(f"Booking {booking.booking_id} approved")
        return BookingResult(booking=booking)


class RejectBookingHandler:
    """
    Handler for the owner's rejection

    The booking is stored as rejected first; the full refund follows and
    may fail without undoing the rejection.
    """

    def __init__(self, booking_repo, refund_issuer: RefundIssuer):
        self.booking_repo = booking_repo
        self.refund_issuer = refund_issuer

    def handle(self, command: RejectBookingCommand) -> BookingResult:
        logger.info(f"Rejecting booking {command.booking_id} by user {command.actor_id}")

        with DjangoUnitOfWork() as uow:
            booking = self.booking_repo.get(command.booking_id)
            booking.reject(command.actor_id, utcnow(), reason=command.reason, notes=command.notes)
            uow.collect_events(booking)
            self.booking_repo.save(booking)

        warnings = self.refund_issuer.issue(booking, command.reason or 'Booking rejected by owner')

        logger.info(f"Booking {booking.booking_id} rejected")
        return BookingResult(booking=booking, warnings=warnings)


class CancelBookingHandler:
    """Handler for the renter's cancellation"""

    def __init__(self, booking_repo, refund_issuer: RefundIssuer):
        self.booking_repo = booking_repo
        self.refund_issuer = refund_issuer

    def handle(self, command: CancelBookingCommand) -> BookingResult:
        logger.info(f"Cancelling booking {command.booking_id}, reason: {command.reason}")

        with DjangoUnitOfWork() as uow:
            booking = self.booking_repo.get(command.booking_id)
            booking.cancel(
                command.actor_id,
                utcnow(),
                grace_hours=cancellation_grace_hours(),
                reason=command.reason,
            )
            uow.collect_events(booking)
            self.booking_repo.save(booking)

        warnings = self.refund_issuer.issue(booking, command.reason or 'Booking cancelled by renter')

        logger.info(
            f"Booking {booking.booking_id} cancelled "
            f"(refund {booking.cancellation.refund_amount} {booking.pricing.currency})"
        )
        return BookingResult(booking=booking, warnings=warnings)


class RetryRefundHandler:
    """Handler for re-issuing a refund; a refunded booking comes back unchanged"""

    def __init__(self, booking_repo, refund_issuer: RefundIssuer):
        self.booking_repo = booking_repo
        self.refund_issuer = refund_issuer

    def handle(self, command: RetryRefundCommand) -> BookingResult:
        booking = self.booking_repo.get(command.booking_id)

        if booking.payment.status in (PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED):
            logger.info(f"Booking {booking.booking_id} already refunded")
            return BookingResult(booking=booking)

        if booking.status not in (BookingStatus.REJECTED, BookingStatus.CANCELLED):
            raise InvalidTransition(
                f"Booking {booking.booking_id} in status {booking.status.value} has no refund to retry",
                booking_id=booking.booking_id,
                status=booking.status.value,
            )

        if booking.outstanding_refund is None:
            logger.info(f"Booking {booking.booking_id} owes no refund")
            return BookingResult(booking=booking)

        logger.info(f"Retrying refund of {booking.outstanding_refund} for booking {booking.booking_id}")
        warnings = self.refund_issuer.issue(booking, 'Refund retry')
        return BookingResult(booking=booking, warnings=warnings)


class ActivateBookingHandler:
    """Handler for approved -> active once the storage period starts"""

    def __init__(self, booking_repo, clock: Callable[[], datetime] = utcnow):
        self.booking_repo = booking_repo
        self.clock = clock

    def handle(self, command: ActivateBookingCommand) -> BookingResult:
        with DjangoUnitOfWork() as uow:
            booking = self.booking_repo.get(command.booking_id)
            booking.activate(self.clock())
            uow.collect_events(booking)
            self.booking_repo.save(booking)

        logger.info(f"Booking {booking.booking_id} activated")
        return BookingResult(booking=booking)


class CompleteBookingHandler:
    """Handler for approved|active -> completed once the storage period ends"""

    def __init__(self, booking_repo, clock: Callable[[], datetime] = utcnow):
        self.booking_repo = booking_repo
        self.clock = clock

    def handle(self, command: CompleteBookingCommand) -> BookingResult:
        with DjangoUnitOfWork() as uow:
            booking = self.booking_repo.get(command.booking_id)
            booking.complete(self.clock())
            uow.collect_events(booking)
            self.booking_repo.save(booking)

        logger.info(f"Booking {booking.booking_id} completed")
        return BookingResult(booking=booking)
