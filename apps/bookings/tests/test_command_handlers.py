"""Booking command handler tests against the database."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from django.test import override_settings

from shared.application.message_bus import message_bus
from shared.domain.base import utcnow
from shared.domain.exceptions import (
    BookingDurationOutOfRange,
    CancellationNotAllowed,
    CapacityUnavailable,
    ConcurrentModification,
    InvalidRateCard,
    InvalidWindow,
    NotFound,
    PaymentProviderError,
    PaymentVerificationFailed,
    PermissionDenied,
    ResourceNotBookable,
)

from apps.bookings.application.command_handlers import (
    ActivateBookingCommand,
    ActivateBookingHandler,
    ApproveBookingCommand,
    CancelBookingCommand,
    CompleteBookingCommand,
    CompleteBookingHandler,
    ConfirmPaymentCommand,
    CreateBookingCommand,
    CreateBookingHandler,
    RefundIssuer,
    RejectBookingCommand,
    RejectBookingHandler,
    RetryRefundCommand,
)
from apps.bookings.application.queries import CheckAvailabilityQuery
from apps.bookings.domain.entities import BookingStatus, PaymentStatus
from apps.bookings.infrastructure.repositories import DjangoBookingRepository
from apps.bookings.models import Booking as BookingRow
from apps.payments.gateway import SandboxPaymentGateway, get_payment_gateway
from apps.users.models import CustomUser
from apps.warehouses.repositories import DjangoWarehouseRepository

from .factories import create_user, create_warehouse

pytestmark = pytest.mark.django_db


class RefundsDown(SandboxPaymentGateway):
    def create_refund(self, payment_id, amount, metadata=None):
        raise PaymentProviderError("provider unavailable")


class OrdersDown(SandboxPaymentGateway):
    def create_order(self, amount, currency, reference):
        raise PaymentProviderError("provider unavailable")


class OrdersWithoutId(SandboxPaymentGateway):
    def create_order(self, amount, currency, reference):
        return {"status": "created"}


@pytest.fixture
def owner():
    return create_user("owner@example.com", CustomUser.RoleChoices.WAREHOUSE_OWNER)


@pytest.fixture
def renter():
    return create_user("farmer@example.com")


@pytest.fixture
def warehouse(owner):
    return create_warehouse(owner)


def create(renter, warehouse, days_ahead=10, days=4, quantity="100"):
    start = utcnow().replace(microsecond=0) + timedelta(days=days_ahead)
    return message_bus.handle_command(
        CreateBookingCommand(
            warehouse_id=warehouse.id,
            renter_id=renter.id,
            start_date=start.isoformat(),
            end_date=(start + timedelta(days=days)).isoformat(),
            quantity=quantity,
            produce_type="onion",
        )
    )


def pay(booking, payment_id="pay_001"):
    order_id = booking.payment.provider_order_ref
    return message_bus.handle_command(
        ConfirmPaymentCommand(
            booking_id=booking.booking_id,
            order_id=order_id,
            payment_id=payment_id,
            signature=SandboxPaymentGateway().sign(order_id, payment_id),
        )
    )


def paid(renter, warehouse, **kwargs):
    return pay(create(renter, warehouse, **kwargs).booking).booking


# ===== Create =====

def test_create_prices_and_opens_payment_order(renter, warehouse, owner):
    result = create(renter, warehouse)

    row = BookingRow.objects.get(booking_id=result.booking.booking_id)
    assert result.warnings == []
    assert row.status == BookingStatus.PENDING.value
    assert row.owner_id == owner.id
    assert row.total_amount == Decimal("20000")
    assert row.platform_fee == Decimal("1000")
    assert row.owner_amount == Decimal("19000")
    assert row.amount_due == Decimal("20000")
    assert row.duration_units == 4
    assert row.unit == "tons"
    assert row.provider_order_ref.startswith("order_")
    assert row.version == 1


def test_create_rejects_overlapping_demand_beyond_capacity(renter, warehouse):
    first = create(renter, warehouse, quantity="600").booking

    with pytest.raises(CapacityUnavailable) as excinfo:
        create(renter, warehouse, days_ahead=11, quantity="500")

    assert excinfo.value.details["conflicting_bookings"] == [first.booking_id]
    assert BookingRow.objects.count() == 1


def test_availability_lists_the_conflicting_booking(renter, warehouse):
    first = create(renter, warehouse, quantity="600").booking

    result = message_bus.handle_command(
        CheckAvailabilityQuery(
            warehouse_id=warehouse.id,
            start_date=first.window.start + timedelta(days=1),
            end_date=first.window.end + timedelta(days=1),
            quantity="500",
        )
    )

    assert not result.available
    assert result.remaining_capacity == Decimal("400")
    assert [ref.booking_id for ref in result.conflicting_bookings] == [first.booking_id]


def test_create_on_unverified_warehouse(renter, owner):
    warehouse = create_warehouse(owner, verification_status="pending")

    with pytest.raises(ResourceNotBookable):
        create(renter, warehouse)


def test_create_with_zero_base_rate(renter, owner):
    warehouse = create_warehouse(owner, base_rate=Decimal("0"))

    with pytest.raises(InvalidRateCard):
        create(renter, warehouse)


def test_create_outside_duration_terms(renter, owner):
    warehouse = create_warehouse(owner, minimum_booking_duration=7)

    with pytest.raises(BookingDurationOutOfRange):
        create(renter, warehouse, days=3)


def test_create_with_empty_window(renter, warehouse):
    with pytest.raises(InvalidWindow):
        create(renter, warehouse, days=0)


def test_create_on_unknown_warehouse(renter, warehouse):
    warehouse.id = "5b0f8c0e-0000-0000-0000-000000000000"

    with pytest.raises(NotFound):
        create(renter, warehouse)


def test_create_survives_payment_provider_outage(renter, warehouse):
    handler = CreateBookingHandler(DjangoBookingRepository(), DjangoWarehouseRepository(), OrdersDown)
    start = utcnow() + timedelta(days=10)

    result = handler.handle(
        CreateBookingCommand(
            warehouse_id=warehouse.id,
            renter_id=renter.id,
            start_date=start,
            end_date=start + timedelta(days=4),
            quantity=100,
        )
    )

    assert len(result.warnings) == 1
    row = BookingRow.objects.get(booking_id=result.booking.booking_id)
    assert row.status == BookingStatus.PENDING.value
    assert row.provider_order_ref == ""


@override_settings(PAYMENT_GATEWAY_BACKEND="razorpay", RAZORPAY_KEY_ID="", RAZORPAY_KEY_SECRET="")
def test_create_survives_unconfigured_payment_provider(renter, warehouse):
    handler = CreateBookingHandler(DjangoBookingRepository(), DjangoWarehouseRepository(), get_payment_gateway)
    start = utcnow() + timedelta(days=10)

    result = handler.handle(
        CreateBookingCommand(
            warehouse_id=warehouse.id,
            renter_id=renter.id,
            start_date=start,
            end_date=start + timedelta(days=4),
            quantity=100,
        )
    )

    assert result.warnings == ["Payment order could not be created: Razorpay key id and secret are not configured"]
    assert BookingRow.objects.count() == 1
    assert BookingRow.objects.get().status == BookingStatus.PENDING.value


def test_create_survives_malformed_payment_order(renter, warehouse):
    handler = CreateBookingHandler(DjangoBookingRepository(), DjangoWarehouseRepository(), OrdersWithoutId)
    start = utcnow() + timedelta(days=10)

    result = handler.handle(
        CreateBookingCommand(
            warehouse_id=warehouse.id,
            renter_id=renter.id,
            start_date=start,
            end_date=start + timedelta(days=4),
            quantity=100,
        )
    )

    assert len(result.warnings) == 1
    row = BookingRow.objects.get(booking_id=result.booking.booking_id)
    assert row.status == BookingStatus.PENDING.value
    assert row.provider_order_ref == ""


# ===== Payment =====

def test_confirm_payment_decrements_capacity(renter, warehouse):
    booking = paid(renter, warehouse)

    row = BookingRow.objects.get(booking_id=booking.booking_id)
    warehouse.refresh_from_db()
    assert row.status == BookingStatus.AWAITING_APPROVAL.value
    assert row.payment_status == PaymentStatus.PAID.value
    assert row.amount_due == Decimal("0")
    assert warehouse.capacity_available == Decimal("900")


def test_confirm_payment_is_idempotent(renter, warehouse):
    booking = create(renter, warehouse).booking
    pay(booking)

    again = pay(booking).booking

    warehouse.refresh_from_db()
    assert again.status == BookingStatus.AWAITING_APPROVAL
    assert warehouse.capacity_available == Decimal("900")


def test_confirm_payment_with_bad_signature(renter, warehouse):
    booking = create(renter, warehouse).booking

    with pytest.raises(PaymentVerificationFailed):
        message_bus.handle_command(
            ConfirmPaymentCommand(
                booking_id=booking.booking_id,
                order_id=booking.payment.provider_order_ref,
                payment_id="pay_001",
                signature="forged",
            )
        )

    assert BookingRow.objects.get(booking_id=booking.booking_id).status == BookingStatus.PENDING.value


def test_capacity_shortfall_does_not_undo_payment(renter, warehouse):
    booking = create(renter, warehouse).booking
    type(warehouse).objects.filter(pk=warehouse.pk).update(capacity_available=Decimal("50"))

    pay(booking)

    warehouse.refresh_from_db()
    assert warehouse.capacity_available == Decimal("50")
    assert BookingRow.objects.get(booking_id=booking.booking_id).payment_status == PaymentStatus.PAID.value


# ===== Owner decision =====

def test_owner_approves(renter, warehouse, owner):
    booking = paid(renter, warehouse)

    result = message_bus.handle_command(
        ApproveBookingCommand(booking_id=booking.booking_id, actor_id=owner.id, notes="Bay 4")
    )

    row = BookingRow.objects.get(booking_id=booking.booking_id)
    assert result.booking.status == BookingStatus.APPROVED
    assert row.approval_status == "approved"
    assert row.approval_decided_by_id == owner.id
    assert row.approval_notes == "Bay 4"


def test_renter_cannot_approve(renter, warehouse):
    booking = paid(renter, warehouse)

    with pytest.raises(PermissionDenied):
        message_bus.handle_command(ApproveBookingCommand(booking_id=booking.booking_id, actor_id=renter.id))


def test_reject_refunds_the_full_total(renter, warehouse, owner):
    booking = paid(renter, warehouse)

    result = message_bus.handle_command(
        RejectBookingCommand(booking_id=booking.booking_id, actor_id=owner.id, reason="No space for onions")
    )

    row = BookingRow.objects.get(booking_id=booking.booking_id)
    assert result.warnings == []
    assert row.status == BookingStatus.REJECTED.value
    assert row.payment_status == PaymentStatus.REFUNDED.value
    assert row.refunded_amount == Decimal("20000")
    assert row.provider_refund_ref.startswith("rfnd_")


def test_failed_refund_keeps_rejection_and_can_be_retried(renter, warehouse, owner):
    booking = paid(renter, warehouse)
    repo = DjangoBookingRepository()
    handler = RejectBookingHandler(repo, RefundIssuer(repo, RefundsDown))

    result = handler.handle(RejectBookingCommand(booking_id=booking.booking_id, actor_id=owner.id))

    row = BookingRow.objects.get(booking_id=booking.booking_id)
    assert len(result.warnings) == 1
    assert row.status == BookingStatus.REJECTED.value
    assert row.payment_status == PaymentStatus.PAID.value

    retried = message_bus.handle_command(RetryRefundCommand(booking_id=booking.booking_id))

    row.refresh_from_db()
    assert retried.warnings == []
    assert row.payment_status == PaymentStatus.REFUNDED.value


# ===== Cancellation =====

def test_cancel_approved_booking_five_days_ahead(renter, warehouse, owner):
    booking = paid(renter, warehouse, days_ahead=5)
    message_bus.handle_command(ApproveBookingCommand(booking_id=booking.booking_id, actor_id=owner.id))

    result = message_bus.handle_command(
        CancelBookingCommand(booking_id=booking.booking_id, actor_id=renter.id, reason="Harvest delayed")
    )

    row = BookingRow.objects.get(booking_id=booking.booking_id)
    assert result.booking.status == BookingStatus.CANCELLED
    assert row.refund_amount == Decimal("10000")
    assert row.refunded_amount == Decimal("10000")
    assert row.payment_status == PaymentStatus.PARTIALLY_REFUNDED.value
    assert row.cancelled_by_id == renter.id


def test_cancel_unpaid_booking(renter, warehouse):
    booking = create(renter, warehouse).booking

    message_bus.handle_command(CancelBookingCommand(booking_id=booking.booking_id, actor_id=renter.id))

    row = BookingRow.objects.get(booking_id=booking.booking_id)
    assert row.status == BookingStatus.CANCELLED.value
    assert row.payment_status == PaymentStatus.PENDING.value
    assert not row.refund_eligible


def test_cancel_inside_grace_period(renter, warehouse):
    booking = create(renter, warehouse, days_ahead=0.5).booking

    with pytest.raises(CancellationNotAllowed):
        message_bus.handle_command(CancelBookingCommand(booking_id=booking.booking_id, actor_id=renter.id))


def test_owner_cannot_cancel(renter, warehouse, owner):
    booking = create(renter, warehouse).booking

    with pytest.raises(PermissionDenied):
        message_bus.handle_command(CancelBookingCommand(booking_id=booking.booking_id, actor_id=owner.id))


# ===== Concurrency =====

def test_stale_writer_loses(renter, warehouse, owner):
    booking_id = paid(renter, warehouse).booking_id
    repo = DjangoBookingRepository()
    first = repo.get(booking_id)
    second = repo.get(booking_id)

    first.approve(owner.id, utcnow())
    repo.save(first)
    second.reject(owner.id, utcnow())

    with pytest.raises(ConcurrentModification):
        repo.save(second)

    assert BookingRow.objects.get(booking_id=booking_id).status == BookingStatus.APPROVED.value


# ===== Time driven =====

def test_activate_and_complete(renter, warehouse, owner):
    booking = paid(renter, warehouse)
    message_bus.handle_command(ApproveBookingCommand(booking_id=booking.booking_id, actor_id=owner.id))
    repo = DjangoBookingRepository()

    ActivateBookingHandler(repo, clock=lambda: booking.window.start).handle(
        ActivateBookingCommand(booking_id=booking.booking_id)
    )
    assert BookingRow.objects.get(booking_id=booking.booking_id).status == BookingStatus.ACTIVE.value

    CompleteBookingHandler(repo, clock=lambda: booking.window.end + timedelta(hours=1)).handle(
        CompleteBookingCommand(booking_id=booking.booking_id)
    )
    row = BookingRow.objects.get(booking_id=booking.booking_id)
    assert row.status == BookingStatus.COMPLETED.value
    assert row.completed_at is not None


# ===== Notifications =====

def test_events_notify_after_commit(renter, warehouse, owner, mailoutbox, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        create(renter, warehouse)

    recipients = sorted(address for message in mailoutbox for address in message.to)
    assert recipients == ["ops@agristore.test", "owner@example.com"]
    assert "New storage request" in mailoutbox[0].subject
