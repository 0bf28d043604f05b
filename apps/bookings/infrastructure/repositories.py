"""
Booking Repository

Translates between the Booking ORM row and the Booking aggregate.

Saves are compare-and-swap on (pk, version): a writer that loaded an
older version updates zero rows and gets ConcurrentModification, so two
racing transitions on one booking can never both win.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from django.db.models import F, Q

from apps.bookings.domain.availability import BookingRef
from apps.bookings.domain.entities import (
    CAPACITY_HOLDING_STATUSES,
    Approval,
    ApprovalStatus,
    Booking,
    BookingStatus,
    Cancellation,
    Demand,
    PaymentRecord,
    PaymentStatus,
    Pricing,
)
from apps.bookings.models import Booking as BookingModel
from shared.domain.exceptions import ConcurrentModification, NotFound
from shared.domain.value_objects import Duration, TimeWindow

logger = logging.getLogger(__name__)


def _to_domain(row: BookingModel) -> Booking:
    duration = None
    if row.duration_units and row.duration_units >= 1:
        duration = Duration(row.duration_units, row.duration_unit)

    cancellation = None
    if row.cancelled_at:
        cancellation = Cancellation(
            cancelled_at=row.cancelled_at,
            cancelled_by=row.cancelled_by_id,
            reason=row.cancellation_reason,
            refund_eligible=row.refund_eligible,
            refund_amount=row.refund_amount if row.refund_amount is not None else 0,
        )

    return Booking(
        id=row.id,
        booking_id=row.booking_id,
        renter_id=row.renter_id,
        owner_id=row.owner_id,
        warehouse_id=row.warehouse_id,
        window=TimeWindow(row.start_date, row.end_date),
        duration=duration,
        duration_unit=row.duration_unit,
        demand=Demand(
            quantity=row.quantity,
            unit=row.unit,
            produce_type=row.produce_type,
            description=row.produce_description,
        ),
        pricing=Pricing(
            base_rate=row.base_rate,
            total_amount=row.total_amount,
            platform_fee=row.platform_fee,
            owner_amount=row.owner_amount,
            currency=row.currency,
        ),
        payment=PaymentRecord(
            status=PaymentStatus(row.payment_status),
            provider_order_ref=row.provider_order_ref,
            provider_payment_ref=row.provider_payment_ref,
            paid_at=row.paid_at,
            amount_due=row.amount_due,
            refunded_amount=row.refunded_amount,
            refunded_at=row.refunded_at,
            provider_refund_ref=row.provider_refund_ref,
        ),
        status=BookingStatus(row.status),
        approval=Approval(
            status=ApprovalStatus(row.approval_status),
            decided_at=row.approval_decided_at,
            decided_by=row.approval_decided_by_id,
            reason=row.approval_reason,
            notes=row.approval_notes,
        ),
        cancellation=cancellation,
        notes=row.notes,
        activated_at=row.activated_at,
        completed_at=row.completed_at,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_fields(booking: Booking) -> dict:
    """Column values for every mutable part of the aggregate"""
    cancellation = booking.cancellation
    return {
        'start_date': booking.window.start,
        'end_date': booking.window.end,
        'duration_units': booking.duration.units if booking.duration else 0,
        'duration_unit': booking.duration.unit_kind if booking.duration else booking.duration_unit,
        'base_rate': booking.pricing.base_rate,
        'total_amount': booking.pricing.total_amount,
        'platform_fee': booking.pricing.platform_fee,
        'owner_amount': booking.pricing.owner_amount,
        'currency': booking.pricing.currency,
        'status': booking.status.value,
        'payment_status': booking.payment.status.value,
        'provider_order_ref': booking.payment.provider_order_ref,
        'provider_payment_ref': booking.payment.provider_payment_ref,
        'paid_at': booking.payment.paid_at,
        'amount_due': booking.payment.amount_due,
        'refunded_amount': booking.payment.refunded_amount,
        'refunded_at': booking.payment.refunded_at,
        'provider_refund_ref': booking.payment.provider_refund_ref,
        'approval_status': booking.approval.status.value,
        'approval_decided_at': booking.approval.decided_at,
        'approval_decided_by_id': booking.approval.decided_by,
        'approval_reason': booking.approval.reason,
        'approval_notes': booking.approval.notes,
        'cancelled_at': cancellation.cancelled_at if cancellation else None,
        'cancelled_by_id': cancellation.cancelled_by if cancellation else None,
        'cancellation_reason': cancellation.reason if cancellation else '',
        'refund_eligible': cancellation.refund_eligible if cancellation else False,
        'refund_amount': cancellation.refund_amount if cancellation else None,
        'notes': booking.notes,
        'activated_at': booking.activated_at,
        'completed_at': booking.completed_at,
        'updated_at': booking.updated_at,
    }


class DjangoBookingRepository:

    def get(self, booking_id: str) -> Booking:
        """Load a booking by its public booking id (BK...)"""
        try:
            return _to_domain(BookingModel.objects.get(booking_id=booking_id))
        except BookingModel.DoesNotExist:
            raise NotFound(f"Booking {booking_id} not found", booking_id=booking_id)

    def add(self, booking: Booking):
        """Insert a freshly created booking"""
        BookingModel.objects.create(
            id=booking.id,
            booking_id=booking.booking_id,
            version=0,
            renter_id=booking.renter_id,
            owner_id=booking.owner_id,
            warehouse_id=booking.warehouse_id,
            quantity=booking.demand.quantity,
            unit=booking.demand.unit,
            produce_type=booking.demand.produce_type,
            produce_description=booking.demand.description,
            created_at=booking.created_at,
            **_to_fields(booking),
        )
        booking.version = 0
        logger.debug(f"Inserted booking {booking.booking_id}")

    def save(self, booking: Booking):
        """
        Persist changes if nobody else saved since this booking was loaded

        Raises ConcurrentModification when the stored version moved on.
        """
        updated = BookingModel.objects.filter(
            pk=booking.id,
            version=booking.version,
        ).update(version=F('version') + 1, **_to_fields(booking))

        if not updated:
            logger.warning(
                f"Concurrent modification of booking {booking.booking_id} "
                f"(expected version {booking.version})"
            )
            raise ConcurrentModification(
                f"Booking {booking.booking_id} was modified by another request, reload and retry",
                booking_id=booking.booking_id,
                expected_version=booking.version,
            )

        booking.version += 1
        logger.debug(f"Saved booking {booking.booking_id} at version {booking.version}")

    def capacity_holders(
        self,
        warehouse_id: UUID,
        window: TimeWindow,
        exclude: Optional[str] = None,
    ) -> List[BookingRef]:
        """Capacity-holding bookings on a warehouse overlapping the window"""
        queryset = BookingModel.objects.filter(
            warehouse_id=warehouse_id,
            status__in=[status.value for status in CAPACITY_HOLDING_STATUSES],
            start_date__lt=window.end,
            end_date__gt=window.start,
        )
        if exclude:
            queryset = queryset.exclude(booking_id=exclude)

        return [
            BookingRef(
                booking_id=row['booking_id'],
                window=TimeWindow(row['start_date'], row['end_date']),
                quantity=row['quantity'],
                status=BookingStatus(row['status']),
            )
            for row in queryset.values('booking_id', 'start_date', 'end_date', 'quantity', 'status')
        ]

    def ids_needing_reconciliation(self) -> List[str]:
        """Bookings with a missing, zero or negative total"""
        return list(
            BookingModel.objects.filter(Q(total_amount__isnull=True) | Q(total_amount__lte=0))
            .order_by('created_at')
            .values_list('booking_id', flat=True)
        )

    def ids_ready_to_activate(self, now: datetime) -> List[str]:
        return list(
            BookingModel.objects.filter(status=BookingStatus.APPROVED.value, start_date__lte=now)
            .values_list('booking_id', flat=True)
        )

    def ids_ready_to_complete(self, now: datetime) -> List[str]:
        return list(
            BookingModel.objects.filter(
                status__in=[BookingStatus.APPROVED.value, BookingStatus.ACTIVE.value],
                end_date__lt=now,
            ).values_list('booking_id', flat=True)
        )

    def ids_with_outstanding_refunds(self) -> Iterable[str]:
        return list(
            BookingModel.objects.filter(
                status__in=[BookingStatus.REJECTED.value, BookingStatus.CANCELLED.value],
                payment_status=PaymentStatus.PAID.value,
            ).values_list('booking_id', flat=True)
        )
