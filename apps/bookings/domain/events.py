"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
These are published after successful transaction commits. Events with a
``notification_name`` are forwarded to the notification service under
that name.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from shared.domain.base import DomainEvent
from shared.domain.value_objects import Money


@dataclass(kw_only=True)
class BookingEvent(DomainEvent):
    """Common references carried by every booking event"""
    booking_id: str
    renter_id: int
    owner_id: int
    warehouse_id: UUID


@dataclass(kw_only=True)
class BookingCreated(BookingEvent):
    """
    Event: A booking was created in pending status

    Triggers:
    - Tell the warehouse owner a request is on its way
    """
    notification_name = 'booking-created'

    start_date: datetime
    end_date: datetime
    quantity: Decimal
    total_amount: Money


@dataclass(kw_only=True)
class PaymentVerified(BookingEvent):
    """
    Event: The provider confirmed payment (pending -> awaiting-approval)

    Triggers:
    - Ask the owner to approve or reject
    """
    notification_name = 'payment-verified'

    provider_payment_ref: str
    amount: Money


@dataclass(kw_only=True)
class BookingApproved(BookingEvent):
    notification_name = 'approved'

    notes: str = ''


@dataclass(kw_only=True)
class BookingRejected(BookingEvent):
    notification_name = 'rejected'

    reason: str = ''
    refund_due: Money = None


@dataclass(kw_only=True)
class BookingCancelled(BookingEvent):
    """
    Event: The renter cancelled

    Triggers:
    - Free the owner's calendar
    - Confirm the refund amount to the renter
    """
    notification_name = 'cancelled'

    reason: str = ''
    old_status: str = ''
    refund_amount: Money = None


@dataclass(kw_only=True)
class BookingRefunded(BookingEvent):
    notification_name = 'refunded'

    amount: Money
    provider_refund_ref: str
    payment_status: str


@dataclass(kw_only=True)
class BookingActivated(BookingEvent):
    """Event: The storage period started (approved -> active)"""


@dataclass(kw_only=True)
class BookingCompleted(BookingEvent):
    notification_name = 'completed'


@dataclass(kw_only=True)
class BookingReconciled(BookingEvent):
    """Event: Reconciliation repaired derived fields"""
    changes: list
