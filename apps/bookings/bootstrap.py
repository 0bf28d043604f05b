"""
Booking Engine Wiring

Registers command handlers and event handlers on the global message bus.
Called once from BookingsConfig.ready().
"""

import logging

from shared.application.message_bus import MessageBus, message_bus as default_bus
from shared.domain.base import DomainEvent
from apps.bookings.application.command_handlers import (
    ActivateBookingCommand,
    ActivateBookingHandler,
    ApproveBookingCommand,
    ApproveBookingHandler,
    CancelBookingCommand,
    CancelBookingHandler,
    CompleteBookingCommand,
    CompleteBookingHandler,
    ConfirmPaymentCommand,
    ConfirmPaymentHandler,
    CreateBookingCommand,
    CreateBookingHandler,
    RefundIssuer,
    RejectBookingCommand,
    RejectBookingHandler,
    RetryRefundCommand,
    RetryRefundHandler,
)
from apps.bookings.application.queries import CheckAvailabilityHandler, CheckAvailabilityQuery
from apps.bookings.application.reconciliation import (
    ReconcileBookingCommand,
    ReconcileBookingHandler,
    ReconciliationService,
)
from apps.bookings.domain import events
from apps.bookings.infrastructure.repositories import DjangoBookingRepository
from apps.payments.gateway import get_payment_gateway
from apps.warehouses.repositories import DjangoWarehouseRepository

logger = logging.getLogger(__name__)


def forward_to_notifications(event: DomainEvent):
    """Hand a published booking event to the notification service"""
    if not event.notification_name:
        return

    from apps.notifications.services import notify

    notify(event.notification_name, event.payload())


def build_reconciliation_service() -> ReconciliationService:
    return ReconciliationService(DjangoBookingRepository(), DjangoWarehouseRepository())


def bootstrap(bus: MessageBus = default_bus) -> MessageBus:
    """Wire the booking engine onto ``bus``; safe to call more than once"""
    if bus.has_command_handler(CreateBookingCommand):
        return bus

    booking_repo = DjangoBookingRepository()
    warehouse_repo = DjangoWarehouseRepository()
    refund_issuer = RefundIssuer(booking_repo, get_payment_gateway)

    handlers = {
        CreateBookingCommand: CreateBookingHandler(booking_repo, warehouse_repo, get_payment_gateway),
        ConfirmPaymentCommand: ConfirmPaymentHandler(booking_repo, warehouse_repo, get_payment_gateway),
        ApproveBookingCommand: ApproveBookingHandler(booking_repo),
        RejectBookingCommand: RejectBookingHandler(booking_repo, refund_issuer),
        CancelBookingCommand: CancelBookingHandler(booking_repo, refund_issuer),
        RetryRefundCommand: RetryRefundHandler(booking_repo, refund_issuer),
        ActivateBookingCommand: ActivateBookingHandler(booking_repo),
        CompleteBookingCommand: CompleteBookingHandler(booking_repo),
        ReconcileBookingCommand: ReconcileBookingHandler(
            ReconciliationService(booking_repo, warehouse_repo)
        ),
        CheckAvailabilityQuery: CheckAvailabilityHandler(booking_repo, warehouse_repo),
    }
    bus.register_handlers({command_type: handler.handle for command_type, handler in handlers.items()})
    bus.register_event_handler(events.BookingEvent, forward_to_notifications)

    logger.debug(f"Booking engine registered {len(handlers)} command handlers")
    return bus
