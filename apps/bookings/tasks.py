"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from shared.application.message_bus import message_bus
from shared.domain.base import utcnow
from shared.domain.exceptions import DomainError

from apps.bookings.application.command_handlers import (
    ActivateBookingCommand,
    CompleteBookingCommand,
    RetryRefundCommand,
)
from apps.bookings.bootstrap import build_reconciliation_service
from apps.bookings.infrastructure.repositories import DjangoBookingRepository

logger = logging.getLogger(__name__)


def _run_each(booking_ids, build_command) -> tuple[int, int]:
    done = failed = 0
    for booking_id in booking_ids:
        try:
            message_bus.handle_command(build_command(booking_id))
        except DomainError as e:
            logger.warning(f"Booking {booking_id} skipped: {e}")
            failed += 1
            continue
        done += 1
    return done, failed


# ============================================================================
# PERIODIC TASKS
# ============================================================================

@shared_task(name="bookings.activate_started_bookings")
def activate_started_bookings() -> dict[str, int]:
    """
    Move approved bookings whose storage period has begun to ACTIVE.

    Runs every 15 minutes through Celery Beat.
    """
    booking_ids = DjangoBookingRepository().ids_ready_to_activate(utcnow())
    activated, failed = _run_each(booking_ids, lambda booking_id: ActivateBookingCommand(booking_id=booking_id))
    if activated:
        logger.info(f"Activated {activated} bookings")
    return {"activated": activated, "failed": failed}


@shared_task(name="bookings.complete_finished_bookings")
def complete_finished_bookings() -> dict[str, int]:
    """Close bookings whose storage period has ended."""
    booking_ids = DjangoBookingRepository().ids_ready_to_complete(utcnow())
    completed, failed = _run_each(booking_ids, lambda booking_id: CompleteBookingCommand(booking_id=booking_id))
    if completed:
        logger.info(f"Completed {completed} bookings")
    return {"completed": completed, "failed": failed}


@shared_task(name="bookings.retry_outstanding_refunds")
def retry_outstanding_refunds() -> dict[str, int]:
    """Re-issue refunds that failed at the provider when the booking was rejected or cancelled."""
    booking_ids = DjangoBookingRepository().ids_with_outstanding_refunds()
    retried, failed = _run_each(booking_ids, lambda booking_id: RetryRefundCommand(booking_id=booking_id))
    if retried:
        logger.info(f"Retried refunds for {retried} bookings")
    return {"retried": retried, "failed": failed}


@shared_task(name="bookings.reconcile_zero_priced_bookings")
def reconcile_zero_priced_bookings() -> dict[str, int]:
    """Reprice bookings stored without a positive total."""
    report = build_reconciliation_service().reconcile_all()
    return {"total": report["total"], "fixed": report["fixed"], "skipped": report["skipped"]}
