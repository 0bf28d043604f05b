"""
Booking Reconciliation

Restores a consistent quote on bookings whose derived fields drifted from
their source data: the duration is re-derived from the stored window, a
missing or non-positive total is repriced from the warehouse's current
rate card, and the amount due is recomputed from the payment status.

Reconciliation is idempotent and never moves status or payment status.
It replaces the one-off repair scripts that used to patch zero-priced
bookings by hand.
"""

from dataclasses import dataclass, field
from typing import List, Optional
import logging

from shared.application.uow import DjangoUnitOfWork
from shared.domain.exceptions import (
    DomainError,
    InvalidRateCard,
    PermissionDenied,
    RateCardIntegrityError,
)
from apps.bookings.domain.entities import Booking

logger = logging.getLogger(__name__)


@dataclass
class ReconcileBookingCommand:
    """
    Command to reconcile one booking

    actor_id None means the system itself (tasks, management command).
    """
    booking_id: str
    actor_id: Optional[int] = None
    actor_is_admin: bool = False


@dataclass
class ReconciliationResult:
    booking: Booking
    changes: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.changes)


class ReconciliationService:

    def __init__(self, booking_repo, warehouse_repo):
        self.booking_repo = booking_repo
        self.warehouse_repo = warehouse_repo

    def reconcile(
        self,
        booking_id: str,
        actor_id: Optional[int] = None,
        actor_is_admin: bool = False,
    ) -> ReconciliationResult:
        """
        Reconcile one booking

        Raises:
            NotFound: unknown booking
            PermissionDenied: actor is not the renter, the owner or an admin
            RateCardIntegrityError: the booking needs repricing but the
                warehouse's current rate card cannot price it
        """
        with DjangoUnitOfWork() as uow:
            booking = self.booking_repo.get(booking_id)

            if actor_id is not None and not actor_is_admin and not booking.is_party(actor_id):
                raise PermissionDenied(
                    f"User {actor_id} may not reconcile booking {booking_id}",
                    booking_id=booking_id,
                )

            rate_card = None
            if booking.pricing.is_missing:
                rate_card = self.warehouse_repo.get(booking.warehouse_id).rate_card

            try:
                changes = booking.reconcile(rate_card)
            except InvalidRateCard as e:
                logger.error(f"Cannot reprice booking {booking_id}: {e}")
                raise RateCardIntegrityError(
                    f"Booking {booking_id} has no valid total and warehouse "
                    f"{booking.warehouse_id} has invalid pricing: {e.message}",
                    booking_id=booking_id,
                    warehouse_id=str(booking.warehouse_id),
                    problems=e.details.get('problems', []),
                )

            if changes:
                uow.collect_events(booking)
                self.booking_repo.save(booking)
                logger.info(f"Reconciled booking {booking_id}: {', '.join(changes)}")
            else:
                logger.debug(f"Booking {booking_id} already consistent")

        return ReconciliationResult(booking=booking, changes=changes)

    def reconcile_all(self) -> dict:
        """
        Reconcile every booking with a missing or non-positive total

        Returns a report: {total, fixed, skipped, results}. A booking that
        cannot be repaired is skipped and its error recorded.
        """
        booking_ids = self.booking_repo.ids_needing_reconciliation()
        logger.info(f"Bulk reconciliation of {len(booking_ids)} bookings")

        report = {'total': len(booking_ids), 'fixed': 0, 'skipped': 0, 'results': []}
        for booking_id in booking_ids:
            try:
                result = self.reconcile(booking_id)
            except DomainError as e:
                logger.warning(f"Skipping booking {booking_id}: {e}")
                report['skipped'] += 1
                report['results'].append({
                    'booking_id': booking_id,
                    'status': 'skipped',
                    'error': e.to_dict(),
                })
                continue

            if result.changed:
                report['fixed'] += 1
                entry = {
                    'booking_id': booking_id,
                    'status': 'fixed',
                    'changes': result.changes,
                    'total_amount': str(result.booking.pricing.total_amount),
                }
            else:
                report['skipped'] += 1
                entry = {'booking_id': booking_id, 'status': 'skipped', 'changes': []}
            report['results'].append(entry)

        logger.info(
            f"Bulk reconciliation done: {report['fixed']} fixed, "
            f"{report['skipped']} skipped of {report['total']}"
        )
        return report


class ReconcileBookingHandler:

    def __init__(self, service: ReconciliationService):
        self.service = service

    def handle(self, command: ReconcileBookingCommand) -> ReconciliationResult:
        return self.service.reconcile(
            command.booking_id,
            actor_id=command.actor_id,
            actor_is_admin=command.actor_is_admin,
        )
