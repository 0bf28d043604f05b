"""
Unit of Work

One database transaction per use case. Domain events collected from the
aggregates touched inside it are handed to the message bus only once the
transaction has committed, so nobody is told about a change that was
rolled back.

    with DjangoUnitOfWork() as uow:
        booking = booking_repo.get(booking_id)
        booking.approve(owner_id, now)
        uow.collect_events(booking)
        booking_repo.save(booking)

        with uow.best_effort("capacity decrement"):
            warehouse_repo.decrement_capacity(...)
"""

from contextlib import contextmanager
from typing import List, Optional
import logging

from django.db import transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class DjangoUnitOfWork:

    def __init__(self, bus=None, using: Optional[str] = None):
        self._bus = bus
        self._using = using
        self._atomic = None
        self._events: List[DomainEvent] = []

    def __enter__(self) -> 'DjangoUnitOfWork':
        self._atomic = transaction.atomic(using=self._using)
        self._atomic.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self._schedule_publication()
        elif self._events:
            logger.warning(f"Rolling back, dropping {len(self._events)} event(s) after {exc_type.__name__}")
            self._events.clear()
        return self._atomic.__exit__(exc_type, exc_val, exc_tb)

    def collect_events(self, aggregate):
        """Take the pending events off ``aggregate``"""
        pending = aggregate.events
        if not pending:
            return
        self._events.extend(pending)
        aggregate.clear_events()
        logger.debug(f"Collected {len(pending)} event(s) from {type(aggregate).__name__} {aggregate.id}")

    @contextmanager
    def best_effort(self, description: str):
        """
        Run an optional step in a savepoint

        If it raises, only the savepoint is rolled back; the error is
        logged and the surrounding transaction goes on to commit.
        """
        try:
            with transaction.atomic(using=self._using):
                yield
        except Exception as e:
            logger.error(f"Optional step '{description}' failed: {e}", exc_info=True)

    def _schedule_publication(self):
        if not self._events:
            return
        events, self._events = self._events, []
        transaction.on_commit(lambda: self._publish(events), using=self._using)

    def _publish(self, events: List[DomainEvent]):
        bus = self._bus
        if bus is None:
            from shared.application.message_bus import message_bus as bus

        failures = bus.publish_events(events)
        if failures:
            logger.error(f"{failures} event delivery failure(s) after commit")
