"""
Warehouse Repository

Reads warehouses as immutable snapshots for the booking engine and owns
the single write the engine performs on them: the capacity decrement.
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F
from django.db.utils import NotSupportedError

from apps.warehouses.domain.entities import WarehouseSnapshot
from apps.warehouses.models import Warehouse
from shared.domain.exceptions import NotFound

logger = logging.getLogger(__name__)


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


class DjangoWarehouseRepository:

    def get(self, warehouse_id: UUID, lock: bool = False) -> WarehouseSnapshot:
        """
        Load a warehouse snapshot

        With lock=True the row stays locked until the surrounding
        transaction ends, which serialises booking creation per warehouse.
        """
        queryset = Warehouse.objects.all()
        if lock:
            queryset = _lock_queryset_if_possible(queryset)
        try:
            return queryset.get(pk=warehouse_id).to_snapshot()
        except (Warehouse.DoesNotExist, ValidationError, ValueError):
            raise NotFound(f"Warehouse {warehouse_id} not found", warehouse_id=str(warehouse_id))

    def find(self, warehouse_id: UUID) -> Optional[WarehouseSnapshot]:
        try:
            return self.get(warehouse_id)
        except NotFound:
            return None

    def decrement_capacity(self, warehouse_id: UUID, quantity: Decimal, unit: str) -> bool:
        """
        Take quantity off the available capacity

        Runs as one conditional UPDATE so it never drives capacity negative.
        Returns False when the unit differs from the warehouse's or the
        remaining capacity is too small; the caller decides what that means.
        """
        updated = Warehouse.objects.filter(
            pk=warehouse_id,
            capacity_unit=unit,
            capacity_available__gte=quantity,
        ).update(capacity_available=F('capacity_available') - quantity)

        if not updated:
            logger.warning(
                f"Capacity not decremented for warehouse {warehouse_id}: "
                f"{quantity} {unit} requested"
            )
            return False

        logger.info(f"Decremented capacity of warehouse {warehouse_id} by {quantity} {unit}")
        return True
