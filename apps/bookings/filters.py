"""FilterSet definitions for booking listings."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Booking


class BookingFilterSet(django_filters.FilterSet):
    """Filters for the renter and owner booking lists."""

    status = django_filters.ChoiceFilter(field_name="status", choices=Booking.Status.choices)
    payment_status = django_filters.ChoiceFilter(
        field_name="payment_status", choices=Booking.PaymentStatus.choices
    )
    warehouse = django_filters.UUIDFilter(field_name="warehouse_id")
    starts_after = django_filters.IsoDateTimeFilter(field_name="start_date", lookup_expr="gte")
    ends_before = django_filters.IsoDateTimeFilter(field_name="end_date", lookup_expr="lte")
    # Bookings whose total still has to be repaired
    needs_reconciliation = django_filters.BooleanFilter(method="filter_needs_reconciliation")

    class Meta:
        model = Booking
        fields = ["status", "payment_status", "warehouse"]

    def filter_needs_reconciliation(self, queryset, name, value):  # type: ignore
        broken = queryset.filter(total_amount__isnull=True) | queryset.filter(total_amount__lte=0)
        if value:
            return broken
        return queryset.exclude(pk__in=broken.values("pk"))
