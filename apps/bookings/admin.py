"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin, messages

from shared.application.message_bus import message_bus
from shared.domain.exceptions import DomainError

from apps.bookings.application.command_handlers import RetryRefundCommand
from apps.bookings.application.reconciliation import ReconcileBookingCommand

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "booking_id",
        "warehouse",
        "renter",
        "status",
        "payment_status",
        "start_date",
        "end_date",
        "total_amount",
        "created_at",
    )
    list_filter = ("status", "payment_status", "approval_status", "start_date")
    search_fields = ("booking_id", "warehouse__name", "renter__email", "owner__email")
    readonly_fields = (
        "booking_id",
        "version",
        "created_at",
        "updated_at",
        "base_rate",
        "total_amount",
        "platform_fee",
        "owner_amount",
        "amount_due",
        "provider_order_ref",
        "provider_payment_ref",
        "provider_refund_ref",
    )
    actions = ["reconcile_selected", "retry_refunds"]

    def _dispatch(self, request, queryset, build_command, label):
        done = 0
        for booking_id in queryset.values_list("booking_id", flat=True):
            try:
                message_bus.handle_command(build_command(booking_id))
            except DomainError as e:
                self.message_user(request, f"{booking_id}: {e.message}", level=messages.ERROR)
                continue
            done += 1
        self.message_user(request, f"{label}: {done} booking(s)")

    @admin.action(description="Reconcile pricing of selected bookings")
    def reconcile_selected(self, request, queryset):
        self._dispatch(
            request,
            queryset,
            lambda booking_id: ReconcileBookingCommand(booking_id=booking_id),
            "Reconciled",
        )

    @admin.action(description="Retry outstanding refunds")
    def retry_refunds(self, request, queryset):
        self._dispatch(
            request,
            queryset,
            lambda booking_id: RetryRefundCommand(booking_id=booking_id),
            "Refund retried",
        )
