from django.contrib import admin  # type: ignore
from django.utils import timezone  # type: ignore

from .models import Warehouse


@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "owner",
        "city",
        "status",
        "verification_status",
        "is_available",
        "capacity_available",
        "capacity_total",
        "capacity_unit",
        "base_rate",
        "rate_unit",
    )
    list_filter = ("status", "verification_status", "is_available", "rate_unit", "capacity_unit")
    search_fields = ("name", "city", "state", "owner__email")
    readonly_fields = ("id", "verified_at", "created_at", "updated_at")
    actions = ("mark_verified", "hide_from_booking")

    @admin.action(description="Mark selected warehouses as verified")
    def mark_verified(self, request, queryset):
        queryset.update(
            verification_status=Warehouse.Verification.VERIFIED,
            verified_at=timezone.now(),
        )

    @admin.action(description="Hide selected warehouses from booking")
    def hide_from_booking(self, request, queryset):
        queryset.update(is_available=False)
