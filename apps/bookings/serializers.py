"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.warehouses.models import Warehouse

from .models import Booking


class BookingCreateSerializer(serializers.Serializer):
    """Booking request from a farmer.

    Dates are passed through as text; the booking engine parses them and
    answers with its own validation errors.
    """

    warehouse = serializers.UUIDField()
    start_date = serializers.CharField()
    end_date = serializers.CharField()
    quantity = serializers.DecimalField(max_digits=12, decimal_places=2)
    unit = serializers.ChoiceField(choices=Warehouse.CapacityUnit.choices, required=False, allow_blank=True)
    produce_type = serializers.CharField(required=False, allow_blank=True, max_length=100)
    produce_description = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class AvailabilityQuerySerializer(serializers.Serializer):
    warehouse = serializers.UUIDField()
    start_date = serializers.CharField()
    end_date = serializers.CharField()
    quantity = serializers.DecimalField(max_digits=12, decimal_places=2)


class ConfirmPaymentSerializer(serializers.Serializer):
    order_id = serializers.CharField(max_length=100)
    payment_id = serializers.CharField(max_length=100)
    signature = serializers.CharField(max_length=256)


class DecisionSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class BookingSerializer(serializers.ModelSerializer):
    """Detailed booking representation."""

    renter_id = serializers.ReadOnlyField(source="renter.id")
    owner_id = serializers.ReadOnlyField(source="owner.id")
    warehouse_id = serializers.ReadOnlyField(source="warehouse.id")
    warehouse_name = serializers.ReadOnlyField(source="warehouse.name")

    class Meta:
        model = Booking
        fields = [
            "booking_id",
            "renter_id",
            "owner_id",
            "warehouse_id",
            "warehouse_name",
            "start_date",
            "end_date",
            "duration_units",
            "duration_unit",
            "quantity",
            "unit",
            "produce_type",
            "produce_description",
            "base_rate",
            "total_amount",
            "platform_fee",
            "owner_amount",
            "currency",
            "status",
            "payment_status",
            "provider_order_ref",
            "paid_at",
            "amount_due",
            "refunded_amount",
            "refunded_at",
            "approval_status",
            "approval_decided_at",
            "approval_reason",
            "approval_notes",
            "cancelled_at",
            "cancellation_reason",
            "refund_eligible",
            "refund_amount",
            "notes",
            "activated_at",
            "completed_at",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
