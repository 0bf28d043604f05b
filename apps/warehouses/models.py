"""Warehouse models for AgriStore."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MaxValueValidator, MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.warehouses.domain.entities import (
    Capacity,
    RateCard,
    RateUnit,
    VerificationStatus,
    WarehouseSnapshot,
    WarehouseStatus,
)


class Warehouse(models.Model):
    """Storage facility listed by a warehouse owner."""

    class Status(models.TextChoices):
        DRAFT = "draft", _("Draft")
        ACTIVE = "active", _("Active")
        INACTIVE = "inactive", _("Inactive")
        MAINTENANCE = "maintenance", _("Under maintenance")
        SUSPENDED = "suspended", _("Suspended")

    class Verification(models.TextChoices):
        PENDING = "pending", _("Pending verification")
        VERIFIED = "verified", _("Verified")
        REJECTED = "rejected", _("Rejected")

    class RateUnitChoices(models.TextChoices):
        PER_DAY = "per_day", _("Per day")
        PER_WEEK = "per_week", _("Per week")
        PER_MONTH = "per_month", _("Per month")
        PER_KG = "per_kg", _("Per kg per day")
        PER_TON = "per_ton", _("Per ton per day")
        PER_QUINTAL = "per_quintal", _("Per quintal per day")
        PER_BAG = "per_bag", _("Per bag per day")
        PER_SQFT = "per_sqft", _("Per sq. ft per day")
        PER_CUBIC_METER = "per_cubic_meter", _("Per cubic meter per day")

    class CapacityUnit(models.TextChoices):
        KG = "kg", _("Kilograms")
        TONS = "tons", _("Tons")
        QUINTALS = "quintals", _("Quintals")
        BAGS = "bags", _("Bags")
        SQFT = "sqft", _("Square feet")
        CUBIC_METERS = "cubic_meters", _("Cubic meters")

    class Currency(models.TextChoices):
        INR = "INR", "INR"
        USD = "USD", "USD"
        EUR = "EUR", "EUR"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="warehouses",
    )
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    storage_types = models.JSONField(
        default=list,
        blank=True,
        help_text=_("Storage kinds on offer, e.g. dry, cold, grain."),
    )

    capacity_total = models.DecimalField(max_digits=12, decimal_places=2)
    capacity_available = models.DecimalField(max_digits=12, decimal_places=2)
    capacity_unit = models.CharField(
        max_length=20,
        choices=CapacityUnit.choices,
        default=CapacityUnit.KG,
    )

    base_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text=_("Price for one rate unit, before the platform fee is split off."),
    )
    rate_unit = models.CharField(
        max_length=20,
        choices=RateUnitChoices.choices,
        default=RateUnitChoices.PER_DAY,
    )
    currency = models.CharField(max_length=3, choices=Currency.choices, default=Currency.INR)
    fee_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("0.9999"))],
        help_text=_("Platform share of each booking total, as a fraction. Empty means the platform default."),
    )

    minimum_booking_duration = models.PositiveIntegerField(
        default=1,
        help_text=_("Shortest booking, in rate periods."),
    )
    maximum_booking_duration = models.PositiveIntegerField(
        default=365,
        help_text=_("Longest booking, in rate periods."),
    )

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    verification_status = models.CharField(
        max_length=20,
        choices=Verification.choices,
        default=Verification.PENDING,
    )
    verified_at = models.DateTimeField(null=True, blank=True)
    is_available = models.BooleanField(
        default=True,
        help_text=_("Cleared by administrators to hide a warehouse from booking."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Warehouse")
        verbose_name_plural = _("Warehouses")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(capacity_available__lte=models.F("capacity_total")),
                name="warehouse_available_within_total",
            ),
            models.CheckConstraint(
                condition=models.Q(capacity_available__gte=0),
                name="warehouse_available_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(maximum_booking_duration__gte=models.F("minimum_booking_duration")),
                name="warehouse_valid_duration_terms",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "verification_status"], name="warehouses__status_6a1f0c_idx"),
            models.Index(fields=["owner"], name="warehouses__owner_i_3b9d2e_idx"),
        ]

    def __str__(self) -> str:
        return self.name

    @property
    def rate_card(self) -> RateCard:
        return RateCard(
            base_rate=self.base_rate,
            rate_unit=RateUnit(self.rate_unit),
            currency=self.currency,
            fee_rate=self.fee_rate if self.fee_rate is not None else Decimal(str(settings.PLATFORM_FEE_RATE)),
        )

    def to_snapshot(self) -> WarehouseSnapshot:
        return WarehouseSnapshot(
            id=self.id,
            owner_id=self.owner_id,
            name=self.name,
            rate_card=self.rate_card,
            capacity=Capacity(
                total=self.capacity_total,
                available=self.capacity_available,
                unit=self.capacity_unit,
            ),
            minimum_booking_duration=self.minimum_booking_duration,
            maximum_booking_duration=self.maximum_booking_duration,
            status=WarehouseStatus(self.status),
            verification_status=VerificationStatus(self.verification_status),
            is_available=self.is_available,
        )
