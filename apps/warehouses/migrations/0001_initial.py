import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Warehouse",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("address", models.CharField(blank=True, max_length=255)),
                ("city", models.CharField(blank=True, max_length=100)),
                ("state", models.CharField(blank=True, max_length=100)),
                (
                    "storage_types",
                    models.JSONField(blank=True, default=list, help_text="Storage kinds on offer, e.g. dry, cold, grain."),
                ),
                ("capacity_total", models.DecimalField(decimal_places=2, max_digits=12)),
                ("capacity_available", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "capacity_unit",
                    models.CharField(
                        choices=[
                            ("kg", "Kilograms"),
                            ("tons", "Tons"),
                            ("quintals", "Quintals"),
                            ("bags", "Bags"),
                            ("sqft", "Square feet"),
                            ("cubic_meters", "Cubic meters"),
                        ],
                        default="kg",
                        max_length=20,
                    ),
                ),
                (
                    "base_rate",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Price for one rate unit, before the platform fee is split off.",
                        max_digits=10,
                    ),
                ),
                (
                    "rate_unit",
                    models.CharField(
                        choices=[
                            ("per_day", "Per day"),
                            ("per_week", "Per week"),
                            ("per_month", "Per month"),
                            ("per_kg", "Per kg per day"),
                            ("per_ton", "Per ton per day"),
                            ("per_quintal", "Per quintal per day"),
                            ("per_bag", "Per bag per day"),
                            ("per_sqft", "Per sq. ft per day"),
                            ("per_cubic_meter", "Per cubic meter per day"),
                        ],
                        default="per_day",
                        max_length=20,
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        choices=[("INR", "INR"), ("USD", "USD"), ("EUR", "EUR")],
                        default="INR",
                        max_length=3,
                    ),
                ),
                (
                    "fee_rate",
                    models.DecimalField(
                        decimal_places=4,
                        blank=True,
                        help_text="Platform share of each booking total, as a fraction. Empty means the platform default.",
                        max_digits=5,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0")),
                            django.core.validators.MaxValueValidator(Decimal("0.9999")),
                        ],
                    ),
                ),
                (
                    "minimum_booking_duration",
                    models.PositiveIntegerField(default=1, help_text="Shortest booking, in rate periods."),
                ),
                (
                    "maximum_booking_duration",
                    models.PositiveIntegerField(default=365, help_text="Longest booking, in rate periods."),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("active", "Active"),
                            ("inactive", "Inactive"),
                            ("maintenance", "Under maintenance"),
                            ("suspended", "Suspended"),
                        ],
                        default="draft",
                        max_length=20,
                    ),
                ),
                (
                    "verification_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending verification"),
                            ("verified", "Verified"),
                            ("rejected", "Rejected"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("verified_at", models.DateTimeField(blank=True, null=True)),
                (
                    "is_available",
                    models.BooleanField(
                        default=True,
                        help_text="Cleared by administrators to hide a warehouse from booking.",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="warehouses",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Warehouse",
                "verbose_name_plural": "Warehouses",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "verification_status"], name="warehouses__status_6a1f0c_idx"),
                    models.Index(fields=["owner"], name="warehouses__owner_i_3b9d2e_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("capacity_available__lte", models.F("capacity_total"))),
                        name="warehouse_available_within_total",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("capacity_available__gte", 0)),
                        name="warehouse_available_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("maximum_booking_duration__gte", models.F("minimum_booking_duration"))),
                        name="warehouse_valid_duration_terms",
                    ),
                ],
            },
        ),
    ]
