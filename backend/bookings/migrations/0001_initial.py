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
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("booking_number", models.CharField(max_length=20, unique=True)),
                ("customer_name", models.CharField(max_length=200)),
                ("customer_email", models.EmailField(max_length=254)),
                ("customer_phone", models.CharField(blank=True, max_length=40)),
                ("service_key", models.CharField(default="wine_tours", max_length=50)),
                ("tour_date", models.DateField()),
                ("start_time", models.TimeField(blank=True, null=True)),
                ("duration_hours", models.DecimalField(decimal_places=2, max_digits=5)),
                ("party_size", models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ("pickup_location", models.CharField(blank=True, max_length=255)),
                ("notes", models.TextField(blank=True)),
                ("hourly_rate", models.DecimalField(decimal_places=2, max_digits=8)),
                ("requested_hours", models.DecimalField(decimal_places=2, max_digits=5)),
                ("minimum_hours", models.DecimalField(decimal_places=2, max_digits=5)),
                ("billable_hours", models.DecimalField(decimal_places=2, max_digits=5)),
                ("minimum_applied", models.BooleanField(default=False)),
                ("rate_tier", models.CharField(max_length=50)),
                ("day_type", models.CharField(max_length=50)),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=10)),
                ("modifier_total", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("discount_percent", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5)),
                ("discount_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("tax_amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("total", models.DecimalField(decimal_places=2, max_digits=10)),
                ("deposit_amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("pricing_snapshot", models.JSONField(blank=True, default=dict)),
                ("priced_at", models.DateTimeField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("CONFIRMED", "Confirmed"),
                            ("CANCELLED", "Cancelled"),
                            ("COMPLETED", "Completed"),
                        ],
                        default="PENDING",
                        max_length=12,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("UNPAID", "Unpaid"),
                            ("DEPOSIT_PAID", "Deposit paid"),
                            ("PAID", "Paid"),
                            ("REFUNDED", "Refunded"),
                        ],
                        default="UNPAID",
                        max_length=12,
                    ),
                ),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancellation_reason", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "priced_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="priced_bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["tour_date", "start_time", "id"],
                "indexes": [models.Index(fields=["tour_date", "status"], name="bookings_date_status_idx")],
            },
        ),
    ]
