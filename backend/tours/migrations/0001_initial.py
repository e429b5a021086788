from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="SharedTour",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(default="Shared Wine Tour", max_length=200)),
                ("description", models.TextField(blank=True)),
                ("tour_date", models.DateField()),
                ("start_time", models.TimeField()),
                ("duration_hours", models.DecimalField(decimal_places=2, default=Decimal("6"), max_digits=4)),
                ("max_guests", models.PositiveIntegerField(default=14, validators=[django.core.validators.MinValueValidator(1)])),
                ("min_guests", models.PositiveIntegerField(default=2, validators=[django.core.validators.MinValueValidator(1)])),
                ("base_price_per_person", models.DecimalField(decimal_places=2, default=Decimal("95.00"), max_digits=8)),
                ("lunch_price_per_person", models.DecimalField(decimal_places=2, default=Decimal("115.00"), max_digits=8)),
                ("lunch_included_default", models.BooleanField(default=True)),
                ("meeting_location", models.CharField(blank=True, max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("OPEN", "Open"),
                            ("FULL", "Full"),
                            ("CONFIRMED", "Confirmed"),
                            ("CANCELLED", "Cancelled"),
                            ("COMPLETED", "Completed"),
                        ],
                        default="OPEN",
                        max_length=12,
                    ),
                ),
                ("is_published", models.BooleanField(default=True)),
                ("booking_cutoff_hours", models.PositiveIntegerField(default=48)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"ordering": ["tour_date", "start_time", "id"]},
        ),
        migrations.CreateModel(
            name="SharedTourTicket",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("ticket_number", models.CharField(max_length=20, unique=True)),
                ("ticket_count", models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ("customer_name", models.CharField(max_length=200)),
                ("customer_email", models.EmailField(max_length=254)),
                ("customer_phone", models.CharField(blank=True, max_length=40)),
                ("guest_names", models.JSONField(blank=True, default=list)),
                ("includes_lunch", models.BooleanField(default=True)),
                ("dietary_restrictions", models.TextField(blank=True)),
                ("special_requests", models.TextField(blank=True)),
                ("price_per_person", models.DecimalField(decimal_places=2, max_digits=8)),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=10)),
                ("tax_amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("CONFIRMED", "Confirmed"),
                            ("CANCELLED", "Cancelled"),
                            ("EXPIRED", "Expired"),
                            ("ATTENDED", "Attended"),
                            ("NO_SHOW", "No show"),
                        ],
                        default="CONFIRMED",
                        max_length=12,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[("PENDING", "Pending"), ("PAID", "Paid"), ("REFUNDED", "Refunded")],
                        default="PENDING",
                        max_length=12,
                    ),
                ),
                ("hold_expires_at", models.DateTimeField(blank=True, null=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancellation_reason", models.TextField(blank=True)),
                ("refund_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("check_in_at", models.DateTimeField(blank=True, null=True)),
                ("stripe_payment_intent_id", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "tour",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tickets",
                        to="tours.sharedtour",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["tour", "status"], name="tours_ticket_tour_status_idx"),
                    models.Index(fields=["stripe_payment_intent_id"], name="tours_ticket_intent_idx"),
                ],
            },
        ),
    ]
