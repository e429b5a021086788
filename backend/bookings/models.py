from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from core.money import ZERO, format_hours


class Booking(models.Model):
    """Private tour reservation; pricing fields are a snapshot taken by the pricing engine."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    STATUSES = [
        (PENDING, "Pending"),
        (CONFIRMED, "Confirmed"),
        (CANCELLED, "Cancelled"),
        (COMPLETED, "Completed"),
    ]
    CLOSED_STATUSES = (CANCELLED, COMPLETED)

    UNPAID = "UNPAID"
    DEPOSIT_PAID = "DEPOSIT_PAID"
    PAID = "PAID"
    REFUNDED = "REFUNDED"
    PAYMENT_STATUSES = [
        (UNPAID, "Unpaid"),
        (DEPOSIT_PAID, "Deposit paid"),
        (PAID, "Paid"),
        (REFUNDED, "Refunded"),
    ]

    booking_number = models.CharField(max_length=20, unique=True)
    customer_name = models.CharField(max_length=200)
    customer_email = models.EmailField()
    customer_phone = models.CharField(max_length=40, blank=True)
    service_key = models.CharField(max_length=50, default="wine_tours")
    tour_date = models.DateField()
    start_time = models.TimeField(null=True, blank=True)
    duration_hours = models.DecimalField(max_digits=5, decimal_places=2)
    party_size = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    pickup_location = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)

    hourly_rate = models.DecimalField(max_digits=8, decimal_places=2)
    requested_hours = models.DecimalField(max_digits=5, decimal_places=2)
    minimum_hours = models.DecimalField(max_digits=5, decimal_places=2)
    billable_hours = models.DecimalField(max_digits=5, decimal_places=2)
    minimum_applied = models.BooleanField(default=False)
    rate_tier = models.CharField(max_length=50)
    day_type = models.CharField(max_length=50)
    subtotal = models.DecimalField(max_digits=10, decimal_places=2)
    modifier_total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    discount_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=10, decimal_places=2)
    total = models.DecimalField(max_digits=10, decimal_places=2)
    deposit_amount = models.DecimalField(max_digits=10, decimal_places=2)
    pricing_snapshot = models.JSONField(default=dict, blank=True)
    priced_at = models.DateTimeField(null=True, blank=True)
    priced_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="priced_bookings",
        null=True,
        blank=True,
    )

    status = models.CharField(max_length=12, choices=STATUSES, default=PENDING)
    payment_status = models.CharField(max_length=12, choices=PAYMENT_STATUSES, default=UNPAID)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["tour_date", "start_time", "id"]
        indexes = [
            models.Index(fields=["tour_date", "status"], name="bookings_date_status_idx"),
        ]

    def __str__(self):
        return f"{self.booking_number} ({self.customer_name})"

    @property
    def is_closed(self) -> bool:
        return self.status in self.CLOSED_STATUSES

    @property
    def hours_label(self) -> str:
        if self.minimum_applied:
            return f"{format_hours(self.requested_hours)}hr requested, {format_hours(self.minimum_hours)}hr min"
        return f"{format_hours(self.billable_hours)}hr"

    @property
    def balance_due(self) -> Decimal:
        if self.payment_status in (self.PAID, self.REFUNDED):
            return ZERO
        if self.payment_status == self.DEPOSIT_PAID:
            return self.total - self.deposit_amount
        return self.total
