from datetime import datetime, timedelta
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class SharedTour(models.Model):
    """A scheduled group tour sold as individual tickets up to a fixed capacity."""

    OPEN = "OPEN"
    FULL = "FULL"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    STATUSES = [
        (OPEN, "Open"),
        (FULL, "Full"),
        (CONFIRMED, "Confirmed"),
        (CANCELLED, "Cancelled"),
        (COMPLETED, "Completed"),
    ]
    CLOSED_STATUSES = (CANCELLED, COMPLETED)

    title = models.CharField(max_length=200, default="Shared Wine Tour")
    description = models.TextField(blank=True)
    tour_date = models.DateField()
    start_time = models.TimeField()
    duration_hours = models.DecimalField(max_digits=4, decimal_places=2, default=Decimal("6"))
    max_guests = models.PositiveIntegerField(default=14, validators=[MinValueValidator(1)])
    min_guests = models.PositiveIntegerField(default=2, validators=[MinValueValidator(1)])
    base_price_per_person = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal("95.00"))
    lunch_price_per_person = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal("115.00"))
    lunch_included_default = models.BooleanField(default=True)
    meeting_location = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=12, choices=STATUSES, default=OPEN)
    is_published = models.BooleanField(default=True)
    booking_cutoff_hours = models.PositiveIntegerField(default=48)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["tour_date", "start_time", "id"]

    def __str__(self):
        return f"{self.title} on {self.tour_date:%Y-%m-%d}"

    @property
    def starts_at(self) -> datetime:
        return timezone.make_aware(datetime.combine(self.tour_date, self.start_time))

    @property
    def booking_closes_at(self) -> datetime:
        return self.starts_at - timedelta(hours=self.booking_cutoff_hours)

    @property
    def is_closed(self) -> bool:
        return self.status in self.CLOSED_STATUSES

    def clean(self):
        super().clean()
        if self.min_guests and self.max_guests and self.min_guests > self.max_guests:
            raise ValidationError({"min_guests": "Minimum guests cannot exceed capacity."})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


class SharedTourTicket(models.Model):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    ATTENDED = "ATTENDED"
    NO_SHOW = "NO_SHOW"
    STATUSES = [
        (CONFIRMED, "Confirmed"),
        (CANCELLED, "Cancelled"),
        (EXPIRED, "Expired"),
        (ATTENDED, "Attended"),
        (NO_SHOW, "No show"),
    ]
    INACTIVE_STATUSES = (CANCELLED, EXPIRED)

    PENDING = "PENDING"
    PAID = "PAID"
    REFUNDED = "REFUNDED"
    PAYMENT_STATUSES = [
        (PENDING, "Pending"),
        (PAID, "Paid"),
        (REFUNDED, "Refunded"),
    ]

    tour = models.ForeignKey(SharedTour, on_delete=models.PROTECT, related_name="tickets")
    ticket_number = models.CharField(max_length=20, unique=True)
    ticket_count = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    customer_name = models.CharField(max_length=200)
    customer_email = models.EmailField()
    customer_phone = models.CharField(max_length=40, blank=True)
    guest_names = models.JSONField(default=list, blank=True)
    includes_lunch = models.BooleanField(default=True)
    dietary_restrictions = models.TextField(blank=True)
    special_requests = models.TextField(blank=True)
    price_per_person = models.DecimalField(max_digits=8, decimal_places=2)
    subtotal = models.DecimalField(max_digits=10, decimal_places=2)
    tax_amount = models.DecimalField(max_digits=10, decimal_places=2)
    total_amount = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=12, choices=STATUSES, default=CONFIRMED)
    payment_status = models.CharField(max_length=12, choices=PAYMENT_STATUSES, default=PENDING)
    hold_expires_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True)
    refund_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    check_in_at = models.DateTimeField(null=True, blank=True)
    stripe_payment_intent_id = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["tour", "status"], name="tours_ticket_tour_status_idx"),
            models.Index(fields=["stripe_payment_intent_id"], name="tours_ticket_intent_idx"),
        ]

    def __str__(self):
        return f"{self.ticket_number} ({self.ticket_count})"

    def hold_has_expired(self, now=None) -> bool:
        if self.payment_status != self.PENDING or self.hold_expires_at is None:
            return False
        return self.hold_expires_at <= (now or timezone.now())
