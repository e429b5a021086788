from django.db import models


class Payment(models.Model):
    DEPOSIT = "DEPOSIT"
    FULL = "FULL"
    KINDS = [
        (DEPOSIT, "Deposit"),
        (FULL, "Full payment"),
    ]

    REQUIRES_PAYMENT = "requires_payment_method"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.CASCADE,
        related_name="payments",
        null=True,
        blank=True,
    )
    ticket = models.ForeignKey(
        "tours.SharedTourTicket",
        on_delete=models.CASCADE,
        related_name="payments",
        null=True,
        blank=True,
    )
    kind = models.CharField(max_length=10, choices=KINDS, default=FULL)
    amount_cents = models.PositiveIntegerField()
    currency = models.CharField(max_length=10, default="usd")
    stripe_payment_intent = models.CharField(max_length=200, db_index=True)
    status = models.CharField(max_length=30, default=REQUIRES_PAYMENT)
    failure_message = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.stripe_payment_intent} ({self.status})"
