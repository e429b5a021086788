from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class RateConfig(models.Model):
    """Versioned rate card or fee schedule, keyed by service category."""

    WINE_TOURS = "wine_tours"
    WAIT_TIME = "wait_time"
    TRANSFERS = "transfers"
    DEPOSITS_AND_FEES = "deposits_and_fees"
    # Keys that are not hourly rate cards.
    NON_HOURLY_KEYS = (TRANSFERS, DEPOSITS_AND_FEES)

    config_key = models.CharField(max_length=100, unique=True)
    config_value = models.JSONField()
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="rate_config_updates",
    )

    class Meta:
        ordering = ["config_key"]

    def __str__(self):
        return self.config_key


class RateChangeLog(models.Model):
    """Append-only audit trail of rate configuration changes."""

    rate_config = models.ForeignKey(
        RateConfig,
        on_delete=models.PROTECT,
        related_name="change_log",
    )
    config_key = models.CharField(max_length=100)
    old_value = models.JSONField(null=True, blank=True)
    new_value = models.JSONField()
    change_reason = models.TextField()
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="rate_changes",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.config_key} changed {self.created_at:%Y-%m-%d %H:%M}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("Rate change log entries are append-only.")
        return super().save(*args, **kwargs)


class PricingModifier(models.Model):
    """Conditional discount or surcharge applied on top of a base price."""

    DISCOUNT = "DISCOUNT"
    SURCHARGE = "SURCHARGE"
    MODIFIER_TYPES = [
        (DISCOUNT, "Discount"),
        (SURCHARGE, "Surcharge"),
    ]

    PERCENTAGE = "PERCENTAGE"
    FLAT = "FLAT"
    VALUE_TYPES = [
        (PERCENTAGE, "Percentage"),
        (FLAT, "Flat amount"),
    ]

    name = models.CharField(max_length=120)
    description = models.TextField(blank=True)
    modifier_type = models.CharField(max_length=12, choices=MODIFIER_TYPES)
    value_type = models.CharField(max_length=12, choices=VALUE_TYPES, default=PERCENTAGE)
    value = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    priority = models.IntegerField(default=0)
    is_exclusive = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    service_keys = models.JSONField(default=list, blank=True)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    min_advance_days = models.PositiveIntegerField(null=True, blank=True)
    max_advance_days = models.PositiveIntegerField(null=True, blank=True)
    min_party_size = models.PositiveIntegerField(null=True, blank=True)
    max_party_size = models.PositiveIntegerField(null=True, blank=True)
    weekdays = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-priority", "name", "id"]

    def __str__(self):
        return self.name

    @property
    def is_discount(self) -> bool:
        return self.modifier_type == self.DISCOUNT
