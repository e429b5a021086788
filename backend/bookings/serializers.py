from rest_framework import serializers

from rates.models import RateConfig

from .models import Booking


def _hourly_service(value):
    if value in RateConfig.NON_HOURLY_KEYS:
        raise serializers.ValidationError("Not an hourly service.")
    return value


class BookingCreateSerializer(serializers.Serializer):
    customer_name = serializers.CharField(max_length=200)
    customer_email = serializers.EmailField()
    customer_phone = serializers.CharField(max_length=40, required=False, allow_blank=True, default="")
    service_key = serializers.CharField(max_length=50, default=RateConfig.WINE_TOURS)
    tour_date = serializers.DateField()
    start_time = serializers.TimeField(required=False, allow_null=True, default=None)
    duration_hours = serializers.DecimalField(max_digits=5, decimal_places=2)
    party_size = serializers.IntegerField()
    pickup_location = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_service_key(self, value):
        return _hourly_service(value)


class BookingRecalculateSerializer(serializers.Serializer):
    service_key = serializers.CharField(max_length=50, required=False)
    tour_date = serializers.DateField(required=False)
    duration_hours = serializers.DecimalField(max_digits=5, decimal_places=2, required=False)
    party_size = serializers.IntegerField(required=False)
    custom_discount = serializers.DecimalField(max_digits=5, decimal_places=2, required=False)

    def validate_service_key(self, value):
        return _hourly_service(value)


class BookingCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class BookingSerializer(serializers.ModelSerializer):
    hours_label = serializers.CharField(read_only=True)
    balance_due = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    priced_by_email = serializers.EmailField(source="priced_by.email", read_only=True, default=None)

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_number",
            "customer_name",
            "customer_email",
            "customer_phone",
            "service_key",
            "tour_date",
            "start_time",
            "duration_hours",
            "party_size",
            "pickup_location",
            "notes",
            "hourly_rate",
            "requested_hours",
            "minimum_hours",
            "billable_hours",
            "minimum_applied",
            "hours_label",
            "rate_tier",
            "day_type",
            "subtotal",
            "modifier_total",
            "discount_percent",
            "discount_amount",
            "tax_amount",
            "total",
            "deposit_amount",
            "balance_due",
            "status",
            "payment_status",
            "priced_at",
            "priced_by_email",
            "confirmed_at",
            "cancelled_at",
            "cancellation_reason",
            "created_at",
        ]
        read_only_fields = fields


class BookingDetailSerializer(BookingSerializer):
    class Meta(BookingSerializer.Meta):
        fields = BookingSerializer.Meta.fields + ["pricing_snapshot"]
        read_only_fields = fields
