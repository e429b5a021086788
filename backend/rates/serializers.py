from rest_framework import serializers

from .config import WEEKDAY_NAMES
from .models import PricingModifier, RateChangeLog, RateConfig


class PriceCalculationSerializer(serializers.Serializer):
    service_key = serializers.CharField(max_length=100, default=RateConfig.WINE_TOURS)
    date = serializers.DateField()
    duration_hours = serializers.DecimalField(max_digits=5, decimal_places=2)
    party_size = serializers.IntegerField()
    custom_discount = serializers.DecimalField(
        max_digits=5, decimal_places=2, required=False, allow_null=True
    )

    def validate_service_key(self, value):
        if value in RateConfig.NON_HOURLY_KEYS:
            raise serializers.ValidationError("Not an hourly service.")
        return value


class TransferPriceSerializer(serializers.Serializer):
    route = serializers.CharField(max_length=100)
    date = serializers.DateField()
    party_size = serializers.IntegerField()
    miles = serializers.DecimalField(max_digits=6, decimal_places=1, required=False, allow_null=True)
    custom_discount = serializers.DecimalField(
        max_digits=5, decimal_places=2, required=False, allow_null=True
    )


class RateConfigSerializer(serializers.ModelSerializer):
    updated_by_email = serializers.EmailField(source="updated_by.email", read_only=True, default=None)

    class Meta:
        model = RateConfig
        fields = [
            "config_key",
            "config_value",
            "description",
            "updated_at",
            "updated_by_email",
        ]
        read_only_fields = fields


class RateConfigUpdateSerializer(serializers.Serializer):
    config_value = serializers.JSONField()
    change_reason = serializers.CharField(allow_blank=True, required=False, default="")


class RateChangeLogSerializer(serializers.ModelSerializer):
    changed_by_email = serializers.EmailField(source="changed_by.email", read_only=True, default=None)

    class Meta:
        model = RateChangeLog
        fields = [
            "id",
            "config_key",
            "old_value",
            "new_value",
            "change_reason",
            "changed_by_email",
            "created_at",
        ]
        read_only_fields = fields


class PricingModifierSerializer(serializers.ModelSerializer):
    class Meta:
        model = PricingModifier
        fields = [
            "id",
            "name",
            "description",
            "modifier_type",
            "value_type",
            "value",
            "priority",
            "is_exclusive",
            "is_active",
            "service_keys",
            "start_date",
            "end_date",
            "min_advance_days",
            "max_advance_days",
            "min_party_size",
            "max_party_size",
            "weekdays",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_weekdays(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError("Weekdays must be a list of day names.")
        normalized = []
        for name in value:
            if not isinstance(name, str) or name.lower() not in WEEKDAY_NAMES:
                raise serializers.ValidationError(f"Unknown weekday: {name}.")
            normalized.append(name.lower())
        return normalized

    def validate_service_keys(self, value):
        if not isinstance(value, list) or not all(isinstance(key, str) for key in value):
            raise serializers.ValidationError("Service keys must be a list of strings.")
        return value

    def validate(self, attrs):
        instance = self.instance

        def current(name):
            if name in attrs:
                return attrs[name]
            return getattr(instance, name, None)

        pairs = [
            ("start_date", "end_date"),
            ("min_advance_days", "max_advance_days"),
            ("min_party_size", "max_party_size"),
        ]
        for low_name, high_name in pairs:
            low, high = current(low_name), current(high_name)
            if low is not None and high is not None and low > high:
                raise serializers.ValidationError({high_name: f"Must not be before {low_name}."})

        value_type = current("value_type")
        value = current("value")
        if value_type == PricingModifier.PERCENTAGE and value is not None and value > 100:
            raise serializers.ValidationError({"value": "Percentage modifiers cannot exceed 100."})
        return attrs
