from rest_framework import serializers

from .availability import active_ticket_count
from .models import SharedTour, SharedTourTicket


class SharedTourSerializer(serializers.ModelSerializer):
    tickets_sold = serializers.SerializerMethodField()
    spots_remaining = serializers.SerializerMethodField()
    booking_closes_at = serializers.DateTimeField(read_only=True)

    class Meta:
        model = SharedTour
        fields = [
            "id",
            "title",
            "description",
            "tour_date",
            "start_time",
            "duration_hours",
            "max_guests",
            "min_guests",
            "base_price_per_person",
            "lunch_price_per_person",
            "lunch_included_default",
            "meeting_location",
            "status",
            "booking_cutoff_hours",
            "booking_closes_at",
            "tickets_sold",
            "spots_remaining",
        ]
        read_only_fields = fields

    def _sold(self, obj: SharedTour) -> int:
        cache = self.context.setdefault("_tickets_sold", {})
        if obj.pk not in cache:
            cache[obj.pk] = active_ticket_count(obj)
        return cache[obj.pk]

    def get_tickets_sold(self, obj: SharedTour) -> int:
        return self._sold(obj)

    def get_spots_remaining(self, obj: SharedTour) -> int:
        return max(obj.max_guests - self._sold(obj), 0)


class SharedTourAdminSerializer(SharedTourSerializer):
    class Meta(SharedTourSerializer.Meta):
        fields = SharedTourSerializer.Meta.fields + ["is_published", "created_at", "updated_at"]
        read_only_fields = [
            "id",
            "status",
            "booking_closes_at",
            "tickets_sold",
            "spots_remaining",
            "created_at",
            "updated_at",
        ]

    def validate(self, attrs):
        instance = self.instance

        def current(name):
            if name in attrs:
                return attrs[name]
            return getattr(instance, name, None)

        max_guests = current("max_guests")
        min_guests = current("min_guests")
        if max_guests is not None and min_guests is not None and min_guests > max_guests:
            raise serializers.ValidationError({"min_guests": "Minimum guests cannot exceed capacity."})

        if instance is not None and max_guests is not None:
            sold = active_ticket_count(instance)
            if max_guests < sold:
                raise serializers.ValidationError(
                    {"max_guests": f"Capacity cannot drop below the {sold} seats already sold."}
                )

        duration = current("duration_hours")
        if duration is not None and duration <= 0:
            raise serializers.ValidationError({"duration_hours": "Duration must be greater than zero."})
        for name in ("base_price_per_person", "lunch_price_per_person"):
            value = current(name)
            if value is not None and value < 0:
                raise serializers.ValidationError({name: "Price cannot be negative."})
        return attrs


class TicketPurchaseSerializer(serializers.Serializer):
    ticket_count = serializers.IntegerField(min_value=1)
    customer_name = serializers.CharField(max_length=200)
    customer_email = serializers.EmailField()
    customer_phone = serializers.CharField(max_length=40, required=False, allow_blank=True, default="")
    guest_names = serializers.ListField(
        child=serializers.CharField(max_length=200), required=False, default=list
    )
    includes_lunch = serializers.BooleanField(required=False, allow_null=True, default=None)
    dietary_restrictions = serializers.CharField(required=False, allow_blank=True, default="")
    special_requests = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if len(attrs["guest_names"]) > attrs["ticket_count"]:
            raise serializers.ValidationError({"guest_names": "More guest names than tickets."})
        return attrs


class SharedTourTicketSerializer(serializers.ModelSerializer):
    tour_title = serializers.CharField(source="tour.title", read_only=True)
    tour_date = serializers.DateField(source="tour.tour_date", read_only=True)

    class Meta:
        model = SharedTourTicket
        fields = [
            "id",
            "ticket_number",
            "tour",
            "tour_title",
            "tour_date",
            "ticket_count",
            "customer_name",
            "customer_email",
            "customer_phone",
            "guest_names",
            "includes_lunch",
            "dietary_restrictions",
            "special_requests",
            "price_per_person",
            "subtotal",
            "tax_amount",
            "total_amount",
            "status",
            "payment_status",
            "hold_expires_at",
            "paid_at",
            "cancelled_at",
            "cancellation_reason",
            "refund_amount",
            "check_in_at",
            "created_at",
        ]
        read_only_fields = fields


class TicketCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    refund_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, allow_null=True, default=None
    )


class TicketMarkPaidSerializer(serializers.Serializer):
    payment_intent_id = serializers.CharField(required=False, allow_blank=True, default="")


class TourCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
