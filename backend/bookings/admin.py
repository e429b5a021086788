from django.contrib import admin

from payments.models import Payment

from .models import Booking


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    fields = ("kind", "amount_cents", "currency", "stripe_payment_intent", "status", "created_at")
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("booking_number", "customer_name", "tour_date", "party_size", "total", "status", "payment_status")
    list_filter = ("status", "payment_status", "service_key")
    search_fields = ("booking_number", "customer_name", "customer_email")
    date_hierarchy = "tour_date"
    readonly_fields = (
        "booking_number",
        "hourly_rate",
        "requested_hours",
        "minimum_hours",
        "billable_hours",
        "minimum_applied",
        "rate_tier",
        "day_type",
        "subtotal",
        "modifier_total",
        "discount_percent",
        "discount_amount",
        "tax_amount",
        "total",
        "deposit_amount",
        "pricing_snapshot",
        "priced_at",
        "priced_by",
        "created_at",
        "updated_at",
    )
    inlines = [PaymentInline]
