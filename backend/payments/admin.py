from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("stripe_payment_intent", "kind", "amount_cents", "currency", "status", "booking", "ticket", "created_at")
    list_filter = ("status", "kind")
    search_fields = ("stripe_payment_intent", "booking__booking_number", "ticket__ticket_number")
    readonly_fields = ("created_at", "updated_at")
