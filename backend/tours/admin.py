from django.contrib import admin

from .models import SharedTour, SharedTourTicket


class SharedTourTicketInline(admin.TabularInline):
    model = SharedTourTicket
    extra = 0
    fields = ("ticket_number", "customer_name", "ticket_count", "status", "payment_status", "total_amount")
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(SharedTour)
class SharedTourAdmin(admin.ModelAdmin):
    list_display = ("title", "tour_date", "start_time", "max_guests", "status", "is_published")
    list_filter = ("status", "is_published")
    date_hierarchy = "tour_date"
    readonly_fields = ("status", "created_at", "updated_at")
    inlines = [SharedTourTicketInline]


@admin.register(SharedTourTicket)
class SharedTourTicketAdmin(admin.ModelAdmin):
    list_display = ("ticket_number", "tour", "customer_name", "ticket_count", "status", "payment_status")
    list_filter = ("status", "payment_status")
    search_fields = ("ticket_number", "customer_name", "customer_email")
    readonly_fields = ("ticket_number", "subtotal", "tax_amount", "total_amount", "created_at", "updated_at")
