from django.contrib import admin

from .models import PricingModifier, RateChangeLog, RateConfig


class RateChangeLogInline(admin.TabularInline):
    model = RateChangeLog
    extra = 0
    can_delete = False
    readonly_fields = ("old_value", "new_value", "change_reason", "changed_by", "created_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(RateConfig)
class RateConfigAdmin(admin.ModelAdmin):
    list_display = ("config_key", "description", "updated_at", "updated_by")
    readonly_fields = ("config_value", "updated_at", "updated_by")
    inlines = [RateChangeLogInline]


@admin.register(PricingModifier)
class PricingModifierAdmin(admin.ModelAdmin):
    list_display = ("name", "modifier_type", "value_type", "value", "priority", "is_exclusive", "is_active")
    list_filter = ("modifier_type", "is_exclusive", "is_active")
    search_fields = ("name", "description")
