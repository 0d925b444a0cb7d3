from django.contrib import admin, messages

from pricing.models import ChargeRule, ExchangeRate, MarginRule, VendorRateHeader, VendorRateLine
from pricing.services.vendor_rates import validate_rate_header


@admin.register(ChargeRule)
class ChargeRuleAdmin(admin.ModelAdmin):
    list_display = ("id", "mode", "movement", "terms", "charge", "is_active")
    list_filter = ("mode", "movement", "terms", "is_active")
    search_fields = ("charge__charge_code", "charge__charge_name")


class VendorRateLineInline(admin.TabularInline):
    model = VendorRateLine
    extra = 0
    fields = ("sequence", "charge", "uom", "currency_code", "slab_min", "slab_max", "cost_rate", "is_fixed_rate", "is_active")


@admin.register(VendorRateHeader)
class VendorRateHeaderAdmin(admin.ModelAdmin):
    list_display = ("id", "vendor", "mode", "movement", "origin", "destination", "terms", "valid_from", "valid_upto", "is_active")
    list_filter = ("mode", "movement", "is_active", "vendor")
    search_fields = ("vendor__name", "vendor__code")
    inlines = [VendorRateLineInline]
    actions = ["validate_slabs"]

    def validate_slabs(self, request, queryset):
        any_warn = False
        for header in queryset:
            for warning in validate_rate_header(header):
                any_warn = True
                messages.warning(request, f"Tariff {header.id}: {warning}")
        if not any_warn:
            messages.info(request, "Selected tariffs have consistent slabs.")

    validate_slabs.short_description = "Validate slab ranges"


@admin.register(MarginRule)
class MarginRuleAdmin(admin.ModelAdmin):
    list_display = ("id", "precedence", "charge", "customer", "margin_percentage", "margin_fixed", "is_active", "description")
    list_filter = ("is_active", "precedence")
    search_fields = ("description", "charge__charge_code", "customer__name")


@admin.register(ExchangeRate)
class ExchangeRateAdmin(admin.ModelAdmin):
    list_display = ("id", "from_currency", "to_currency", "rate", "inverse_rate", "effective_date", "expiry_date", "status", "source")
    list_filter = ("from_currency", "to_currency", "status", "source")
    readonly_fields = ("inverse_rate", "created_at")
    date_hierarchy = "effective_date"
