from django.contrib import admin

from .models import Charge, Currency, Location, Supplier, TaxCode, UnitOfMeasure


@admin.register(Currency)
class CurrencyAdmin(admin.ModelAdmin):
    list_display = ("id", "code", "name", "is_active")
    list_filter = ("is_active",)
    search_fields = ("code", "name")


@admin.register(UnitOfMeasure)
class UnitOfMeasureAdmin(admin.ModelAdmin):
    list_display = ("id", "code", "name", "category")
    list_filter = ("category",)


@admin.register(TaxCode)
class TaxCodeAdmin(admin.ModelAdmin):
    list_display = ("id", "tax_code", "tax_name", "rate", "is_active")
    list_filter = ("is_active",)


@admin.register(Charge)
class ChargeAdmin(admin.ModelAdmin):
    list_display = ("id", "charge_code", "charge_name", "default_uom", "default_tax", "charge_type", "is_active")
    list_filter = ("charge_type", "is_active", "default_uom")
    search_fields = ("charge_code", "charge_name")


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ("id", "code", "name", "country_code", "location_type")
    list_filter = ("location_type", "country_code")
    search_fields = ("code", "name")


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ("id", "code", "name", "is_active")
    list_filter = ("is_active",)
    search_fields = ("code", "name")
