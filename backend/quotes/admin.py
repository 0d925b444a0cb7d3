from django.contrib import admin

from .models import QuotationApproval, QuotationCostLine, QuotationDimension, QuotationHeader, QuotationSaleLine


class QuotationDimensionInline(admin.TabularInline):
    model = QuotationDimension
    extra = 0
    readonly_fields = ("cbm_per_piece", "total_cbm", "total_weight", "volumetric_weight")


class QuotationCostLineInline(admin.TabularInline):
    model = QuotationCostLine
    extra = 0
    can_delete = False
    fields = ("charge", "quantity", "selected_vendor", "unit_cost_rate", "unit_cost_currency",
              "cost_exchange_rate", "total_cost_inr", "is_costed", "costing_note")
    readonly_fields = fields


class QuotationSaleLineInline(admin.TabularInline):
    model = QuotationSaleLine
    extra = 0
    can_delete = False
    fields = ("charge", "total_sale_price", "tax_rate", "tax_amount", "line_total_with_tax",
              "internal_cost", "margin_percentage", "margin_rule", "is_price_overridden")
    readonly_fields = fields


class QuotationApprovalInline(admin.TabularInline):
    model = QuotationApproval
    extra = 0
    can_delete = False
    fields = ("approval_status", "submitted_by", "approver", "total_cost_inr", "total_sale_price_inr",
              "total_margin_percentage", "rejection_reason", "submitted_at")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(QuotationHeader)
class QuotationHeaderAdmin(admin.ModelAdmin):
    list_display = ("quote_id", "customer", "quote_status", "mode", "movement", "terms",
                    "total_chargeable_weight", "costed_as_of", "version", "created_at")
    list_filter = ("quote_status", "mode", "movement", "terms", "created_at")
    search_fields = ("quote_id", "customer__name")
    date_hierarchy = "created_at"
    readonly_fields = ("quote_id", "version", "total_actual_weight", "total_volumetric_weight",
                       "total_chargeable_weight", "total_cbm", "total_pieces", "costed_as_of",
                       "created_at", "updated_at", "deleted_at")
    inlines = [QuotationDimensionInline, QuotationCostLineInline, QuotationSaleLineInline, QuotationApprovalInline]

    def get_readonly_fields(self, request, obj=None):
        ro = list(super().get_readonly_fields(request, obj))
        if obj and not obj.allows_recompute:
            for f in obj._meta.fields:
                if f.name not in ro:
                    ro.append(f.name)
        return ro


@admin.register(QuotationApproval)
class QuotationApprovalAdmin(admin.ModelAdmin):
    list_display = ("quotation", "approval_status", "submitted_by", "approver", "total_cost_inr",
                    "total_margin_percentage", "submitted_at", "approved_at", "rejected_at")
    list_filter = ("approval_status", "submitted_at")
    search_fields = ("quotation__quote_id",)

    def get_readonly_fields(self, request, obj=None):
        # Decided approvals are an audit record
        if obj and not obj.is_pending:
            return [f.name for f in obj._meta.fields]
        return super().get_readonly_fields(request, obj)
