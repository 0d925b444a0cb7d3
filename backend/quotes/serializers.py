from __future__ import annotations

from rest_framework import serializers

from .models import (
    QuotationApproval,
    QuotationCostLine,
    QuotationDimension,
    QuotationHeader,
    QuotationSaleLine,
)
from .services.aggregator import aggregate, approval_reasons
from .services.costing_service import is_selection_cheapest, vendor_options


class QuotationDimensionSerializer(serializers.ModelSerializer):
    class Meta:
        model = QuotationDimension
        exclude = ("quotation",)


class QuotationCostLineSerializer(serializers.ModelSerializer):
    charge_code = serializers.CharField(source="charge.charge_code", read_only=True)
    vendor_options = serializers.SerializerMethodField()
    is_rank_1 = serializers.SerializerMethodField()

    class Meta:
        model = QuotationCostLine
        fields = [
            "id", "charge", "charge_code", "quantity", "selected_vendor",
            "unit_cost_rate", "unit_cost_currency", "cost_exchange_rate", "total_cost_inr",
            "is_costed", "costing_note", "is_rank_1", "vendor_options",
        ]

    def get_vendor_options(self, obj):
        return [
            {
                "vendor_id": o.vendor_id,
                "cost": str(o.cost),
                "unit_cost_rate": str(o.unit_cost_rate),
                "currency": o.currency,
                "exchange_rate": str(o.exchange_rate),
                "is_current_selection": o.is_current_selection,
                "is_rank_1": o.is_rank_1,
            }
            for o in vendor_options(obj)
        ]

    def get_is_rank_1(self, obj):
        return is_selection_cheapest(obj)


class QuotationSaleLineSerializer(serializers.ModelSerializer):
    charge_code = serializers.CharField(source="charge.charge_code", read_only=True)

    class Meta:
        model = QuotationSaleLine
        exclude = ("quotation",)


class QuotationApprovalSerializer(serializers.ModelSerializer):
    class Meta:
        model = QuotationApproval
        fields = "__all__"
        read_only_fields = [f.name for f in QuotationApproval._meta.fields]


class QuotationSummarySerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source="customer.name", read_only=True)

    class Meta:
        model = QuotationHeader
        fields = [
            "id", "quote_id", "quote_status", "mode", "movement", "terms",
            "customer", "customer_name", "base_currency", "total_chargeable_weight",
            "costed_as_of", "version", "created_at",
        ]


class QuotationDetailSerializer(QuotationSummarySerializer):
    dimensions = QuotationDimensionSerializer(many=True, read_only=True)
    cost_lines = QuotationCostLineSerializer(many=True, read_only=True)
    sale_lines = QuotationSaleLineSerializer(many=True, read_only=True)
    approvals = QuotationApprovalSerializer(many=True, read_only=True)
    totals = serializers.SerializerMethodField()

    class Meta(QuotationSummarySerializer.Meta):
        fields = QuotationSummarySerializer.Meta.fields + [
            "origin", "destination", "total_actual_weight", "total_volumetric_weight",
            "total_cbm", "total_pieces", "notes", "updated_at",
            "dimensions", "cost_lines", "sale_lines", "approvals", "totals",
        ]

    def get_totals(self, obj):
        totals = aggregate(obj)
        data = totals.as_dict()
        data["approval_reasons"] = approval_reasons(totals)
        return data


# ---------- ACTION PAYLOADS ----------
class RecomputeRequestSerializer(serializers.Serializer):
    as_of_date = serializers.DateField(required=False)
    expected_version = serializers.IntegerField(required=False, min_value=1)


class SelectVendorSerializer(serializers.Serializer):
    vendor_id = serializers.IntegerField()


class OutcomeSerializer(serializers.Serializer):
    outcome = serializers.CharField()


class DecisionSerializer(serializers.Serializer):
    decision = serializers.CharField()
    comments = serializers.CharField(required=False, allow_blank=True, default="")
    expected_version = serializers.IntegerField(required=False, min_value=1)
