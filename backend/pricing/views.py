from __future__ import annotations

import logging

from rest_framework import status, views
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import CanManageExchangeRates

from .exceptions import (
    ApprovalError,
    InvalidRateValue,
    NoMarginRuleConfigured,
    QuotationLocked,
    QuoteEngineError,
    StaleRecompute,
)
from .serializers import ExchangeRateSerializer, MarginResolveQuerySerializer, RateBatchSerializer
from .services.fx_service import ExchangeRateEngine, validate_exchange_rate_batch
from .services.margin_service import calculate_sale_price, margin_rule_hierarchy, resolve_margin

logger = logging.getLogger(__name__)

CONFLICT_ERRORS = (ApprovalError, StaleRecompute, QuotationLocked)


def engine_error_response(exc: Exception) -> Response:
    """Map engine errors onto 409 (state conflicts) or 400 (bad input / configuration)."""
    code = getattr(exc, "code", "invalid")
    body = {"detail": str(exc), "code": code}
    if isinstance(exc, InvalidRateValue):
        body["errors"] = exc.errors
    if isinstance(exc, CONFLICT_ERRORS):
        return Response(body, status=status.HTTP_409_CONFLICT)
    if not isinstance(exc, QuoteEngineError):
        body["code"] = "invalid"
    return Response(body, status=status.HTTP_400_BAD_REQUEST)


class ExchangeRateView(views.APIView):
    permission_classes = [CanManageExchangeRates]

    def get(self, request):
        engine = ExchangeRateEngine()
        pairs = engine.active_pairs()
        rows = []
        for from_ccy, to_ccy in pairs:
            rows.extend(engine.rate_history(from_ccy, to_ccy, limit=1))
        return Response(ExchangeRateSerializer(rows, many=True).data)

    def post(self, request):
        ser = RateBatchSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        engine = ExchangeRateEngine(data.get("base_currency"))
        try:
            rows = engine.bulk_update_rates(
                data["rates"],
                effective_date=data.get("effective_date"),
                source=data.get("source") or "manual",
            )
        except InvalidRateValue as exc:
            return engine_error_response(exc)
        logger.info(f"{request.user} published {len(rows)} exchange rates")
        return Response(ExchangeRateSerializer(rows, many=True).data, status=status.HTTP_201_CREATED)


class ExchangeRateValidateView(views.APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        ser = RateBatchSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        return Response(validate_exchange_rate_batch(ser.validated_data["rates"], ser.validated_data.get("base_currency")))


class MarginResolveView(views.APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ser = MarginResolveQuerySerializer(data=request.query_params)
        ser.is_valid(raise_exception=True)
        charge_id = ser.validated_data["charge"]
        customer_id = ser.validated_data.get("customer")
        try:
            margin = resolve_margin(charge_id, customer_id)
        except NoMarginRuleConfigured as exc:
            return engine_error_response(exc)

        payload = {
            "rule_id": margin.rule_id,
            "tier": margin.tier,
            "precedence": margin.precedence,
            "margin_percentage": str(margin.margin_percentage),
            "margin_fixed": str(margin.margin_fixed),
            "hierarchy": [
                {**row, "margin_percentage": str(row["margin_percentage"]), "margin_fixed": str(row["margin_fixed"])}
                for row in margin_rule_hierarchy(charge_id, customer_id)
            ],
        }
        if "cost" in ser.validated_data:
            price = calculate_sale_price(ser.validated_data["cost"], charge_id, customer_id)
            payload["sale_price"] = str(price.sale_price)
            payload["calculation"] = price.calculation
        return Response(payload)
