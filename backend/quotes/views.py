# quotes/views.py
from __future__ import annotations

import logging

from django.shortcuts import get_object_or_404
from rest_framework import status, views, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import IsQuoteApprover
from pricing.exceptions import QuoteEngineError
from pricing.views import engine_error_response

from .models import QuotationApproval, QuotationCostLine, QuotationHeader
from .serializers import (
    DecisionSerializer,
    OutcomeSerializer,
    QuotationApprovalSerializer,
    QuotationCostLineSerializer,
    QuotationDetailSerializer,
    QuotationSummarySerializer,
    RecomputeRequestSerializer,
    SelectVendorSerializer,
)
from .services.approval_workflow import decide_approval, record_outcome, submit_for_approval
from .services import costing_service
from .services.recompute import recompute_quotation

logger = logging.getLogger(__name__)


class QuotationViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    queryset = (QuotationHeader.objects
                .select_related('customer')
                .order_by('-created_at'))

    def get_serializer_class(self):
        if self.action == 'list':
            return QuotationSummarySerializer
        return QuotationDetailSerializer

    def get_queryset(self):
        qs = super().get_queryset()
        status_filter = self.request.query_params.get('status')
        if status_filter:
            qs = qs.filter(quote_status=status_filter)
        if self.action != 'list':
            qs = qs.prefetch_related('dimensions', 'cost_lines__charge', 'sale_lines__charge', 'approvals')
        return qs

    def _detail(self, quotation_id, **extra):
        quotation = self.get_queryset().get(pk=quotation_id)
        data = QuotationDetailSerializer(quotation).data
        data.update(extra)
        return data

    @action(detail=True, methods=['post'])
    def recompute(self, request, pk=None):
        quotation = self.get_object()
        ser = RecomputeRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            result = recompute_quotation(
                quotation.pk,
                as_of=ser.validated_data.get('as_of_date'),
                expected_version=ser.validated_data.get('expected_version'),
            )
        except QuoteEngineError as exc:
            return engine_error_response(exc)
        return Response(self._detail(quotation.pk, warnings=result.warnings))

    @action(detail=True, methods=['post'])
    def submit(self, request, pk=None):
        quotation = self.get_object()
        try:
            approval = submit_for_approval(quotation.pk, submitted_by=request.user)
        except QuoteEngineError as exc:
            return engine_error_response(exc)
        approval_data = QuotationApprovalSerializer(approval).data if approval else None
        return Response(self._detail(quotation.pk, approval=approval_data))

    @action(detail=True, methods=['post'])
    def outcome(self, request, pk=None):
        quotation = self.get_object()
        ser = OutcomeSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            record_outcome(quotation.pk, ser.validated_data['outcome'])
        except QuoteEngineError as exc:
            return engine_error_response(exc)
        return Response(self._detail(quotation.pk))

    @action(detail=True, methods=['post'], url_path=r'cost-lines/(?P<line_id>\d+)/select-vendor')
    def select_vendor(self, request, pk=None, line_id=None):
        quotation = self.get_object()
        get_object_or_404(QuotationCostLine, pk=line_id, quotation=quotation)
        ser = SelectVendorSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            line = costing_service.select_vendor(int(line_id), ser.validated_data['vendor_id'])
        except (QuoteEngineError, ValueError) as exc:
            return engine_error_response(exc)
        return Response(QuotationCostLineSerializer(line).data)


class ApprovalDecisionView(views.APIView):
    permission_classes = [IsAuthenticated, IsQuoteApprover]

    def post(self, request, id):
        approval = get_object_or_404(QuotationApproval, pk=id)
        ser = DecisionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        try:
            new_status = decide_approval(
                approval.pk, request.user, data['decision'],
                comments=data.get('comments', ''),
                expected_version=data.get('expected_version'),
            )
        except QuoteEngineError as exc:
            return engine_error_response(exc)
        approval.refresh_from_db()
        return Response(
            {"quote_status": new_status, "approval": QuotationApprovalSerializer(approval).data},
            status=status.HTTP_200_OK,
        )
