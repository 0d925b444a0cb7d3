from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from django.db import transaction
from django.utils import timezone

from pricing.dataclasses import RecomputeResult
from pricing.exceptions import QuotationLocked, StaleRecompute
from pricing.services.charge_rules import resolve_applicable_charges
from pricing.services.dimensions import calculate_dimensions
from pricing.services.utils import d

from ..models import QuotationHeader
from .aggregator import aggregate
from .costing_service import build_cost_lines
from .sale_lines import build_sale_lines

logger = logging.getLogger(__name__)

THREE = d("0.001")
SIX = d("0.000001")


def _apply_dimensions(quotation: QuotationHeader):
    dimensions = list(quotation.dimensions.all())
    totals = calculate_dimensions([dim.as_input() for dim in dimensions], quotation.mode)
    for dim, result in zip(dimensions, totals.rows):
        dim.quotation = quotation
        dim.cbm_per_piece = result.cbm_per_piece.quantize(SIX)
        dim.total_cbm = result.total_cbm.quantize(SIX)
        dim.total_weight = result.total_weight.quantize(THREE)
        dim.volumetric_weight = result.volumetric_weight.quantize(THREE)
        dim.save(update_fields=['cbm_per_piece', 'total_cbm', 'total_weight', 'volumetric_weight'])

    quotation.total_pieces = totals.total_pieces
    quotation.total_actual_weight = totals.total_actual_weight.quantize(THREE)
    quotation.total_volumetric_weight = totals.total_volumetric_weight.quantize(THREE)
    quotation.total_chargeable_weight = totals.chargeable_weight.quantize(THREE)
    quotation.total_cbm = totals.total_cbm.quantize(SIX)
    return dimensions, totals


def recompute_quotation(quotation_id: int, as_of: Optional[date] = None,
                        expected_version: Optional[int] = None) -> RecomputeResult:
    """
    Dimensions -> charges -> vendor costs -> margins -> sale lines -> totals, in one
    transaction. Any configuration error (bad dimension, missing FX rate, missing
    margin rule) rolls the whole recompute back.
    """
    as_of = as_of or timezone.localdate()
    with transaction.atomic():
        quotation = QuotationHeader.objects.select_for_update().get(pk=quotation_id)
        if expected_version is not None and quotation.version != int(expected_version):
            raise StaleRecompute(
                f"Quotation {quotation} is at version {quotation.version}, expected {expected_version}; reload and retry."
            )
        if not quotation.allows_recompute:
            raise QuotationLocked(f"Quotation {quotation} is {quotation.quote_status} and cannot be recomputed.")

        dimensions, _ = _apply_dimensions(quotation)
        charges = resolve_applicable_charges(quotation.mode, quotation.movement, quotation.terms)
        cost_lines, warnings = build_cost_lines(quotation, charges, as_of, quotation.total_chargeable_weight)
        sale_lines = build_sale_lines(quotation)

        if (quotation.quote_status == QuotationHeader.STATUS_DRAFT
                and dimensions and any(line.is_costed for line in cost_lines)):
            quotation.quote_status = QuotationHeader.STATUS_PENDING_COSTING
            logger.info(f"{quotation}: draft -> pending_costing")

        quotation.costed_as_of = as_of
        quotation.version += 1
        quotation.save()
        totals = aggregate(quotation)

    logger.info(
        f"{quotation}: recomputed as of {as_of}; {totals.costed_lines} costed, "
        f"{totals.uncosted_lines} uncosted, cost {totals.total_cost} sale {totals.total_sale}"
    )
    return RecomputeResult(
        cost_lines=cost_lines,
        sale_lines=sale_lines,
        totals=totals,
        warnings=warnings,
        version=quotation.version,
    )
