from __future__ import annotations

from decimal import Decimal

from pricing.conf import engine_setting
from pricing.dataclasses import QuotationTotals
from pricing.services.utils import d, markup_pct, q2

from ..models import QuotationHeader


def aggregate(quotation: QuotationHeader) -> QuotationTotals:
    """Roll cost and sale lines up into quotation-level totals."""
    totals = QuotationTotals(
        base_currency=quotation.base_currency,
        total_chargeable_weight=d(quotation.total_chargeable_weight),
        total_cbm=d(quotation.total_cbm),
        total_pieces=quotation.total_pieces,
    )
    for line in quotation.cost_lines.all():
        totals.total_cost += d(line.total_cost_inr)
        if line.is_costed:
            totals.costed_lines += 1
        else:
            totals.uncosted_lines += 1
    for line in quotation.sale_lines.all():
        totals.total_sale += d(line.total_sale_price)
        totals.total_tax += d(line.tax_amount)

    totals.total_cost = q2(totals.total_cost)
    totals.total_sale = q2(totals.total_sale)
    totals.total_tax = q2(totals.total_tax)
    totals.total_with_tax = totals.total_sale + totals.total_tax
    totals.margin_amount = totals.total_sale - totals.total_cost
    totals.margin_percentage = markup_pct(totals.total_cost, totals.total_sale)
    return totals


def approval_reasons(totals: QuotationTotals) -> list:
    """
    Why a quotation needs sign-off: aggregate cost above the threshold, or margin
    below the floor. A quotation with no cost has no defined margin and always
    needs a human look.
    """
    reasons = []
    threshold: Decimal = d(engine_setting("APPROVAL_COST_THRESHOLD"))
    floor: Decimal = d(engine_setting("APPROVAL_MIN_MARGIN_PCT"))
    if totals.total_cost > threshold:
        reasons.append(f"Total cost {totals.total_cost} exceeds {threshold}")
    if totals.margin_percentage is None:
        reasons.append("Margin is undefined (no cost recorded)")
    elif totals.margin_percentage < floor:
        reasons.append(f"Margin {totals.margin_percentage}% is below {floor}%")
    return reasons


def approval_required(totals: QuotationTotals) -> bool:
    return bool(approval_reasons(totals))
