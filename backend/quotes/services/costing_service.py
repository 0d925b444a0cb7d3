from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Optional, Tuple

from django.db import transaction

from pricing.conf import engine_setting
from pricing.dataclasses import RouteFilter, VendorCost, VendorCostCandidate, VendorOption
from pricing.exceptions import NoRateAvailable, NoVendorCostAvailable, QuotationLocked
from pricing.services.fx_service import ExchangeRateEngine
from pricing.services.utils import ONE, ZERO, d, q2, q4, q6
from pricing.services.vendor_rates import find_vendor_costs

from ..models import QuotationCostLine, QuotationHeader
from .sale_lines import build_sale_lines

logger = logging.getLogger(__name__)


def is_rank_one(cost, min_cost) -> bool:
    """Rank-1 check shared by selection, summaries and the API."""
    return abs(d(cost) - d(min_cost)) < d(engine_setting("RANK_TOLERANCE"))


def route_for(quotation: QuotationHeader) -> RouteFilter:
    return RouteFilter(
        mode=quotation.mode,
        movement=quotation.movement,
        terms=quotation.terms,
        origin_id=quotation.origin_id,
        destination_id=quotation.destination_id,
    )


def convert_candidates(candidates: Iterable[VendorCostCandidate], base_currency: str, on: date,
                       fx: ExchangeRateEngine, charge_code: str = "") -> List[VendorCost]:
    """Every candidate in the base currency, cheapest first, ties by lowest vendor id."""
    costs: List[VendorCost] = []
    for candidate in candidates:
        try:
            rate = q6(fx.get_rate(candidate.currency, base_currency, on))
        except NoRateAvailable as exc:
            raise NoRateAvailable(exc.from_currency, exc.to_currency, exc.on, charge_code=charge_code) from exc
        unit = q4(candidate.unit_cost_rate)
        costs.append(VendorCost(
            vendor_id=candidate.vendor_id,
            cost=q2(unit * rate),
            unit_cost_rate=unit,
            currency=candidate.currency,
            exchange_rate=rate,
        ))
    costs.sort(key=lambda c: (c.cost, c.vendor_id))
    return costs


def choose_vendor(costs: List[VendorCost], prior_vendor_id: Optional[int]) -> Optional[VendorCost]:
    """
    Keep a prior selection while that vendor is still quoting; otherwise take the
    cheapest (lowest vendor id on ties). `costs` must be sorted by convert_candidates.
    """
    if not costs:
        return None
    if prior_vendor_id is not None:
        for cost in costs:
            if cost.vendor_id == prior_vendor_id:
                return cost
    return costs[0]


def _apply_vendor(line: QuotationCostLine, chosen: VendorCost) -> None:
    line.selected_vendor_id = chosen.vendor_id
    line.unit_cost_rate = chosen.unit_cost_rate
    line.unit_cost_currency = chosen.currency
    line.cost_exchange_rate = chosen.exchange_rate
    line.is_costed = True
    line.costing_note = ''


def build_cost_lines(quotation: QuotationHeader, charges, on: date, quantity,
                     fx: Optional[ExchangeRateEngine] = None) -> Tuple[List[QuotationCostLine], List[str]]:
    """
    Overwrite the quotation's cost lines for `charges`.

    Returns the saved lines and the NoVendorCostAvailable messages for charges that
    stayed uncosted. Lines for charges that no longer apply are removed.
    """
    fx = fx or ExchangeRateEngine(quotation.base_currency)
    route = route_for(quotation)
    existing = {line.charge_id: line for line in quotation.cost_lines.all()}
    charge_ids = [charge.id for charge in charges]
    quotation.cost_lines.exclude(charge_id__in=charge_ids).delete()

    lines: List[QuotationCostLine] = []
    warnings: List[str] = []
    for charge in charges:
        line = existing.get(charge.id) or QuotationCostLine(quotation=quotation, charge=charge)
        line.quantity = d(quantity).quantize(d("0.001"))
        candidates = find_vendor_costs(charge.id, charge.default_uom_id, quantity, on, route)

        if not candidates:
            notice = NoVendorCostAvailable(charge.charge_code, quantity, on)
            logger.warning(f"{quotation}: {notice}")
            warnings.append(str(notice))
            line.all_vendor_costs = []
            line.selected_vendor = None
            line.unit_cost_rate = ZERO
            line.unit_cost_currency = quotation.base_currency
            line.cost_exchange_rate = ONE
            line.is_costed = False
            line.costing_note = str(notice)[:255]
        else:
            costs = convert_candidates(candidates, quotation.base_currency, on, fx, charge.charge_code)
            chosen = choose_vendor(costs, line.selected_vendor_id)
            line.all_vendor_costs = [c.to_json() for c in costs]
            _apply_vendor(line, chosen)
        line.save()
        lines.append(line)
    return lines, warnings


def vendor_options(cost_line: QuotationCostLine) -> List[VendorOption]:
    costs = sorted(cost_line.vendor_costs(), key=lambda c: (c.cost, c.vendor_id))
    if not costs:
        return []
    cheapest = costs[0].cost
    return [
        VendorOption(
            vendor_id=c.vendor_id,
            cost=c.cost,
            unit_cost_rate=c.unit_cost_rate,
            currency=c.currency,
            exchange_rate=c.exchange_rate,
            is_current_selection=c.vendor_id == cost_line.selected_vendor_id,
            is_rank_1=is_rank_one(c.cost, cheapest),
        )
        for c in costs
    ]


def is_selection_cheapest(cost_line: QuotationCostLine) -> bool:
    costs = cost_line.vendor_costs()
    if not costs or cost_line.selected_vendor_id is None:
        return False
    return is_rank_one(cost_line.total_cost_inr, min(c.cost for c in costs))


def cost_line_summary(quotation: QuotationHeader) -> List[dict]:
    summary = []
    for line in quotation.cost_lines.select_related('charge', 'selected_vendor'):
        summary.append({
            "cost_line_id": line.id,
            "charge_code": line.charge.charge_code,
            "charge_name": line.charge.charge_name,
            "selected_vendor_id": line.selected_vendor_id,
            "selected_vendor": line.selected_vendor.name if line.selected_vendor else None,
            "unit_cost_rate": line.unit_cost_rate,
            "currency": line.unit_cost_currency,
            "exchange_rate": line.cost_exchange_rate,
            "total_cost_inr": line.total_cost_inr,
            "is_costed": line.is_costed,
            "vendor_count": len(line.all_vendor_costs or []),
            "is_rank_1": is_selection_cheapest(line),
        })
    return summary


def select_vendor(cost_line_id: int, vendor_id: int) -> QuotationCostLine:
    """
    Manually pick one of the vendors recorded on a cost line. The pick is sticky
    across later recomputes while the vendor keeps quoting.
    """
    with transaction.atomic():
        line = QuotationCostLine.objects.select_related('quotation').get(pk=cost_line_id)
        quotation = QuotationHeader.objects.select_for_update().get(pk=line.quotation_id)
        if not quotation.allows_recompute:
            raise QuotationLocked(f"Quotation {quotation} is {quotation.quote_status}; vendor cannot be changed.")
        chosen = next((c for c in line.vendor_costs() if c.vendor_id == int(vendor_id)), None)
        if chosen is None:
            raise ValueError(f"Vendor #{vendor_id} has no rate recorded for charge {line.charge.charge_code}.")
        _apply_vendor(line, chosen)
        line.save()
        build_sale_lines(quotation)
        quotation.version += 1
        quotation.save(update_fields=['version', 'updated_at'])
    logger.info(f"{quotation}: vendor #{vendor_id} selected for {line.charge.charge_code}")
    return line
