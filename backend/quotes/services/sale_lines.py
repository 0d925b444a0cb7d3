from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional, Sequence

from django.db import transaction

from pricing.exceptions import NoMarginRuleConfigured, QuotationLocked
from pricing.models import MarginRule
from pricing.services.margin_service import apply_margin, resolve_margin
from pricing.services.utils import ONE, ZERO, d, markup_pct, q2

from ..models import QuotationCostLine, QuotationHeader, QuotationSaleLine
from ..tax_policy import tax_amount, tax_rate_for_charge

logger = logging.getLogger(__name__)


def _fill_prices(sale_line: QuotationSaleLine, total_sale: Decimal, cost: Decimal) -> None:
    total_sale = q2(total_sale)
    rate = tax_rate_for_charge(sale_line.charge)
    tax = tax_amount(total_sale, rate)
    sale_line.quantity = ONE
    sale_line.unit_sale_rate = total_sale
    sale_line.total_sale_price = total_sale
    sale_line.tax_rate = rate
    sale_line.tax_amount = tax
    sale_line.line_total_with_tax = total_sale + tax
    sale_line.internal_cost = q2(cost)
    # Realized margin: differs from the rule percentage whenever a fixed add-on applies.
    sale_line.margin_percentage = markup_pct(cost, total_sale)


def price_cost_line(cost_line: QuotationCostLine, customer_id: Optional[int],
                    rules: Sequence[MarginRule], sale_line: Optional[QuotationSaleLine] = None) -> QuotationSaleLine:
    """Build (unsaved) the sale line for one cost line."""
    charge = cost_line.charge
    sale_line = sale_line or QuotationSaleLine(quotation_id=cost_line.quotation_id, charge=charge)
    sale_line.charge = charge
    sale_line.cost_line = cost_line
    sale_line.display_name = charge.charge_name
    sale_line.sale_currency = cost_line.quotation.base_currency
    sale_line.is_price_overridden = False

    if not cost_line.is_costed:
        sale_line.margin_rule = None
        sale_line.applied_margin_percentage = ZERO
        sale_line.applied_margin_fixed = ZERO
        _fill_prices(sale_line, ZERO, ZERO)
        return sale_line

    try:
        margin = resolve_margin(charge.id, customer_id, rules=rules)
    except NoMarginRuleConfigured as exc:
        raise NoMarginRuleConfigured(charge.id, customer_id, charge_code=charge.charge_code) from exc

    cost = d(cost_line.total_cost_inr)
    sale_line.margin_rule_id = margin.rule_id
    sale_line.applied_margin_percentage = margin.margin_percentage
    sale_line.applied_margin_fixed = margin.margin_fixed
    _fill_prices(sale_line, apply_margin(cost, margin), cost)
    return sale_line


def build_sale_lines(quotation: QuotationHeader, rules: Optional[Sequence[MarginRule]] = None) -> List[QuotationSaleLine]:
    """Reprice every cost line of the quotation. Manual price overrides are discarded."""
    if rules is None:
        rules = list(MarginRule.objects.filter(is_active=True))
    cost_lines = list(quotation.cost_lines.select_related('charge', 'charge__default_tax', 'quotation'))
    existing = {line.charge_id: line for line in quotation.sale_lines.all()}
    quotation.sale_lines.exclude(charge_id__in=[cl.charge_id for cl in cost_lines]).delete()

    saved: List[QuotationSaleLine] = []
    for cost_line in cost_lines:
        sale_line = price_cost_line(cost_line, quotation.customer_id, rules, existing.get(cost_line.charge_id))
        sale_line.save()
        saved.append(sale_line)
    return saved


def override_sale_price(sale_line_id: int, new_price) -> QuotationSaleLine:
    new_price = d(new_price)
    if new_price < ZERO:
        raise ValueError("Sale price cannot be negative.")
    with transaction.atomic():
        sale_line = QuotationSaleLine.objects.select_related('charge', 'charge__default_tax').get(pk=sale_line_id)
        quotation = QuotationHeader.objects.select_for_update().get(pk=sale_line.quotation_id)
        if not quotation.allows_recompute:
            raise QuotationLocked(f"Quotation {quotation} is {quotation.quote_status}; prices cannot be changed.")
        _fill_prices(sale_line, new_price, d(sale_line.internal_cost))
        sale_line.is_price_overridden = True
        sale_line.save()
        quotation.version += 1
        quotation.save(update_fields=['version', 'updated_at'])
    logger.info(f"{quotation}: {sale_line.charge.charge_code} sale price overridden to {sale_line.total_sale_price}")
    return sale_line
