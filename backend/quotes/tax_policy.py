# quotes/tax_policy.py
import logging
from decimal import Decimal

from pricing.services.utils import HUNDRED, ZERO, d, q2

logger = logging.getLogger(__name__)


def tax_rate_for_charge(charge) -> Decimal:
    """
    Percentage tax rate (e.g. 18.00) that applies to a sale line for `charge`.

    Rules:
      - The charge's default tax code decides the rate.
      - No tax code, or an inactive one: the line is treated as exempt (0%).
    """
    tax = charge.default_tax
    if tax is None:
        return ZERO
    if not tax.is_active:
        logger.warning(f"Tax code {tax.tax_code} on charge {charge.charge_code} is inactive; treating as exempt")
        return ZERO
    return d(tax.rate)


def tax_amount(total_sale_price, tax_rate) -> Decimal:
    return q2(d(total_sale_price) * d(tax_rate) / HUNDRED)
