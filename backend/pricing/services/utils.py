from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

TWOPLACES = Decimal("0.01")
THREEPLACES = Decimal("0.001")
FOURPLACES = Decimal("0.0001")
SIXPLACES = Decimal("0.000001")
ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")


def d(val) -> Decimal:
    """Coerce incoming values to Decimal safely."""
    if isinstance(val, Decimal):
        return val
    return Decimal(str(val))


def q2(amount) -> Decimal:
    """Money rounding used for every persisted base-currency amount."""
    return d(amount).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def q4(amount) -> Decimal:
    return d(amount).quantize(FOURPLACES, rounding=ROUND_HALF_UP)


def q6(amount) -> Decimal:
    return d(amount).quantize(SIXPLACES, rounding=ROUND_HALF_UP)


def markup_pct(cost, sale) -> Optional[Decimal]:
    """(sale - cost) / cost * 100, or None when there is no cost to mark up."""
    cost = d(cost)
    if cost == ZERO:
        return None
    return q2((d(sale) - cost) / cost * HUNDRED)
