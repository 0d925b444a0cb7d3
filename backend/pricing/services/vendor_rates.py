from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import astuple
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from django.db.models import Q

from ..cache import cached_lookup
from ..dataclasses import RouteFilter, VendorCostCandidate
from ..models import VendorRateHeader, VendorRateLine
from .utils import d

logger = logging.getLogger(__name__)


def _route_q(route: Optional[RouteFilter]) -> Q:
    q = Q()
    if route is None:
        return q
    if route.mode:
        q &= Q(rate_header__mode=route.mode)
    if route.movement:
        q &= Q(rate_header__movement=route.movement)
    # Header-side nulls act as wildcards for the route legs and incoterm.
    if route.terms:
        q &= Q(rate_header__terms__isnull=True) | Q(rate_header__terms='') | Q(rate_header__terms=route.terms)
    if route.origin_id:
        q &= Q(rate_header__origin__isnull=True) | Q(rate_header__origin_id=route.origin_id)
    if route.destination_id:
        q &= Q(rate_header__destination__isnull=True) | Q(rate_header__destination_id=route.destination_id)
    return q


def _line_rank(line: VendorRateLine):
    return (line.sequence, line.cost_rate, line.id)


def _scan(charge_id: int, uom_id: int, quantity: Decimal, on: date,
          route: Optional[RouteFilter]) -> List[VendorCostCandidate]:
    lines = (
        VendorRateLine.objects
        .select_related('rate_header')
        .filter(
            charge_id=charge_id,
            uom_id=uom_id,
            is_active=True,
            rate_header__is_active=True,
            rate_header__vendor__is_active=True,
            rate_header__valid_from__lte=on,
            rate_header__valid_upto__gte=on,
        )
        .filter(Q(is_fixed_rate=True) | Q(slab_min__lte=quantity, slab_max__gte=quantity))
        .filter(_route_q(route))
    )

    # Best line per header: lowest sequence, then lowest cost_rate.
    per_header: Dict[int, VendorRateLine] = {}
    for line in lines:
        current = per_header.get(line.rate_header_id)
        if current is None or _line_rank(line) < _line_rank(current):
            per_header[line.rate_header_id] = line

    # One candidate per vendor: the most recently effective tariff, then lowest header id.
    per_vendor: Dict[int, List[VendorRateLine]] = defaultdict(list)
    for line in per_header.values():
        per_vendor[line.rate_header.vendor_id].append(line)

    candidates: List[VendorCostCandidate] = []
    for vendor_id in sorted(per_vendor):
        best = min(
            per_vendor[vendor_id],
            key=lambda ln: (-ln.rate_header.valid_from.toordinal(), ln.rate_header_id),
        )
        candidates.append(VendorCostCandidate(
            vendor_id=vendor_id,
            unit_cost_rate=d(best.cost_rate),
            currency=best.currency_code,
            rate_header_id=best.rate_header_id,
            rate_line_id=best.id,
            is_fixed_rate=best.is_fixed_rate,
        ))
    return candidates


def find_vendor_costs(charge_id: int, uom_id: int, quantity, on: date,
                      route: Optional[RouteFilter] = None) -> List[VendorCostCandidate]:
    """
    Every vendor able to cost `charge_id` in `uom_id` for `quantity` on `on`.

    An empty list is a legitimate answer; the caller decides how to flag it.
    """
    quantity = d(quantity)
    parts = (charge_id, uom_id, quantity, on.isoformat(),
             *(astuple(route) if route else ()))
    candidates = cached_lookup("vendor", parts, lambda: _scan(charge_id, uom_id, quantity, on, route))
    if not candidates:
        logger.debug(f"No vendor rate lines for charge {charge_id} uom {uom_id} qty {quantity} on {on}")
    return list(candidates)


def validate_rate_header(header: VendorRateHeader) -> List[str]:
    """
    Sanity-check a vendor tariff: validity window, slab bounds, overlaps and gaps
    between consecutive slabs of the same charge and unit.
    """
    errors: List[str] = []
    if header.valid_from > header.valid_upto:
        errors.append(f"valid_from {header.valid_from} is after valid_upto {header.valid_upto}.")

    groups: Dict[tuple, List[VendorRateLine]] = defaultdict(list)
    for line in header.lines.select_related('charge', 'uom').filter(is_active=True, is_fixed_rate=False):
        if line.slab_min > line.slab_max:
            errors.append(f"{line.charge.charge_code}: slab_min {line.slab_min} exceeds slab_max {line.slab_max}.")
            continue
        groups[(line.charge_id, line.uom_id)].append(line)

    for slabs in groups.values():
        slabs.sort(key=lambda ln: (ln.slab_min, ln.slab_max))
        for prev, nxt in zip(slabs, slabs[1:]):
            label = f"{nxt.charge.charge_code}/{nxt.uom.code}"
            if nxt.slab_min <= prev.slab_max:
                errors.append(
                    f"{label}: slab {prev.slab_min}-{prev.slab_max} overlaps {nxt.slab_min}-{nxt.slab_max}."
                )
            elif nxt.slab_min - prev.slab_max > Decimal("0.01"):
                errors.append(f"{label}: gap between {prev.slab_max} and {nxt.slab_min}.")
    return errors
