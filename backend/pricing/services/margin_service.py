"""
Margin resolution.

Rules are ranked by specificity tier first:

    charge AND customer  >  charge only  >  customer only  >  global

and, within a tier, by descending numeric precedence (then lowest id). The scan is
done over plain rule objects so the ranking can be exercised without a database.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional, Sequence

from django.db import transaction
from django.db.models import Q

from ..dataclasses import MarginResolution, PriceBreakdown
from ..exceptions import NoMarginRuleConfigured
from ..models import MarginRule
from .utils import ONE, d, q2

logger = logging.getLogger(__name__)

TIER_RANK = {
    MarginRule.TIER_SPECIFIC: 4,
    MarginRule.TIER_CHARGE: 3,
    MarginRule.TIER_CUSTOMER: 2,
    MarginRule.TIER_GLOBAL: 1,
}


def rule_matches(rule: MarginRule, charge_id: Optional[int], customer_id: Optional[int]) -> bool:
    if not rule.is_active:
        return False
    if rule.charge_id is not None and rule.charge_id != charge_id:
        return False
    if rule.customer_id is not None and rule.customer_id != customer_id:
        return False
    return True


def _sort_key(rule: MarginRule):
    return (-TIER_RANK[rule.tier], -rule.precedence, rule.id or 0)


def rank_rules(rules: Iterable[MarginRule], charge_id: Optional[int], customer_id: Optional[int]) -> List[MarginRule]:
    """All rules matching (charge, customer), best first."""
    return sorted((r for r in rules if rule_matches(r, charge_id, customer_id)), key=_sort_key)


def _candidate_rules(charge_id, customer_id):
    return list(
        MarginRule.objects
        .filter(is_active=True)
        .filter(Q(charge__isnull=True) | Q(charge_id=charge_id))
        .filter(Q(customer__isnull=True) | Q(customer_id=customer_id))
    )


def resolve_margin(charge_id: int, customer_id: Optional[int],
                   rules: Optional[Sequence[MarginRule]] = None) -> MarginResolution:
    """
    Winning margin rule for a charge/customer pair.

    Pass `rules` to resolve against a preloaded rule set (one query per recompute
    instead of one per line).
    """
    if rules is None:
        rules = _candidate_rules(charge_id, customer_id)
    ranked = rank_rules(rules, charge_id, customer_id)
    if not ranked:
        raise NoMarginRuleConfigured(charge_id, customer_id)
    rule = ranked[0]
    return MarginResolution(
        rule_id=rule.id,
        precedence=rule.precedence,
        tier=rule.tier,
        margin_percentage=d(rule.margin_percentage),
        margin_fixed=d(rule.margin_fixed),
    )


def apply_margin(cost, margin: MarginResolution) -> Decimal:
    """cost x (1 + margin_percentage) + margin_fixed, rounded to cents."""
    return q2(d(cost) * (ONE + margin.margin_percentage) + margin.margin_fixed)


def calculate_sale_price(cost, charge_id: int, customer_id: Optional[int],
                         rules: Optional[Sequence[MarginRule]] = None) -> PriceBreakdown:
    margin = resolve_margin(charge_id, customer_id, rules=rules)
    return PriceBreakdown(
        cost=q2(cost),
        sale_price=apply_margin(cost, margin),
        margin_percentage=margin.margin_percentage,
        margin_fixed=margin.margin_fixed,
        rule_id=margin.rule_id,
        precedence=margin.precedence,
        tier=margin.tier,
    )


def calculate_bulk_prices(items: Iterable[Mapping], customer_id: Optional[int]) -> List[PriceBreakdown]:
    """Price many {charge_id, cost} items for one customer off a single rule load."""
    rules = list(MarginRule.objects.filter(is_active=True))
    return [calculate_sale_price(item["cost"], item["charge_id"], customer_id, rules=rules) for item in items]


def margin_rule_hierarchy(charge_id: Optional[int], customer_id: Optional[int]) -> List[dict]:
    """Every matching rule in resolution order, for explaining a price."""
    ranked = rank_rules(MarginRule.objects.filter(is_active=True), charge_id, customer_id)
    return [
        {
            "rule_id": r.id,
            "tier": r.tier,
            "precedence": r.precedence,
            "margin_percentage": d(r.margin_percentage),
            "margin_fixed": d(r.margin_fixed),
            "wins": index == 0,
        }
        for index, r in enumerate(ranked)
    ]


@transaction.atomic
def create_margin_rule(precedence: int, margin_percentage, margin_fixed=0,
                       charge=None, customer=None, description: str = "") -> MarginRule:
    rule, created = MarginRule.objects.update_or_create(
        charge=charge, customer=customer, precedence=precedence,
        defaults={
            "margin_percentage": d(margin_percentage),
            "margin_fixed": d(margin_fixed),
            "is_active": True,
            "description": description,
        },
    )
    logger.info(f"{'Created' if created else 'Updated'} margin rule {rule}")
    return rule


def deactivate_margin_rule(rule: MarginRule) -> MarginRule:
    rule.is_active = False
    rule.save(update_fields=["is_active"])
    return rule


def validate_margin_rules() -> List[str]:
    warnings: List[str] = []
    active = MarginRule.objects.filter(is_active=True).select_related("charge", "customer")
    if not active.filter(charge__isnull=True, customer__isnull=True).exists():
        warnings.append("No active global margin rule; charges without a specific rule cannot be priced.")
    for rule in active:
        if rule.charge_id and not rule.charge.is_active:
            warnings.append(f"Margin rule #{rule.id} targets inactive charge {rule.charge.charge_code}.")
        if rule.customer_id and not rule.customer.is_active:
            warnings.append(f"Margin rule #{rule.id} targets inactive customer {rule.customer.name}.")
        if rule.margin_percentage < 0:
            warnings.append(f"Margin rule #{rule.id} has a negative margin percentage.")
    return warnings
