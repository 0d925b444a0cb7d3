"""
Charge applicability: which charges a (mode, movement, terms) shipment attracts.

Rules keyed on an exact incoterm win over the ALL_TERMS wildcard for the same
charge; an exact rule that is inactive therefore switches the charge off for that
incoterm even when the wildcard is active.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from django.db import transaction

from core.models import Charge

from ..models import ALL_TERMS, ChargeRule, TERMS_CHOICES

logger = logging.getLogger(__name__)


def select_applicable_rules(rules: Iterable[ChargeRule], terms: str) -> List[ChargeRule]:
    """
    Pick, per charge, the exact-terms rule if one exists, else the wildcard rule.

    `rules` must already be narrowed to one mode+movement. Returns active rules whose
    charge is active, deduplicated by charge and ordered by charge id.
    """
    exact: Dict[int, ChargeRule] = {}
    wildcard: Dict[int, ChargeRule] = {}
    for rule in rules:
        if rule.terms == terms:
            exact[rule.charge_id] = rule
        elif rule.terms == ALL_TERMS:
            wildcard[rule.charge_id] = rule

    chosen: List[ChargeRule] = []
    for charge_id in sorted(set(exact) | set(wildcard)):
        rule = exact.get(charge_id) or wildcard[charge_id]
        if rule.is_active and rule.charge.is_active:
            chosen.append(rule)
    return chosen


def resolve_applicable_charges(mode: str, movement: str, terms: str) -> List[Charge]:
    rules = (ChargeRule.objects
             .select_related('charge', 'charge__default_uom', 'charge__default_tax')
             .filter(mode=mode, movement=movement, terms__in=[terms, ALL_TERMS]))
    charges = [rule.charge for rule in select_applicable_rules(rules, terms)]
    if not charges:
        logger.info(f"No charge rules for {mode}/{movement}/{terms}; quotation will carry no engine charges")
    return charges


def rules_for_combination(mode: str, movement: str, terms: str = ALL_TERMS):
    return (ChargeRule.objects
            .select_related('charge')
            .filter(mode=mode, movement=movement, terms=terms, is_active=True)
            .order_by('charge_id'))


@transaction.atomic
def add_charge_to_rules(charge: Charge, mode: str, movement: str, terms: str = ALL_TERMS) -> ChargeRule:
    rule, _ = ChargeRule.objects.update_or_create(
        mode=mode, movement=movement, terms=terms, charge=charge,
        defaults={'is_active': True},
    )
    return rule


def remove_charge_from_rules(charge: Charge, mode: str, movement: str, terms: str = ALL_TERMS) -> int:
    """Deactivate rather than delete so historical quotations stay explainable."""
    return (ChargeRule.objects
            .filter(mode=mode, movement=movement, terms=terms, charge=charge, is_active=True)
            .update(is_active=False))


def validate_charge_rules() -> List[str]:
    """
    Report rules that can never fire as configured.

    - active rules pointing at an inactive charge
    - ALL_TERMS rules fully shadowed by exact rules for every incoterm
    """
    problems: List[str] = []
    active = list(ChargeRule.objects.select_related('charge').filter(is_active=True))
    for rule in active:
        if not rule.charge.is_active:
            problems.append(
                f"Rule {rule.mode}/{rule.movement}/{rule.terms} references inactive charge {rule.charge.charge_code}"
            )

    all_terms = {code for code, _ in TERMS_CHOICES}
    exact_terms: Dict[tuple, set] = {}
    for rule in ChargeRule.objects.exclude(terms=ALL_TERMS):
        exact_terms.setdefault((rule.mode, rule.movement, rule.charge_id), set()).add(rule.terms)
    for rule in active:
        if rule.terms != ALL_TERMS:
            continue
        covered = exact_terms.get((rule.mode, rule.movement, rule.charge_id), set())
        if covered >= all_terms:
            problems.append(
                f"ALL_TERMS rule {rule.mode}/{rule.movement} for {rule.charge.charge_code} is redundant; "
                "every incoterm has an explicit rule"
            )
    return problems
