from decimal import Decimal

import pytest

from core.models import Charge
from customers.models import Customer
from pricing.exceptions import NoMarginRuleConfigured
from pricing.models import MarginRule
from pricing.services.margin_service import (
    calculate_bulk_prices,
    calculate_sale_price,
    create_margin_rule,
    deactivate_margin_rule,
    margin_rule_hierarchy,
    rank_rules,
    resolve_margin,
    validate_margin_rules,
)

pytestmark = pytest.mark.django_db


@pytest.fixture
def other_customer(db):
    return Customer.objects.create(name="Zenith Traders", code="ZEN")


@pytest.fixture
def ladder(basic, customer, global_margin):
    """precedence 1: global 20%, 3: BASIC 25%, 4: BASIC + customer 8%."""
    charge_rule = MarginRule.objects.create(precedence=3, charge=basic, margin_percentage=Decimal("0.25"))
    specific = MarginRule.objects.create(precedence=4, charge=basic, customer=customer, margin_percentage=Decimal("0.08"))
    return global_margin, charge_rule, specific


class TestResolution:
    def test_specific_rule_wins(self, ladder, basic, customer):
        assert resolve_margin(basic.id, customer.id).margin_percentage == Decimal("0.08")

    def test_charge_rule_for_other_customers(self, ladder, basic, other_customer):
        margin = resolve_margin(basic.id, other_customer.id)
        assert margin.margin_percentage == Decimal("0.25")
        assert margin.tier == MarginRule.TIER_CHARGE

    def test_global_rule_for_other_charges(self, ladder, doc, customer):
        margin = resolve_margin(doc.id, customer.id)
        assert margin.margin_percentage == Decimal("0.2")
        assert margin.tier == MarginRule.TIER_GLOBAL

    def test_customer_tier_beats_global(self, ladder, doc, customer):
        MarginRule.objects.create(precedence=2, customer=customer, margin_percentage=Decimal("0.15"))
        assert resolve_margin(doc.id, customer.id).tier == MarginRule.TIER_CUSTOMER

    def test_specificity_outranks_precedence(self, ladder, doc, customer):
        # A high-precedence global rule does not beat a charge rule.
        MarginRule.objects.create(precedence=9, margin_percentage=Decimal("0.50"))
        assert resolve_margin(ladder[1].charge_id, None).margin_percentage == Decimal("0.25")
        assert resolve_margin(doc.id, None).margin_percentage == Decimal("0.5")

    def test_precedence_breaks_ties_within_tier(self, ladder, doc):
        MarginRule.objects.create(precedence=5, charge=doc, margin_percentage=Decimal("0.12"))
        MarginRule.objects.create(precedence=7, charge=doc, margin_percentage=Decimal("0.18"))
        assert resolve_margin(doc.id, None).margin_percentage == Decimal("0.18")

    def test_inactive_rules_are_ignored(self, ladder, basic, customer):
        deactivate_margin_rule(ladder[2])
        assert resolve_margin(basic.id, customer.id).margin_percentage == Decimal("0.25")

    def test_no_rule_raises(self, basic, customer):
        with pytest.raises(NoMarginRuleConfigured) as exc_info:
            resolve_margin(basic.id, customer.id)
        assert exc_info.value.charge_id == basic.id
        assert exc_info.value.customer_id == customer.id

    def test_rank_rules_is_pure(self, ladder, basic, customer):
        ranked = rank_rules(list(ladder), basic.id, customer.id)
        assert [r.precedence for r in ranked] == [4, 3, 1]


class TestPricing:
    def test_sale_price_with_fixed_add_on(self, basic, global_margin):
        MarginRule.objects.create(precedence=3, charge=basic, margin_percentage=Decimal("0.25"),
                                  margin_fixed=Decimal("100"))
        price = calculate_sale_price(Decimal("1000"), basic.id, None)
        assert price.sale_price == Decimal("1350.00")
        assert price.calculation == "1000.00 x (1 + 0.2500) + 100.00 = 1350.00"

    def test_sale_price_rounds_half_up(self, doc, global_margin):
        assert calculate_sale_price(Decimal("0.0125"), doc.id, None).sale_price == Decimal("0.02")

    def test_bulk_prices(self, ladder, basic, doc, customer):
        prices = calculate_bulk_prices(
            [{"charge_id": basic.id, "cost": Decimal("100")}, {"charge_id": doc.id, "cost": Decimal("100")}],
            customer.id,
        )
        assert [p.sale_price for p in prices] == [Decimal("108.00"), Decimal("120.00")]

    def test_hierarchy_lists_every_match(self, ladder, basic, customer):
        rows = margin_rule_hierarchy(basic.id, customer.id)
        assert [r["tier"] for r in rows] == ["specific", "charge_only", "global"]
        assert [r["wins"] for r in rows] == [True, False, False]


class TestMaintenance:
    def test_create_is_idempotent(self, basic):
        first = create_margin_rule(3, "0.25", 100, charge=basic)
        second = create_margin_rule(3, "0.30", 0, charge=basic)
        assert first.pk == second.pk
        second.refresh_from_db()
        assert second.margin_percentage == Decimal("0.3")

    def test_validation_requires_global_default(self, basic):
        MarginRule.objects.create(precedence=3, charge=basic, margin_percentage=Decimal("0.25"))
        assert any("No active global margin rule" in w for w in validate_margin_rules())

    def test_validation_flags_inactive_targets(self, ladder, basic):
        Charge.objects.filter(pk=basic.pk).update(is_active=False)
        warnings = validate_margin_rules()
        assert any("inactive charge BASIC" in w for w in warnings)
