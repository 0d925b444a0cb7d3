from decimal import Decimal

import pytest

from pricing.exceptions import NoMarginRuleConfigured, QuotationLocked
from pricing.models import MarginRule, VendorRateLine
from quotes.models import QuotationHeader
from quotes.services.aggregator import aggregate
from quotes.services.recompute import recompute_quotation
from quotes.services.sale_lines import override_sale_price
from quotes.tax_policy import tax_amount, tax_rate_for_charge

pytestmark = pytest.mark.django_db


def sale_for(quotation, code):
    return quotation.sale_lines.get(charge__charge_code=code)


def test_sale_lines_apply_margin_and_tax(priced_setup, make_quotation):
    quotation = make_quotation()
    recompute_quotation(quotation.pk)

    basic = sale_for(quotation, "BASIC")
    assert basic.total_sale_price == Decimal("378.48")
    assert basic.unit_sale_rate == Decimal("378.48")
    assert basic.quantity == Decimal("1")
    assert basic.tax_rate == Decimal("5.00")
    assert basic.tax_amount == Decimal("18.92")
    assert basic.line_total_with_tax == Decimal("397.40")
    assert basic.internal_cost == Decimal("315.40")
    assert basic.margin_percentage == Decimal("20.00")
    assert basic.sale_currency == "INR"

    doc = sale_for(quotation, "DOC")
    assert doc.total_sale_price == Decimal("2490.00")
    assert doc.tax_amount == Decimal("448.20")


def test_totals(priced_setup, make_quotation):
    quotation = make_quotation()
    totals = recompute_quotation(quotation.pk).totals
    assert totals.total_cost == Decimal("2390.40")
    assert totals.total_sale == Decimal("2868.48")
    assert totals.total_tax == Decimal("467.12")
    assert totals.total_with_tax == Decimal("3335.60")
    assert totals.margin_amount == Decimal("478.08")
    assert totals.margin_percentage == Decimal("20.00")
    assert totals.total_chargeable_weight == Decimal("20.040")
    assert totals.as_dict()["total_cost"] == "2390.40"


def test_fixed_margin_shows_in_realized_margin(priced_setup, make_quotation, doc):
    MarginRule.objects.create(precedence=3, charge=doc, margin_percentage=Decimal("0.25"), margin_fixed=Decimal("100"))
    quotation = make_quotation()
    recompute_quotation(quotation.pk)
    line = sale_for(quotation, "DOC")
    # 2075 x 1.25 + 100
    assert line.total_sale_price == Decimal("2693.75")
    assert line.applied_margin_percentage == Decimal("0.2500")
    assert line.margin_percentage == Decimal("29.82")


def test_uncosted_line_has_zero_sale(priced_setup, make_quotation, doc):
    VendorRateLine.objects.filter(charge=doc).delete()
    quotation = make_quotation()
    recompute_quotation(quotation.pk)
    line = sale_for(quotation, "DOC")
    assert line.total_sale_price == Decimal("0.00")
    assert line.margin_rule_id is None
    assert line.margin_percentage is None


def test_missing_margin_rule_names_the_charge(air_export_rules, air_tariffs, usd_inr, make_quotation):
    quotation = make_quotation()
    with pytest.raises(NoMarginRuleConfigured, match="BASIC"):
        recompute_quotation(quotation.pk)
    assert not QuotationHeader.objects.get(pk=quotation.pk).cost_lines.exists()


def test_override_then_recompute_discards_it(priced_setup, make_quotation):
    quotation = make_quotation()
    recompute_quotation(quotation.pk)
    line = sale_for(quotation, "BASIC")

    override_sale_price(line.pk, "400")
    line.refresh_from_db()
    assert line.is_price_overridden
    assert line.tax_amount == Decimal("20.00")
    assert aggregate(quotation).total_sale == Decimal("2890.00")

    recompute_quotation(quotation.pk)
    line.refresh_from_db()
    assert not line.is_price_overridden
    assert line.total_sale_price == Decimal("378.48")


def test_override_guards(priced_setup, make_quotation):
    quotation = make_quotation()
    recompute_quotation(quotation.pk)
    line = sale_for(quotation, "BASIC")
    with pytest.raises(ValueError):
        override_sale_price(line.pk, "-1")
    QuotationHeader.objects.filter(pk=quotation.pk).update(quote_status=QuotationHeader.STATUS_SENT)
    with pytest.raises(QuotationLocked):
        override_sale_price(line.pk, "500")


class TestTaxPolicy:
    def test_no_tax_code_is_exempt(self, basic):
        basic.default_tax = None
        assert tax_rate_for_charge(basic) == Decimal("0")

    def test_inactive_tax_code_is_exempt(self, basic, gst5):
        gst5.is_active = False
        assert tax_rate_for_charge(basic) == Decimal("0")

    def test_tax_amount_rounds_half_up(self):
        assert tax_amount(Decimal("0.25"), Decimal("18.00")) == Decimal("0.05")
        assert tax_amount(Decimal("378.48"), Decimal("5.00")) == Decimal("18.92")
