from decimal import Decimal

import pytest

from pricing.exceptions import NoRateAvailable, QuotationLocked
from pricing.models import ExchangeRate, VendorRateLine
from pricing.services.utils import q2
from quotes.models import QuotationCostLine, QuotationHeader
from quotes.services.costing_service import (
    choose_vendor,
    cost_line_summary,
    is_rank_one,
    select_vendor,
    vendor_options,
)
from quotes.services.recompute import recompute_quotation

pytestmark = pytest.mark.django_db


def line_for(quotation, code) -> QuotationCostLine:
    return quotation.cost_lines.get(charge__charge_code=code)


class TestCostLines:
    def test_cheapest_vendor_selected(self, priced_setup, make_quotation, vendors):
        quotation = make_quotation()
        recompute_quotation(quotation.pk)
        v1, v2 = vendors

        basic = line_for(quotation, "BASIC")
        assert basic.selected_vendor_id == v2.id
        assert basic.unit_cost_rate == Decimal("3.8000")
        assert basic.cost_exchange_rate == Decimal("83.000000")
        assert basic.total_cost_inr == Decimal("315.40")
        assert basic.quantity == Decimal("20.040")
        assert [c["vendor_id"] for c in basic.all_vendor_costs] == [v2.id, v1.id]
        assert [c["cost"] for c in basic.all_vendor_costs] == ["315.40", "332.00"]

        doc = line_for(quotation, "DOC")
        assert doc.selected_vendor_id == v1.id
        assert doc.total_cost_inr == Decimal("2075.00")

    def test_total_is_always_unit_times_rate(self, priced_setup, make_quotation):
        quotation = make_quotation()
        recompute_quotation(quotation.pk)
        for line in quotation.cost_lines.all():
            assert line.total_cost_inr == q2(line.unit_cost_rate * line.cost_exchange_rate)

    def test_uncosted_charge_is_flagged_not_fatal(self, priced_setup, make_quotation, doc):
        VendorRateLine.objects.filter(charge=doc).delete()
        quotation = make_quotation()
        result = recompute_quotation(quotation.pk)

        line = line_for(quotation, "DOC")
        assert line.is_costed is False
        assert line.selected_vendor_id is None
        assert line.total_cost_inr == Decimal("0.00")
        assert line.all_vendor_costs == []
        assert "DOC" in line.costing_note
        assert len(result.warnings) == 1
        assert result.totals.uncosted_lines == 1
        assert result.totals.costed_lines == 1

    def test_missing_fx_rate_rolls_back(self, priced_setup, make_quotation):
        ExchangeRate.objects.all().delete()
        quotation = make_quotation()
        with pytest.raises(NoRateAvailable) as exc_info:
            recompute_quotation(quotation.pk)
        assert exc_info.value.charge_code == "BASIC"

        quotation = QuotationHeader.objects.get(pk=quotation.pk)
        assert quotation.version == 1
        assert quotation.quote_status == QuotationHeader.STATUS_DRAFT
        assert quotation.total_chargeable_weight == Decimal("0")
        assert not quotation.cost_lines.exists()

    def test_inverse_rate_is_not_used_for_costing(self, priced_setup, make_quotation, usd_inr, today):
        usd_inr.delete()
        ExchangeRate.objects.create(from_currency="INR", to_currency="USD", rate=Decimal("0.012"),
                                    effective_date=today)
        with pytest.raises(NoRateAvailable):
            recompute_quotation(make_quotation().pk)


class TestVendorSelection:
    def test_manual_selection_is_sticky(self, priced_setup, make_quotation, vendors):
        v1, v2 = vendors
        quotation = make_quotation()
        recompute_quotation(quotation.pk)
        basic = line_for(quotation, "BASIC")

        select_vendor(basic.pk, v1.id)
        basic.refresh_from_db()
        assert basic.selected_vendor_id == v1.id
        assert basic.total_cost_inr == Decimal("332.00")
        sale = quotation.sale_lines.get(charge__charge_code="BASIC")
        assert sale.total_sale_price == Decimal("398.40")

        recompute_quotation(quotation.pk)
        assert line_for(quotation, "BASIC").selected_vendor_id == v1.id

    def test_selection_falls_back_when_vendor_stops_quoting(self, priced_setup, make_quotation, vendors):
        v1, v2 = vendors
        h1, _ = priced_setup
        quotation = make_quotation()
        recompute_quotation(quotation.pk)
        select_vendor(line_for(quotation, "BASIC").pk, v1.id)

        h1.lines.filter(charge__charge_code="BASIC").update(is_active=False)
        h1.save()
        recompute_quotation(quotation.pk)
        assert line_for(quotation, "BASIC").selected_vendor_id == v2.id

    def test_selection_bumps_version(self, priced_setup, make_quotation, vendors):
        quotation = make_quotation()
        version = recompute_quotation(quotation.pk).version
        select_vendor(line_for(quotation, "BASIC").pk, vendors[0].id)
        quotation.refresh_from_db()
        assert quotation.version == version + 1

    def test_unknown_vendor_rejected(self, priced_setup, make_quotation, vendors):
        quotation = make_quotation()
        recompute_quotation(quotation.pk)
        with pytest.raises(ValueError):
            select_vendor(line_for(quotation, "DOC").pk, vendors[1].id)

    def test_locked_quotation(self, priced_setup, make_quotation, vendors):
        quotation = make_quotation()
        recompute_quotation(quotation.pk)
        QuotationHeader.objects.filter(pk=quotation.pk).update(quote_status=QuotationHeader.STATUS_SENT)
        with pytest.raises(QuotationLocked):
            select_vendor(line_for(quotation, "BASIC").pk, vendors[0].id)

    def test_vendor_options_and_rank(self, priced_setup, make_quotation, vendors):
        v1, v2 = vendors
        quotation = make_quotation()
        recompute_quotation(quotation.pk)
        options = vendor_options(line_for(quotation, "BASIC"))
        assert [(o.vendor_id, o.is_rank_1, o.is_current_selection) for o in options] == [
            (v2.id, True, True),
            (v1.id, False, False),
        ]
        summary = {row["charge_code"]: row for row in cost_line_summary(quotation)}
        assert summary["BASIC"]["is_rank_1"] is True
        assert summary["BASIC"]["vendor_count"] == 2


def test_rank_tolerance():
    assert is_rank_one(Decimal("100.005"), Decimal("100.00"))
    assert not is_rank_one(Decimal("100.01"), Decimal("100.00"))


def test_choose_vendor_without_costs():
    assert choose_vendor([], None) is None
