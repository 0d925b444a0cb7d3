from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone

from pricing.exceptions import InvalidDimension, QuotationLocked, StaleRecompute
from pricing.models import ChargeRule
from quotes.models import QuotationHeader
from quotes.services.approval_workflow import submit_for_approval
from quotes.services.recompute import recompute_quotation

pytestmark = pytest.mark.django_db


def reload(quotation):
    return QuotationHeader.all_objects.get(pk=quotation.pk)


def test_dimension_totals_are_persisted(priced_setup, make_quotation, today):
    quotation = make_quotation()
    result = recompute_quotation(quotation.pk)

    quotation = reload(quotation)
    assert quotation.total_pieces == 2
    assert quotation.total_actual_weight == Decimal("20.000")
    assert quotation.total_volumetric_weight == Decimal("20.040")
    assert quotation.total_chargeable_weight == Decimal("20.040")
    assert quotation.total_cbm == Decimal("0.120000")
    assert quotation.costed_as_of == today
    assert quotation.version == result.version == 2

    row = quotation.dimensions.get()
    assert row.cbm_per_piece == Decimal("0.060000")
    assert row.total_weight == Decimal("20.000")
    assert row.volumetric_weight == Decimal("20.040")


def test_sea_quotation_charges_actual_weight(priced_setup, make_quotation):
    quotation = make_quotation(mode="SEA")
    recompute_quotation(quotation.pk)
    quotation = reload(quotation)
    assert quotation.total_volumetric_weight == Decimal("20.040")
    assert quotation.total_chargeable_weight == Decimal("20.000")


def test_slabs_match_the_stored_chargeable_weight(priced_setup, make_quotation, vendors):
    # 0.269464 cbm x 167 = 45.000488 kg, stored as 45.000
    quotation = make_quotation(dimensions=((104, "25.91", 100, 1, 10),))
    recompute_quotation(quotation.pk)
    quotation = reload(quotation)
    assert quotation.total_chargeable_weight == Decimal("45.000")

    basic = quotation.cost_lines.get(charge__charge_code="BASIC")
    assert basic.is_costed
    assert basic.quantity == quotation.total_chargeable_weight
    assert basic.selected_vendor_id == vendors[1].id


def test_recompute_is_repeatable(priced_setup, make_quotation):
    quotation = make_quotation()
    first = recompute_quotation(quotation.pk)
    second = recompute_quotation(quotation.pk)
    assert second.totals.as_dict() == first.totals.as_dict()
    assert quotation.cost_lines.count() == 2
    assert quotation.sale_lines.count() == 2
    assert second.version == 3


def test_stale_version_is_rejected(priced_setup, make_quotation):
    quotation = make_quotation()
    with pytest.raises(StaleRecompute):
        recompute_quotation(quotation.pk, expected_version=7)
    assert reload(quotation).version == 1
    assert recompute_quotation(quotation.pk, expected_version=1).version == 2


def test_sent_quotation_is_locked(priced_setup, make_quotation):
    quotation = make_quotation()
    recompute_quotation(quotation.pk)
    submit_for_approval(quotation.pk)
    assert reload(quotation).quote_status == QuotationHeader.STATUS_SENT
    with pytest.raises(QuotationLocked):
        recompute_quotation(quotation.pk)


def test_invalid_dimension_rolls_back(priced_setup, make_quotation):
    quotation = make_quotation(dimensions=((50, 40, 30, 2, 10), (50, 0, 30, 1, 5)))
    with pytest.raises(InvalidDimension) as exc_info:
        recompute_quotation(quotation.pk)
    assert exc_info.value.row_label == "#2"
    assert exc_info.value.field == "width_cm"

    quotation = reload(quotation)
    assert quotation.version == 1
    assert quotation.total_pieces == 0
    assert not quotation.cost_lines.exists()


def test_charge_that_stops_applying_is_removed(priced_setup, make_quotation, doc):
    quotation = make_quotation()
    recompute_quotation(quotation.pk)
    ChargeRule.objects.filter(charge=doc).update(is_active=False)

    result = recompute_quotation(quotation.pk)
    assert [line.charge.charge_code for line in quotation.cost_lines.all()] == ["BASIC"]
    assert [line.charge.charge_code for line in quotation.sale_lines.all()] == ["BASIC"]
    assert result.totals.total_cost == Decimal("315.40")


def test_quotation_without_dimensions_stays_draft(priced_setup, make_quotation):
    quotation = make_quotation(dimensions=())
    recompute_quotation(quotation.pk)
    quotation = reload(quotation)
    assert quotation.quote_status == QuotationHeader.STATUS_DRAFT
    assert quotation.total_chargeable_weight == Decimal("0")


def test_quote_ids_are_sequential_per_year(make_quotation):
    year = timezone.now().year
    first = make_quotation(dimensions=())
    second = make_quotation(dimensions=())
    assert first.quote_id == f"Q-{year}-0001"
    assert second.quote_id == f"Q-{year}-0002"
    assert str(second) == second.quote_id


def test_quote_id_sequence_grows_past_four_digits(make_quotation, customer):
    year = timezone.now().year
    for seq in ("9999", "10000"):
        QuotationHeader.objects.create(quote_id=f"Q-{year}-{seq}", mode="AIR", movement="EXPORT",
                                       terms="FOB", customer=customer)
    assert make_quotation(dimensions=()).quote_id == f"Q-{year}-10001"


def test_soft_delete_hides_quotation(priced_setup, make_quotation):
    quotation = make_quotation()
    quotation.soft_delete()
    assert not QuotationHeader.objects.filter(pk=quotation.pk).exists()
    hidden = reload(quotation)
    assert hidden.deleted_at is not None
    assert not hidden.allows_recompute


class TestRecostCommand:
    def test_recosts_open_quotations(self, priced_setup, make_quotation):
        quotation = make_quotation()
        out = StringIO()
        call_command("recost_quotations", stdout=out)
        output = out.getvalue()
        assert f"{quotation.quote_id}: cost 2390.40 sale 2868.48" in output
        assert "Recosted 1 of 1 quotations." in output
        assert reload(quotation).version == 2

    def test_bad_quotation_does_not_stop_the_batch(self, priced_setup, make_quotation):
        good = make_quotation()
        bad = make_quotation(dimensions=((50, 40, 30, 1, 0),))
        out = StringIO()
        call_command("recost_quotations", stdout=out)
        output = out.getvalue()
        assert f"{bad.quote_id}: Dimension #1: weight_per_piece must be greater than zero" in output
        assert "Recosted 1 of 2 quotations." in output
        assert reload(good).quote_status == QuotationHeader.STATUS_PENDING_COSTING

    def test_single_quote_filter(self, priced_setup, make_quotation):
        make_quotation()
        target = make_quotation()
        out = StringIO()
        call_command("recost_quotations", "--quote-id", target.quote_id, stdout=out)
        assert "Recosted 1 of 1 quotations." in out.getvalue()

    def test_nothing_to_do(self, db):
        out = StringIO()
        call_command("recost_quotations", stdout=out)
        assert "No open quotations to recost." in out.getvalue()
