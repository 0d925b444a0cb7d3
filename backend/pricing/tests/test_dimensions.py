from decimal import Decimal

import pytest
from django.test import SimpleTestCase, override_settings

from pricing.dataclasses import DimensionInput
from pricing.exceptions import InvalidDimension
from pricing.services.dimensions import calculate_dimension, calculate_dimensions, volumetric_divisor


def row(length="50", width="40", height="30", pieces=2, weight="10", label=""):
    return DimensionInput(
        length_cm=Decimal(length),
        width_cm=Decimal(width),
        height_cm=Decimal(height),
        pieces=pieces,
        weight_per_piece=Decimal(weight),
        label=label,
    )


class DimensionCalculationTests(SimpleTestCase):
    def test_single_row_air(self):
        totals = calculate_dimensions([row()], "AIR")
        result = totals.rows[0]
        self.assertEqual(result.cbm_per_piece, Decimal("0.06"))
        self.assertEqual(result.total_cbm, Decimal("0.12"))
        self.assertEqual(result.total_weight, Decimal("20"))
        self.assertEqual(result.volumetric_weight, Decimal("20.04"))
        self.assertEqual(totals.chargeable_weight, Decimal("20.04"))
        self.assertEqual(totals.total_pieces, 2)
        self.assertTrue(totals.volumetric_applies)

    def test_sea_charges_on_actual_weight(self):
        totals = calculate_dimensions([row()], "SEA")
        self.assertFalse(totals.volumetric_applies)
        # Volumetric weight is still reported per row.
        self.assertEqual(totals.total_volumetric_weight, Decimal("20.04"))
        self.assertEqual(totals.chargeable_weight, Decimal("20"))

    def test_dense_cargo_uses_actual_weight(self):
        totals = calculate_dimensions([row(weight="100")], "AIR")
        self.assertEqual(totals.chargeable_weight, Decimal("200"))

    def test_multiple_rows_are_summed(self):
        totals = calculate_dimensions([row(), row("100", "100", "100", 1, "5")], "AIR")
        self.assertEqual(totals.total_cbm, Decimal("1.12"))
        self.assertEqual(totals.total_actual_weight, Decimal("25"))
        self.assertEqual(totals.total_volumetric_weight, Decimal("187.04"))
        self.assertEqual(totals.chargeable_weight, Decimal("187.04"))
        self.assertEqual(totals.total_pieces, 3)

    def test_explicit_divisor_forces_volumetric(self):
        totals = calculate_dimensions([row()], "SEA", divisor=200)
        self.assertEqual(totals.total_volumetric_weight, Decimal("24.00"))
        self.assertEqual(totals.chargeable_weight, Decimal("24.00"))

    def test_empty_input(self):
        totals = calculate_dimensions([], "AIR")
        self.assertEqual(totals.chargeable_weight, Decimal("0"))
        self.assertEqual(totals.rows, [])

    @override_settings(QUOTE_ENGINE={"VOLUMETRIC_DIVISORS": {"AIR": 167, "ROAD": 333}})
    def test_configured_divisor_per_mode(self):
        self.assertEqual(volumetric_divisor("ROAD"), (Decimal("333"), True))
        self.assertEqual(volumetric_divisor("RAIL"), (Decimal("167"), False))


@pytest.mark.parametrize("field, value", [
    ("length_cm", Decimal("0")),
    ("width_cm", Decimal("-5")),
    ("height_cm", Decimal("0")),
    ("pieces", 0),
    ("weight_per_piece", Decimal("0")),
])
def test_non_positive_values_are_rejected(field, value):
    bad = row()
    setattr(bad, field, value)
    with pytest.raises(InvalidDimension) as exc_info:
        calculate_dimensions([row(), bad], "AIR")
    assert exc_info.value.field == field
    assert exc_info.value.row_label == "#2"


def test_row_label_is_kept():
    with pytest.raises(InvalidDimension, match="crate-7"):
        calculate_dimension(row(length="0", label="crate-7"), Decimal("167"))
