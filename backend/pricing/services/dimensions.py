from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional, Tuple

from ..conf import engine_setting
from ..dataclasses import DimensionInput, DimensionResult, DimensionTotals
from ..exceptions import InvalidDimension
from .utils import ZERO, d

CM3_PER_M3 = Decimal(1_000_000)


def volumetric_divisor(mode: str) -> Tuple[Decimal, bool]:
    """
    Divisor used for a transport mode and whether volumetric weight counts
    toward the chargeable weight for it.

    Only modes listed in QUOTE_ENGINE["VOLUMETRIC_DIVISORS"] (AIR by default) charge
    on volume; for the rest the default divisor is still used to report volumetric
    weight on each row.
    """
    overrides = engine_setting("VOLUMETRIC_DIVISORS") or {}
    if mode in overrides:
        return d(overrides[mode]), True
    return d(engine_setting("DEFAULT_VOLUMETRIC_DIVISOR")), False


def _check_positive(row: DimensionInput, label: str) -> None:
    for field_name in ("length_cm", "width_cm", "height_cm", "pieces", "weight_per_piece"):
        value = getattr(row, field_name)
        if value is None or d(value) <= ZERO:
            raise InvalidDimension(label, field_name, value)


def calculate_dimension(row: DimensionInput, divisor, label: Optional[str] = None) -> DimensionResult:
    label = label or row.label or "row"
    _check_positive(row, label)
    cbm_per_piece = d(row.length_cm) * d(row.width_cm) * d(row.height_cm) / CM3_PER_M3
    pieces = d(row.pieces)
    total_cbm = cbm_per_piece * pieces
    return DimensionResult(
        label=label,
        cbm_per_piece=cbm_per_piece,
        total_cbm=total_cbm,
        total_weight=pieces * d(row.weight_per_piece),
        volumetric_weight=total_cbm * d(divisor),
    )


def calculate_dimensions(rows: Iterable[DimensionInput], mode: str, divisor=None) -> DimensionTotals:
    """
    Derive CBM, actual, volumetric and chargeable weight for a set of piece groups.

    Chargeable weight is max(actual, volumetric) for modes that charge on volume and
    plain actual weight otherwise. Passing `divisor` forces volumetric charging with
    that divisor.
    """
    if divisor is not None:
        divisor, applies = d(divisor), True
    else:
        divisor, applies = volumetric_divisor(mode)

    totals = DimensionTotals(rows=[], divisor=divisor, volumetric_applies=applies)
    for index, row in enumerate(rows, start=1):
        result = calculate_dimension(row, divisor, label=row.label or f"#{index}")
        totals.rows.append(result)
        totals.total_pieces += int(row.pieces)
        totals.total_actual_weight += result.total_weight
        totals.total_volumetric_weight += result.volumetric_weight
        totals.total_cbm += result.total_cbm

    if applies:
        totals.chargeable_weight = max(totals.total_actual_weight, totals.total_volumetric_weight)
    else:
        totals.chargeable_weight = totals.total_actual_weight
    return totals
