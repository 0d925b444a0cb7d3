from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .services.utils import ZERO, d


@dataclass
class DimensionInput:
    length_cm: Decimal
    width_cm: Decimal
    height_cm: Decimal
    pieces: int
    weight_per_piece: Decimal
    label: str = ""


@dataclass
class DimensionResult:
    label: str
    cbm_per_piece: Decimal
    total_cbm: Decimal
    total_weight: Decimal
    volumetric_weight: Decimal


@dataclass
class DimensionTotals:
    rows: List[DimensionResult]
    divisor: Decimal
    volumetric_applies: bool
    total_pieces: int = 0
    total_actual_weight: Decimal = ZERO
    total_volumetric_weight: Decimal = ZERO
    total_cbm: Decimal = ZERO
    chargeable_weight: Decimal = ZERO


@dataclass
class RateSnapshot:
    from_currency: str
    to_currency: str
    rate: Decimal
    effective_date: Optional[date] = None
    rate_id: Optional[int] = None
    inverted: bool = False


@dataclass
class RateValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors)}


@dataclass(frozen=True)
class RouteFilter:
    mode: Optional[str] = None
    movement: Optional[str] = None
    terms: Optional[str] = None
    origin_id: Optional[int] = None
    destination_id: Optional[int] = None


@dataclass
class VendorCostCandidate:
    vendor_id: int
    unit_cost_rate: Decimal
    currency: str
    rate_header_id: int
    rate_line_id: int
    is_fixed_rate: bool = False


@dataclass
class VendorCost:
    """One competing vendor's cost for a charge, already converted to the base currency."""
    vendor_id: int
    cost: Decimal
    unit_cost_rate: Decimal
    currency: str
    exchange_rate: Decimal

    def to_json(self) -> Dict[str, Any]:
        return {
            "vendor_id": self.vendor_id,
            "cost": str(self.cost),
            "unit_cost_rate": str(self.unit_cost_rate),
            "currency": self.currency,
            "exchange_rate": str(self.exchange_rate),
        }

    @classmethod
    def from_json(cls, blob: Dict[str, Any]) -> "VendorCost":
        return cls(
            vendor_id=int(blob["vendor_id"]),
            cost=d(blob["cost"]),
            unit_cost_rate=d(blob["unit_cost_rate"]),
            currency=blob["currency"],
            exchange_rate=d(blob["exchange_rate"]),
        )


@dataclass
class VendorOption:
    vendor_id: int
    cost: Decimal
    unit_cost_rate: Decimal
    currency: str
    exchange_rate: Decimal
    is_current_selection: bool
    is_rank_1: bool


@dataclass
class MarginResolution:
    rule_id: int
    precedence: int
    tier: str
    margin_percentage: Decimal
    margin_fixed: Decimal


@dataclass
class PriceBreakdown:
    cost: Decimal
    sale_price: Decimal
    margin_percentage: Decimal
    margin_fixed: Decimal
    rule_id: int
    precedence: int
    tier: str

    @property
    def calculation(self) -> str:
        return f"{self.cost} x (1 + {self.margin_percentage}) + {self.margin_fixed} = {self.sale_price}"


@dataclass
class QuotationTotals:
    base_currency: str
    total_cost: Decimal = ZERO
    total_sale: Decimal = ZERO
    total_tax: Decimal = ZERO
    total_with_tax: Decimal = ZERO
    margin_amount: Decimal = ZERO
    margin_percentage: Optional[Decimal] = None
    costed_lines: int = 0
    uncosted_lines: int = 0
    total_chargeable_weight: Decimal = ZERO
    total_cbm: Decimal = ZERO
    total_pieces: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {k: (str(v) if isinstance(v, Decimal) else v) for k, v in asdict(self).items()}


@dataclass
class RecomputeResult:
    cost_lines: List[Any]
    sale_lines: List[Any]
    totals: QuotationTotals
    warnings: List[str] = field(default_factory=list)
    version: int = 0
