"""
Error kinds raised by the costing and margin engine.

Every error carries enough context (charge, dimension row, currency pair, date)
for the caller to report exactly which input broke the calculation.
"""
from __future__ import annotations

from typing import List, Optional


class QuoteEngineError(Exception):
    """Base exception for all costing/pricing engine errors"""
    code = "quote_engine_error"


class InvalidDimension(QuoteEngineError):
    """Raised when a dimension row has a non-positive measurement"""
    code = "invalid_dimension"

    def __init__(self, row_label: str, field: str, value):
        self.row_label = row_label
        self.field = field
        self.value = value
        super().__init__(f"Dimension {row_label}: {field} must be greater than zero (got {value})")


class NoRateAvailable(QuoteEngineError):
    """Raised when no active exchange rate covers a currency pair on a date"""
    code = "no_rate_available"

    def __init__(self, from_currency: str, to_currency: str, on, charge_code: Optional[str] = None):
        self.from_currency = from_currency
        self.to_currency = to_currency
        self.on = on
        self.charge_code = charge_code
        msg = f"No exchange rate {from_currency}->{to_currency} effective on {on}"
        if charge_code:
            msg += f" (needed for charge {charge_code})"
        super().__init__(msg)


class InvalidRateValue(QuoteEngineError):
    """Raised when a submitted exchange-rate batch fails validation"""
    code = "invalid_rate_value"

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid exchange rate")


class NoMarginRuleConfigured(QuoteEngineError):
    """Raised when no active margin rule matches a charge/customer pair"""
    code = "no_margin_rule"

    def __init__(self, charge_id, customer_id, charge_code: Optional[str] = None):
        self.charge_id = charge_id
        self.customer_id = customer_id
        label = charge_code or f"#{charge_id}"
        super().__init__(
            f"No margin rule configured for charge {label} and customer #{customer_id}; "
            "a global default rule is required"
        )


class NoVendorCostAvailable(QuoteEngineError):
    """
    Informational: a charge has no qualifying vendor rate.

    Recompute records this against the cost line and carries on; it is never raised
    out of a recompute.
    """
    code = "no_vendor_cost"

    def __init__(self, charge_code: str, quantity=None, on=None):
        self.charge_code = charge_code
        self.quantity = quantity
        self.on = on
        super().__init__(f"No vendor rate for charge {charge_code} (quantity {quantity}, date {on})")


class StaleRecompute(QuoteEngineError):
    """Raised when the quotation changed underneath an optimistic-lock holder"""
    code = "stale_recompute"


class QuotationLocked(QuoteEngineError):
    """Raised when recomputing a quotation whose status no longer allows it"""
    code = "quotation_locked"


class ApprovalError(QuoteEngineError):
    code = "approval_error"


class ApprovalAlreadyPending(ApprovalError):
    code = "approval_already_pending"


class InvalidApprovalTransition(ApprovalError):
    code = "invalid_approval_transition"
