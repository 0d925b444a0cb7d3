from __future__ import annotations

from typing import Any, Dict

from django.conf import settings

DEFAULTS: Dict[str, Any] = {
    "BASE_CURRENCY": "INR",
    "DEFAULT_VOLUMETRIC_DIVISOR": 167,
    # Modes whose chargeable weight considers volumetric weight, and the divisor each uses.
    "VOLUMETRIC_DIVISORS": {"AIR": 167},
    "APPROVAL_COST_THRESHOLD": "10000",
    "APPROVAL_MIN_MARGIN_PCT": "10",
    "RANK_TOLERANCE": "0.01",
    "RATE_CACHE_TIMEOUT": 3600,
    "MAX_EXCHANGE_RATE": "999999.999999",
    "FX_SOURCE_URL": "",
    "FX_ANOMALY_PCT": "0.05",
}


def engine_setting(name: str) -> Any:
    """Read a QUOTE_ENGINE tunable, falling back to the packaged default."""
    if name not in DEFAULTS:
        raise KeyError(f"Unknown QUOTE_ENGINE setting '{name}'")
    overrides = getattr(settings, "QUOTE_ENGINE", None) or {}
    return overrides.get(name, DEFAULTS[name])
