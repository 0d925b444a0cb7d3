from __future__ import annotations

import json
import logging
import os
from datetime import date
from typing import Dict, Iterable, List, Optional

from django.utils import timezone

from ..services.utils import d
from . import RateQuote

logger = logging.getLogger(__name__)


class EnvProvider:
    """
    Reads base-currency rates from the FX_RATES env var as JSON.
    Example:
      FX_RATES='{"USD": 83.25, "EUR": 90.10}'
    """

    source = "env"

    def __init__(self, as_of: Optional[date] = None):
        self.as_of = as_of or timezone.localdate()
        blob = os.environ.get("FX_RATES", "{}")
        try:
            self.table: Dict[str, float] = json.loads(blob)
        except json.JSONDecodeError:
            logger.exception("Invalid FX_RATES JSON; falling back to empty table")
            self.table = {}

    def fetch(self, currencies: Iterable[str]) -> List[RateQuote]:
        out: List[RateQuote] = []
        for code in currencies:
            code = code.strip().upper()
            if self.table.get(code) is None:
                raise ValueError(f"No rate configured in FX_RATES for {code}")
            out.append(RateQuote(currency=code, rate=d(self.table[code]), as_of=self.as_of, source=self.source))
        return out
