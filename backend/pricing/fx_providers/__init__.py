from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional


@dataclass
class RateQuote:
    currency: str
    rate: Decimal  # units of the base currency per 1 unit of `currency`
    as_of: date
    source: str


def load(name: Optional[str]):
    """
    Lazy-load an FX provider by name.
    - 'html', 'html_table', 'reference' -> HtmlTableProvider (URL from QUOTE_ENGINE["FX_SOURCE_URL"])
    - 'env', None -> EnvProvider (FX_RATES env var)
    """
    key = (name or "env").strip().lower()
    if key in {"html", "html_table", "reference"}:
        from .html_table import HtmlTableProvider  # local import keeps requests/bs4 off the import path
        return HtmlTableProvider()
    if key in {"env", "env_provider"}:
        from .env import EnvProvider
        return EnvProvider()
    raise ValueError(f"Unknown FX provider '{name}'")
