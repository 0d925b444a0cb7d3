from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional

import requests
from bs4 import BeautifulSoup
from django.utils import timezone

from ..conf import engine_setting
from ..services.utils import q6
from . import RateQuote

CODE_RE = re.compile(r"^([A-Z]{3})\s*(\(\s*100\s*\))?$")


class HtmlTableProvider:
    """
    Scrapes a published reference-rate table: one row per currency, quoted as
    base-currency units per one unit of foreign currency (e.g. "US Dollar | USD | 83.2510").
    Rows quoted per 100 units ("JPY (100)") are scaled down.
    """

    source = "html_table"

    def __init__(self, url: Optional[str] = None, timeout: int = 15) -> None:
        self.url = url or engine_setting("FX_SOURCE_URL")
        self.timeout = timeout

    def _fetch_html(self) -> str:
        if not self.url:
            raise RuntimeError("FX reference table: no FX_SOURCE_URL configured")
        headers = {
            "User-Agent": "QuoteEngineFXBot/1.0",
            "Accept": "text/html,application/xhtml+xml",
        }
        resp = requests.get(self.url, headers=headers, timeout=self.timeout)
        resp.raise_for_status()
        return resp.text

    @staticmethod
    def _parse_rates(html: str) -> Dict[str, Decimal]:
        soup = BeautifulSoup(html, "html.parser")
        table = None
        for t in soup.find_all("table"):
            headers = [th.get_text(strip=True).lower() for th in t.find_all("th")]
            if any("currency" in h for h in headers) and any("rate" in h for h in headers):
                table = t
                break
        if table is None:
            raise RuntimeError("FX reference table: table not found")

        rates: Dict[str, Decimal] = {}
        for tr in table.find_all("tr"):
            cells = [td.get_text(" ", strip=True) for td in tr.find_all("td")]
            if len(cells) < 2:
                continue
            code = None
            per_hundred = False
            for cell in cells:
                match = CODE_RE.match(cell.strip().upper())
                if match:
                    code = match.group(1)
                    per_hundred = match.group(2) is not None
                    break
            if code is None:
                continue
            value = None
            for cell in reversed(cells):
                try:
                    value = Decimal(cell.replace(",", ""))
                    break
                except InvalidOperation:
                    continue
            if value is None or not value.is_finite() or value <= 0:
                continue
            rates[code] = q6(value / 100 if per_hundred else value)
        return rates

    def fetch(self, currencies: Iterable[str], as_of: Optional[date] = None) -> List[RateQuote]:
        table = self._parse_rates(self._fetch_html())
        as_of = as_of or timezone.localdate()
        out: List[RateQuote] = []
        for code in currencies:
            code = code.strip().upper()
            if code in table:
                out.append(RateQuote(currency=code, rate=table[code], as_of=as_of, source=self.source))
        return out
