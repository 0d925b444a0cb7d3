from __future__ import annotations

import logging
from datetime import date
from typing import List

import requests
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from pricing.conf import engine_setting
from pricing.exceptions import InvalidRateValue, NoRateAvailable
from pricing.fx_providers import load as load_provider
from pricing.services.fx_service import ExchangeRateEngine
from pricing.services.utils import d

logger = logging.getLogger(__name__)


def parse_currencies(arg: str) -> List[str]:
    codes = [part.strip().upper() for part in (arg or "").split(",") if part.strip()]
    for code in codes:
        if len(code) != 3 or not code.isalpha():
            raise CommandError(f"Invalid currency '{code}'. Use ISO codes, e.g. USD,EUR")
    return codes


class Command(BaseCommand):
    help = "Fetch reference FX rates and publish them as <currency> -> base rates (ENV provider by default)."

    def add_arguments(self, parser):
        parser.add_argument("--currencies", type=str, help="Comma-separated ISO codes, e.g. USD,EUR,GBP")
        parser.add_argument("--provider", type=str, default="env", help="FX provider to use (env|html)")
        parser.add_argument("--base", type=str, default=None, help="Base currency (defaults to QUOTE_ENGINE BASE_CURRENCY)")
        parser.add_argument("--effective-date", type=str, default=None, help="YYYY-MM-DD, defaults to today")
        parser.add_argument("--dry-run", action="store_true", help="Validate and report without saving")

    def handle(self, *args, **options):
        currencies = parse_currencies(options.get("currencies"))
        if not currencies:
            raise CommandError("--currencies is required (e.g., USD,EUR)")

        effective = timezone.localdate()
        if options.get("effective_date"):
            try:
                effective = date.fromisoformat(options["effective_date"])
            except ValueError as e:
                raise CommandError(f"Invalid --effective-date: {e}")

        engine = ExchangeRateEngine(options.get("base"))
        try:
            provider = load_provider(options["provider"])
            quotes = provider.fetch(currencies)
        except (ValueError, RuntimeError, requests.RequestException) as e:
            raise CommandError(f"FX provider failed: {e}")

        missing = set(currencies) - {q.currency for q in quotes}
        for code in sorted(missing):
            self.stdout.write(self.style.WARNING(f"No rate published for {code}; skipped"))
        if not quotes:
            raise CommandError("Provider returned no rates")

        anomaly_pct = d(engine_setting("FX_ANOMALY_PCT"))
        rates = {}
        for q in quotes:
            rates[q.currency] = q.rate
            try:
                previous = engine.get_rate(q.currency, engine.base_currency, effective)
            except NoRateAvailable:
                continue
            if previous and abs(q.rate - previous) / previous > anomaly_pct:
                logger.warning(
                    "FX anomaly: %s->%s changed by %.2f%% (old=%s new=%s)",
                    q.currency, engine.base_currency, float(abs(q.rate - previous) / previous * 100), previous, q.rate,
                )

        check = engine.validate_rates(rates)
        if not check.valid:
            raise CommandError("Rejected rate batch:\n  " + "\n  ".join(check.errors))

        if options["dry_run"]:
            for code, rate in rates.items():
                self.stdout.write(f"[dry-run] {code}->{engine.base_currency} {rate} @ {effective}")
            return

        try:
            rows = engine.bulk_update_rates(rates, effective_date=effective, source=quotes[0].source)
        except InvalidRateValue as e:
            raise CommandError(str(e))
        for row in rows:
            self.stdout.write(self.style.SUCCESS(
                f"Saved {row.from_currency}->{row.to_currency} {row.rate} @ {row.effective_date} [{row.source}]"
            ))
