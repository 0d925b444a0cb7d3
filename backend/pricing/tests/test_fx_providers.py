from __future__ import annotations

import json
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

import pytest
import requests
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase
from django.utils import timezone

from pricing.fx_providers import load
from pricing.fx_providers.env import EnvProvider
from pricing.fx_providers.html_table import HtmlTableProvider
from pricing.models import ExchangeRate

REFERENCE_TABLE_HTML = """
<html><body>
<table><tr><th>Notice</th></tr><tr><td>Rates are indicative</td></tr></table>
<table>
  <thead>
    <tr><th>Currency</th><th>Code</th><th>Reference Rate</th></tr>
  </thead>
  <tbody>
    <tr><td>US Dollar</td><td>USD</td><td>83.2510</td></tr>
    <tr><td>Kuwaiti Dinar</td><td>KWD</td><td>1,090.1200</td></tr>
    <tr><td>Japanese Yen</td><td>JPY (100)</td><td>55.6700</td></tr>
    <tr><td>Pound Sterling</td><td>GBP</td><td>0.0000</td></tr>
    <tr><td>Yen total</td><td>n/a</td><td>1.00</td></tr>
  </tbody>
</table>
</body></html>
""".strip()


class HtmlTableParseTests(SimpleTestCase):
    def test_parse_rates(self):
        p = HtmlTableProvider(url="https://example.invalid/rates")
        with patch.object(HtmlTableProvider, "_fetch_html", return_value=REFERENCE_TABLE_HTML):
            quotes = p.fetch(["USD", "JPY", "GBP"], as_of=date(2025, 6, 1))
        got = {q.currency: q.rate for q in quotes}
        self.assertEqual(got["USD"], Decimal("83.251000"))
        self.assertEqual(got["JPY"], Decimal("0.556700"))  # quoted per 100 units
        self.assertNotIn("GBP", got)  # zero rates are skipped
        self.assertTrue(all(q.source == "html_table" and q.as_of == date(2025, 6, 1) for q in quotes))

    def test_thousands_separator_is_stripped(self):
        rates = HtmlTableProvider._parse_rates(REFERENCE_TABLE_HTML)
        self.assertEqual(rates["KWD"], Decimal("1090.120000"))

    def test_table_not_found(self):
        p = HtmlTableProvider(url="https://example.invalid/rates")
        with patch.object(HtmlTableProvider, "_fetch_html", return_value="<html>No table</html>"):
            with self.assertRaises(RuntimeError):
                p.fetch(["USD"])

    def test_missing_url(self):
        with self.assertRaises(RuntimeError):
            HtmlTableProvider(url="")._fetch_html()


class EnvProviderTests(SimpleTestCase):
    def test_reads_json_table(self):
        with patch.dict("os.environ", {"FX_RATES": json.dumps({"USD": 83.25})}):
            quotes = EnvProvider(as_of=date(2025, 6, 1)).fetch(["usd"])
        self.assertEqual([(q.currency, q.rate) for q in quotes], [("USD", Decimal("83.25"))])

    def test_missing_currency(self):
        with patch.dict("os.environ", {"FX_RATES": "{}"}):
            with self.assertRaises(ValueError):
                EnvProvider().fetch(["EUR"])

    def test_loader(self):
        self.assertIsInstance(load("html"), HtmlTableProvider)
        self.assertIsInstance(load(None), EnvProvider)
        with self.assertRaises(ValueError):
            load("carrier-pigeon")


@pytest.mark.django_db
class TestUpdateExchangeRatesCommand:
    def test_env_provider_publishes_rates(self):
        out = StringIO()
        with patch.dict("os.environ", {"FX_RATES": json.dumps({"USD": "83.25", "EUR": "90.1"})}):
            call_command("update_exchange_rates", "--currencies", "USD,EUR", stdout=out)
        today = timezone.localdate()
        assert ExchangeRate.objects.get(from_currency="USD", to_currency="INR", effective_date=today).rate == Decimal("83.25")
        assert ExchangeRate.objects.filter(source="env").count() == 2
        assert "Saved USD->INR" in out.getvalue()

    def test_dry_run_writes_nothing(self):
        out = StringIO()
        with patch.dict("os.environ", {"FX_RATES": json.dumps({"USD": "83.25"})}):
            call_command("update_exchange_rates", "--currencies", "USD", "--dry-run", stdout=out)
        assert ExchangeRate.objects.count() == 0
        assert "[dry-run] USD->INR 83.25" in out.getvalue()

    def test_anomalous_jump_is_logged(self, caplog):
        ExchangeRate.objects.create(from_currency="USD", to_currency="INR", rate=Decimal("80"),
                                    effective_date=timezone.localdate() - timedelta(days=1))
        with patch.dict("os.environ", {"FX_RATES": json.dumps({"USD": "90"})}):
            call_command("update_exchange_rates", "--currencies", "USD", stdout=StringIO())
        assert "FX anomaly" in caplog.text

    def test_invalid_rates_abort(self):
        with patch.dict("os.environ", {"FX_RATES": json.dumps({"USD": "-1"})}):
            with pytest.raises(CommandError, match="USD: rate must be greater than 0"):
                call_command("update_exchange_rates", "--currencies", "USD", stdout=StringIO())
        assert ExchangeRate.objects.count() == 0

    def test_bad_arguments(self):
        with pytest.raises(CommandError, match="Invalid currency"):
            call_command("update_exchange_rates", "--currencies", "DOLLAR")
        with pytest.raises(CommandError, match="required"):
            call_command("update_exchange_rates")

    def test_html_provider(self):
        with patch.object(HtmlTableProvider, "_fetch_html", return_value=REFERENCE_TABLE_HTML):
            call_command("update_exchange_rates", "--currencies", "USD", "--provider", "html", stdout=StringIO())
        row = ExchangeRate.objects.get(from_currency="USD")
        assert row.rate == Decimal("83.251")
        assert row.source == "html_table"

    def test_unreachable_feed_is_a_command_error(self):
        with patch.object(HtmlTableProvider, "_fetch_html", side_effect=requests.ConnectionError("timed out")):
            with pytest.raises(CommandError, match="FX provider failed: timed out"):
                call_command("update_exchange_rates", "--currencies", "USD", "--provider", "html", stdout=StringIO())
        assert ExchangeRate.objects.count() == 0
