from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from core.models import Charge, Supplier, TaxCode, UnitOfMeasure
from customers.models import Customer
from pricing import cache as rate_cache
from pricing.models import ALL_TERMS, ChargeRule, ExchangeRate, MarginRule, VendorRateHeader, VendorRateLine


@pytest.fixture(autouse=True)
def clear_rate_cache(settings):
    # Per-process cache so tests that never touch the database can still run.
    settings.CACHES = {"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache",
                                   "LOCATION": "quote-engine-tests"}}
    rate_cache._writes.pending = False
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def today():
    return timezone.localdate()


@pytest.fixture
def kg(db):
    return UnitOfMeasure.objects.create(code="KG", name="Per Kilogram", category="weight")


@pytest.fixture
def shpt(db):
    return UnitOfMeasure.objects.create(code="SHPT", name="Per Shipment", category="shipment")


@pytest.fixture
def gst18(db):
    return TaxCode.objects.create(tax_code="GST18", tax_name="GST 18%", rate=Decimal("18.00"))


@pytest.fixture
def gst5(db):
    return TaxCode.objects.create(tax_code="GST5", tax_name="GST 5%", rate=Decimal("5.00"))


@pytest.fixture
def basic(kg, gst5):
    return Charge.objects.create(charge_code="BASIC", charge_name="Basic Freight", default_uom=kg,
                                 default_tax=gst5, charge_type="weight_based")


@pytest.fixture
def doc(shpt, gst18):
    return Charge.objects.create(charge_code="DOC", charge_name="Documentation Fee", default_uom=shpt,
                                 default_tax=gst18, charge_type="fixed")


@pytest.fixture
def customer(db):
    return Customer.objects.create(name="Acme Exports", code="ACME")


@pytest.fixture
def vendors(db):
    return (
        Supplier.objects.create(code="V1", name="Vendor One"),
        Supplier.objects.create(code="V2", name="Vendor Two"),
    )


@pytest.fixture
def usd_inr(db, today):
    return ExchangeRate.objects.create(from_currency="USD", to_currency="INR", rate=Decimal("83.000000"),
                                       effective_date=today - timedelta(days=10))


@pytest.fixture
def global_margin(db):
    return MarginRule.objects.create(precedence=1, margin_percentage=Decimal("0.2000"), description="Global default")


@pytest.fixture
def air_export_rules(basic, doc):
    return [
        ChargeRule.objects.create(mode="AIR", movement="EXPORT", terms=ALL_TERMS, charge=basic),
        ChargeRule.objects.create(mode="AIR", movement="EXPORT", terms=ALL_TERMS, charge=doc),
    ]


@pytest.fixture
def air_tariffs(vendors, basic, doc, kg, shpt, today):
    """
    Vendor One: BASIC 0-45 @ 4.00 USD, 45.01-100 @ 3.50 USD, DOC flat 25 USD.
    Vendor Two: BASIC 0-45 @ 3.80 USD only.
    """
    v1, v2 = vendors
    window = dict(mode="AIR", movement="EXPORT", valid_from=today - timedelta(days=30),
                  valid_upto=today + timedelta(days=30))
    h1 = VendorRateHeader.objects.create(vendor=v1, **window)
    h2 = VendorRateHeader.objects.create(vendor=v2, **window)
    VendorRateLine.objects.create(rate_header=h1, charge=basic, uom=kg, currency_code="USD",
                                  slab_min=Decimal("0"), slab_max=Decimal("45"), cost_rate=Decimal("4.00"))
    VendorRateLine.objects.create(rate_header=h1, charge=basic, uom=kg, currency_code="USD",
                                  slab_min=Decimal("45.01"), slab_max=Decimal("100"), cost_rate=Decimal("3.50"))
    VendorRateLine.objects.create(rate_header=h1, charge=doc, uom=shpt, currency_code="USD",
                                  cost_rate=Decimal("25.00"), is_fixed_rate=True)
    VendorRateLine.objects.create(rate_header=h2, charge=basic, uom=kg, currency_code="USD",
                                  slab_min=Decimal("0"), slab_max=Decimal("45"), cost_rate=Decimal("3.80"))
    return h1, h2


@pytest.fixture
def make_quotation(customer):
    from quotes.models import QuotationDimension, QuotationHeader

    def _make(dimensions=((50, 40, 30, 2, 10),), **overrides):
        fields = dict(mode="AIR", movement="EXPORT", terms="FOB", customer=customer)
        fields.update(overrides)
        quotation = QuotationHeader.objects.create(**fields)
        for seq, (length, width, height, pieces, weight) in enumerate(dimensions, start=1):
            QuotationDimension.objects.create(
                quotation=quotation, sequence=seq,
                length_cm=Decimal(str(length)), width_cm=Decimal(str(width)), height_cm=Decimal(str(height)),
                pieces=pieces, weight_per_piece=Decimal(str(weight)),
            )
        return quotation

    return _make


@pytest.fixture
def priced_setup(air_export_rules, air_tariffs, usd_inr, global_margin):
    """Everything a quotation needs to recompute cleanly."""
    return air_tariffs


def _user(username, role):
    User = get_user_model()
    return User.objects.create_user(username=username, email=f"{username}@example.com", password="pass", role=role)


@pytest.fixture
def sales_user(db):
    return _user("sally", "sales")


@pytest.fixture
def manager_user(db):
    return _user("morgan", "manager")


@pytest.fixture
def finance_user(db):
    return _user("fin", "finance")


@pytest.fixture
def api_client():
    return APIClient()
