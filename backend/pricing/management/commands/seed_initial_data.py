# backend/pricing/management/commands/seed_initial_data.py

from datetime import date, timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from core.models import Charge, Currency, Location, Supplier, TaxCode, UnitOfMeasure
from customers.models import Customer
from pricing.models import ALL_TERMS, ChargeRule, ExchangeRate, MarginRule, VendorRateHeader, VendorRateLine

#region -------- Reference data --------
CURRENCIES = [("INR", "Indian Rupee"), ("USD", "US Dollar"), ("EUR", "Euro"), ("GBP", "Pound Sterling"),
              ("SGD", "Singapore Dollar"), ("AED", "UAE Dirham")]

UOMS = [("KG", "Per Kilogram", "weight"), ("CBM", "Per Cubic Metre", "volume"),
        ("SHPT", "Per Shipment", "shipment"), ("BL", "Per Bill of Lading", "document")]

TAX_CODES = [("GST18", "GST 18%", Decimal("18.00")), ("GST5", "GST 5%", Decimal("5.00")),
             ("EXEMPT", "Exempt", Decimal("0.00"))]

# code, name, uom, tax, type
CHARGES = [
    ("BL", "Bill of Lading Fee", "BL", "GST18", "fixed"),
    ("DOC", "Documentation Fee", "SHPT", "GST18", "fixed"),
    ("BASIC", "Basic Freight", "KG", "GST5", "weight_based"),
    ("FUEL", "Fuel Surcharge", "KG", "GST5", "weight_based"),
    ("HAND", "Handling Charges", "SHPT", "GST18", "fixed"),
    ("THC", "Terminal Handling Charges", "SHPT", "GST18", "fixed"),
    ("PICKUP", "Pickup Charges", "SHPT", "GST18", "variable"),
    ("DELIVERY", "Delivery Charges", "SHPT", "GST18", "variable"),
    ("ADDR", "Address Correction", "SHPT", "GST18", "fixed"),
    ("OVER", "Overweight Surcharge", "SHPT", "GST18", "variable"),
    ("HAZMAT", "Dangerous Goods Surcharge", "SHPT", "GST18", "fixed"),
    ("INSURANCE", "Cargo Insurance", "SHPT", "EXEMPT", "variable"),
]

CHARGE_SETS = {
    ("AIR", "IMPORT"): ["BL", "DOC", "BASIC", "FUEL", "HAND", "PICKUP", "THC"],
    ("AIR", "EXPORT"): ["BL", "DOC", "BASIC", "FUEL", "HAND", "DELIVERY", "THC"],
    ("SEA", "IMPORT"): ["BL", "DOC", "BASIC", "HAND", "PICKUP", "THC", "OVER"],
    ("SEA", "EXPORT"): ["BL", "DOC", "BASIC", "HAND", "DELIVERY", "THC", "OVER"],
}

PREMIUM_CHARGES = ["FUEL", "THC", "HAZMAT", "INSURANCE"]
STANDARD_CHARGES = ["BASIC", "DOC", "BL", "HAND"]
#endregion


#region -------- Helper Functions --------
def ensure_uom(code, name, category):
    return UnitOfMeasure.objects.get_or_create(code=code, defaults={"name": name, "category": category})[0]


def ensure_tax(code, name, rate):
    return TaxCode.objects.get_or_create(tax_code=code, defaults={"tax_name": name, "rate": rate})[0]


def ensure_charge(code, name, uom_code, tax_code, charge_type):
    charge, _ = Charge.objects.update_or_create(
        charge_code=code,
        defaults={
            "charge_name": name,
            "default_uom": UnitOfMeasure.objects.get(code=uom_code),
            "default_tax": TaxCode.objects.get(tax_code=tax_code),
            "charge_type": charge_type,
            "is_active": True,
        },
    )
    return charge


def ensure_margin(precedence, pct, fixed="0", charge=None, customer=None, description=""):
    return MarginRule.objects.update_or_create(
        charge=charge, customer=customer, precedence=precedence,
        defaults={"margin_percentage": Decimal(pct), "margin_fixed": Decimal(fixed),
                  "is_active": True, "description": description},
    )[0]


def ensure_fx(from_ccy, to_ccy, rate, effective):
    ExchangeRate.objects.update_or_create(
        from_currency=from_ccy, to_currency=to_ccy, effective_date=effective,
        defaults={"rate": Decimal(rate), "inverse_rate": None, "status": "active", "source": "seed"},
    )
#endregion


#region -------- Seeding Functions --------
@transaction.atomic
def seed_reference_data():
    for code, name in CURRENCIES:
        Currency.objects.get_or_create(code=code, defaults={"name": name})
    for row in UOMS:
        ensure_uom(*row)
    for row in TAX_CODES:
        ensure_tax(*row)
    for row in CHARGES:
        ensure_charge(*row)
    Location.objects.get_or_create(code="BOM", defaults={"name": "Mumbai", "country_code": "IN", "location_type": "airport"})
    Location.objects.get_or_create(code="DXB", defaults={"name": "Dubai", "country_code": "AE", "location_type": "airport"})
    Location.objects.get_or_create(code="INNSA", defaults={"name": "Nhava Sheva", "country_code": "IN"})
    Location.objects.get_or_create(code="SGSIN", defaults={"name": "Singapore", "country_code": "SG"})


@transaction.atomic
def seed_charge_rules():
    for (mode, movement), codes in CHARGE_SETS.items():
        for code in codes:
            ChargeRule.objects.update_or_create(
                mode=mode, movement=movement, terms=ALL_TERMS,
                charge=Charge.objects.get(charge_code=code),
                defaults={"is_active": True},
            )


@transaction.atomic
def seed_margin_rules():
    ensure_margin(1, "0.20", description="Global default")

    regular, _ = Customer.objects.get_or_create(name="Regular Shipper Pvt Ltd", defaults={"code": "REG"})
    premium, _ = Customer.objects.get_or_create(name="Premium Logistics Ltd", defaults={"code": "PRM"})
    ensure_margin(2, "0.10", customer=premium, description="Premium customer discount")
    ensure_margin(2, "0.15", customer=regular, description="Regular customer")

    for code in PREMIUM_CHARGES:
        ensure_margin(3, "0.25", "100", charge=Charge.objects.get(charge_code=code), description="Premium charge")
    for code in STANDARD_CHARGES:
        ensure_margin(3, "0.20", charge=Charge.objects.get(charge_code=code), description="Standard charge")

    ensure_margin(4, "0.08", charge=Charge.objects.get(charge_code="BASIC"), customer=premium,
                  description="Premium customer freight")
    ensure_margin(4, "0.15", "50", charge=Charge.objects.get(charge_code="FUEL"), customer=premium,
                  description="Premium customer fuel")


@transaction.atomic
def seed_financials(today: date):
    effective = today.replace(day=1)
    ensure_fx("USD", "INR", "83.250000", effective)
    ensure_fx("EUR", "INR", "90.100000", effective)
    ensure_fx("GBP", "INR", "105.400000", effective)
    ensure_fx("SGD", "INR", "61.800000", effective)
    ensure_fx("AED", "INR", "22.660000", effective)


@transaction.atomic
def seed_vendor_rates(today: date):
    bom = Location.objects.get(code="BOM")
    dxb = Location.objects.get(code="DXB")
    kg = UnitOfMeasure.objects.get(code="KG")
    carriers = [
        Supplier.objects.get_or_create(code="GAF", defaults={"name": "Gulf Air Freight"})[0],
        Supplier.objects.get_or_create(code="SKY", defaults={"name": "Skyline Cargo"})[0],
    ]
    slabs = [(Decimal("0"), Decimal("45"), Decimal("4.10")),
             (Decimal("45.01"), Decimal("100"), Decimal("3.60")),
             (Decimal("100.01"), Decimal("9999999999.99"), Decimal("3.05"))]
    for offset, vendor in enumerate(carriers):
        header, _ = VendorRateHeader.objects.get_or_create(
            vendor=vendor, mode="AIR", movement="EXPORT", origin=bom, destination=dxb,
            valid_from=today.replace(day=1),
            defaults={"valid_upto": today + timedelta(days=365)},
        )
        for seq, (lo, hi, rate) in enumerate(slabs, start=1):
            VendorRateLine.objects.update_or_create(
                rate_header=header, charge=Charge.objects.get(charge_code="BASIC"), uom=kg,
                slab_min=lo, slab_max=hi,
                defaults={"currency_code": "USD", "cost_rate": rate + Decimal("0.15") * offset, "sequence": seq},
            )
        for code, amount in (("DOC", "25"), ("BL", "35"), ("HAND", "40"), ("THC", "55")):
            charge = Charge.objects.get(charge_code=code)
            VendorRateLine.objects.update_or_create(
                rate_header=header, charge=charge, uom=charge.default_uom,
                slab_min=Decimal("0"), slab_max=Decimal("9999999999.99"),
                defaults={"currency_code": "USD", "cost_rate": Decimal(amount) + offset * 5,
                          "is_fixed_rate": True, "sequence": 1},
            )
#endregion


class Command(BaseCommand):
    help = "Seeds currencies, charges, charge rules, margin rules, FX rates and a sample air tariff."

    def add_arguments(self, parser):
        parser.add_argument("--skip-rates", action="store_true", help="Do not seed FX rates or vendor tariffs")

    def handle(self, *args, **options):
        today = timezone.localdate()
        self.stdout.write(self.style.WARNING("Seeding quotation engine data..."))

        self.stdout.write("Seeding reference data (currencies, units, tax codes, charges)...")
        seed_reference_data()

        self.stdout.write("Seeding charge applicability rules...")
        seed_charge_rules()

        self.stdout.write("Seeding margin rule ladder...")
        seed_margin_rules()

        if not options["skip_rates"]:
            self.stdout.write("Seeding FX rates and sample vendor tariffs...")
            seed_financials(today)
            seed_vendor_rates(today)

        self.stdout.write(self.style.SUCCESS("Quotation engine data has been seeded successfully."))
