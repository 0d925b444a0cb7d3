from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from .cache import invalidate_rate_cache

MODE_CHOICES = [
    ('AIR', 'Air'),
    ('SEA', 'Sea'),
    ('ROAD', 'Road'),
    ('RAIL', 'Rail'),
    ('MULTIMODAL', 'Multimodal'),
]
MOVEMENT_CHOICES = [
    ('IMPORT', 'Import'),
    ('EXPORT', 'Export'),
    ('DOMESTIC', 'Domestic'),
    ('INTER_MODAL', 'Inter-modal'),
]
TERMS_CHOICES = [
    ('EXW', 'EXW'), ('FCA', 'FCA'), ('CPT', 'CPT'), ('CIP', 'CIP'), ('DAP', 'DAP'),
    ('DDP', 'DDP'), ('FOB', 'FOB'), ('CFR', 'CFR'), ('CIF', 'CIF'),
]
ALL_TERMS = 'ALL_TERMS'
RULE_TERMS_CHOICES = TERMS_CHOICES + [(ALL_TERMS, 'All terms')]

OPEN_SLAB_MAX = Decimal('9999999999.99')


class ChargeRule(models.Model):
    mode = models.CharField(max_length=12, choices=MODE_CHOICES)
    movement = models.CharField(max_length=12, choices=MOVEMENT_CHOICES)
    terms = models.CharField(max_length=12, choices=RULE_TERMS_CHOICES, default=ALL_TERMS)
    charge = models.ForeignKey('core.Charge', on_delete=models.CASCADE, related_name='charge_rules')
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'charge_rules'
        unique_together = (('mode', 'movement', 'terms', 'charge'),)
        indexes = [models.Index(fields=['mode', 'movement', 'terms'], name='charge_rule_mode_mov_terms_idx')]

    def __str__(self):
        return f"{self.mode}/{self.movement}/{self.terms} -> {self.charge_id}"


class VendorRateHeader(models.Model):
    vendor = models.ForeignKey('core.Supplier', on_delete=models.PROTECT, related_name='rate_headers')
    mode = models.CharField(max_length=12, choices=MODE_CHOICES)
    movement = models.CharField(max_length=12, choices=MOVEMENT_CHOICES)
    # Null origin/destination/terms mean the tariff applies to any value.
    origin = models.ForeignKey('core.Location', null=True, blank=True, on_delete=models.PROTECT, related_name='+')
    destination = models.ForeignKey('core.Location', null=True, blank=True, on_delete=models.PROTECT, related_name='+')
    terms = models.CharField(max_length=12, choices=TERMS_CHOICES, blank=True, null=True)
    valid_from = models.DateField()
    valid_upto = models.DateField()
    is_active = models.BooleanField(default=True)
    notes = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'vendor_rate_headers'
        indexes = [models.Index(fields=['mode', 'movement', 'valid_from', 'valid_upto'], name='vendor_rate_validity_idx')]

    def clean(self):
        if self.valid_from and self.valid_upto and self.valid_from > self.valid_upto:
            raise ValidationError("valid_from must be on or before valid_upto.")

    def save(self, *args, **kwargs):
        super().save(*args, **kwargs)
        invalidate_rate_cache()

    def delete(self, *args, **kwargs):
        result = super().delete(*args, **kwargs)
        invalidate_rate_cache()
        return result

    def __str__(self):
        return f"{self.vendor} {self.mode}/{self.movement} {self.valid_from}..{self.valid_upto}"


class VendorRateLine(models.Model):
    rate_header = models.ForeignKey(VendorRateHeader, on_delete=models.CASCADE, related_name='lines')
    charge = models.ForeignKey('core.Charge', on_delete=models.PROTECT, related_name='vendor_rate_lines')
    uom = models.ForeignKey('core.UnitOfMeasure', on_delete=models.PROTECT, related_name='+')
    currency_code = models.CharField(max_length=3, default='USD')
    slab_min = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    slab_max = models.DecimalField(max_digits=12, decimal_places=2, default=OPEN_SLAB_MAX)
    cost_rate = models.DecimalField(max_digits=12, decimal_places=4)
    is_fixed_rate = models.BooleanField(default=False)
    sequence = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    notes = models.TextField(blank=True, default='')

    class Meta:
        db_table = 'vendor_rate_lines'
        unique_together = (('rate_header', 'charge', 'slab_min', 'slab_max', 'uom'),)
        ordering = ['sequence', 'slab_min']

    def clean(self):
        if self.slab_min > self.slab_max:
            raise ValidationError("slab_min must not exceed slab_max.")
        if self.cost_rate is not None and self.cost_rate < 0:
            raise ValidationError("cost_rate must not be negative.")
        if self.is_fixed_rate:
            return
        siblings = (VendorRateLine.objects
                    .filter(rate_header_id=self.rate_header_id, charge_id=self.charge_id,
                            uom_id=self.uom_id, is_fixed_rate=False,
                            slab_min__lte=self.slab_max, slab_max__gte=self.slab_min)
                    .exclude(pk=self.pk))
        clash = siblings.first()
        if clash:
            raise ValidationError(
                f"Slab {self.slab_min}-{self.slab_max} overlaps {clash.slab_min}-{clash.slab_max} "
                f"for the same charge and unit."
            )

    def save(self, *args, **kwargs):
        self.currency_code = (self.currency_code or '').upper()
        super().save(*args, **kwargs)
        invalidate_rate_cache()

    def delete(self, *args, **kwargs):
        result = super().delete(*args, **kwargs)
        invalidate_rate_cache()
        return result


class MarginRule(models.Model):
    TIER_SPECIFIC = 'specific'
    TIER_CHARGE = 'charge_only'
    TIER_CUSTOMER = 'customer_only'
    TIER_GLOBAL = 'global'

    precedence = models.PositiveIntegerField(default=1)
    charge = models.ForeignKey('core.Charge', null=True, blank=True, on_delete=models.CASCADE, related_name='margin_rules')
    customer = models.ForeignKey('customers.Customer', null=True, blank=True, on_delete=models.CASCADE, related_name='margin_rules')
    # Fraction, e.g. 0.2000 for 20%
    margin_percentage = models.DecimalField(max_digits=7, decimal_places=4, default=Decimal('0'))
    margin_fixed = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    is_active = models.BooleanField(default=True)
    description = models.CharField(max_length=255, blank=True, default='')

    class Meta:
        db_table = 'margin_rules'
        unique_together = (('charge', 'customer', 'precedence'),)
        ordering = ['-precedence', 'id']

    @property
    def tier(self) -> str:
        if self.charge_id and self.customer_id:
            return self.TIER_SPECIFIC
        if self.charge_id:
            return self.TIER_CHARGE
        if self.customer_id:
            return self.TIER_CUSTOMER
        return self.TIER_GLOBAL

    def __str__(self):
        return f"[{self.precedence}] {self.tier} {self.margin_percentage} + {self.margin_fixed}"


class ExchangeRate(models.Model):
    STATUS_CHOICES = [('active', 'Active'), ('inactive', 'Inactive')]

    from_currency = models.CharField(max_length=3)
    to_currency = models.CharField(max_length=3)
    rate = models.DecimalField(max_digits=16, decimal_places=6)
    inverse_rate = models.DecimalField(max_digits=20, decimal_places=10, null=True, blank=True)
    effective_date = models.DateField()
    expiry_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='active')
    source = models.CharField(max_length=32, default='manual')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'exchange_rates'
        unique_together = (('from_currency', 'to_currency', 'effective_date'),)
        indexes = [models.Index(fields=['from_currency', 'to_currency', '-effective_date'], name='fx_pair_effective_idx')]

    def save(self, *args, **kwargs):
        self.from_currency = self.from_currency.upper()
        self.to_currency = self.to_currency.upper()
        # Derived; recomputed whenever the rate changes.
        if self.rate:
            self.inverse_rate = (Decimal(1) / Decimal(str(self.rate))).quantize(Decimal('0.0000000001'))
        super().save(*args, **kwargs)
        invalidate_rate_cache()

    def delete(self, *args, **kwargs):
        result = super().delete(*args, **kwargs)
        invalidate_rate_cache()
        return result

    def __str__(self):
        return f"{self.from_currency}->{self.to_currency} {self.rate} @ {self.effective_date}"
