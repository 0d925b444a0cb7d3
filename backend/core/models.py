from django.db import models

from pricing.cache import invalidate_rate_cache


class Currency(models.Model):
    code = models.CharField(max_length=3, unique=True)
    name = models.CharField(max_length=100)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ['code']
        verbose_name_plural = 'currencies'

    def save(self, *args, **kwargs):
        self.code = (self.code or '').upper()
        return super().save(*args, **kwargs)

    def __str__(self):
        return self.code


class UnitOfMeasure(models.Model):
    CATEGORY_CHOICES = [
        ('weight', 'Weight'),
        ('volume', 'Volume'),
        ('shipment', 'Per Shipment'),
        ('document', 'Per Document'),
        ('other', 'Other'),
    ]

    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=100)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default='other')

    def __str__(self):
        return self.code


class TaxCode(models.Model):
    tax_code = models.CharField(max_length=20, unique=True)
    tax_name = models.CharField(max_length=100)
    # Percentage, e.g. 18.00 for 18%
    rate = models.DecimalField(max_digits=5, decimal_places=2)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return f"{self.tax_code} ({self.rate}%)"


class Charge(models.Model):
    CHARGE_TYPE_CHOICES = [
        ('fixed', 'Fixed'),
        ('variable', 'Variable'),
        ('weight_based', 'Weight Based'),
    ]

    charge_code = models.CharField(max_length=20, unique=True)
    charge_name = models.CharField(max_length=255)
    default_uom = models.ForeignKey(UnitOfMeasure, on_delete=models.PROTECT, related_name='charges')
    default_tax = models.ForeignKey(TaxCode, null=True, blank=True, on_delete=models.SET_NULL, related_name='charges')
    charge_type = models.CharField(max_length=20, choices=CHARGE_TYPE_CHOICES, default='fixed')
    is_active = models.BooleanField(default=True)
    description = models.TextField(blank=True, default='')

    class Meta:
        ordering = ['id']

    def __str__(self):
        return f"{self.charge_code} - {self.charge_name}"


class Location(models.Model):
    LOCATION_TYPE_CHOICES = [('port', 'Sea Port'), ('airport', 'Airport'), ('city', 'City')]

    code = models.CharField(max_length=10, unique=True)
    name = models.CharField(max_length=255)
    country_code = models.CharField(max_length=2)
    location_type = models.CharField(max_length=10, choices=LOCATION_TYPE_CHOICES, default='port')

    def __str__(self):
        return f"{self.code} ({self.name}, {self.country_code})"


class Supplier(models.Model):
    """A vendor whose tariffs feed the vendor rate tables."""
    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=255)
    is_active = models.BooleanField(default=True)

    def save(self, *args, **kwargs):
        super().save(*args, **kwargs)
        invalidate_rate_cache()

    def delete(self, *args, **kwargs):
        result = super().delete(*args, **kwargs)
        invalidate_rate_cache()
        return result

    def __str__(self):
        return self.name
