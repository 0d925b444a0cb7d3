import django.db.models.deletion
from decimal import Decimal
from django.db import migrations, models

MODES = [('AIR', 'Air'), ('SEA', 'Sea'), ('ROAD', 'Road'), ('RAIL', 'Rail'), ('MULTIMODAL', 'Multimodal')]
MOVEMENTS = [('IMPORT', 'Import'), ('EXPORT', 'Export'), ('DOMESTIC', 'Domestic'), ('INTER_MODAL', 'Inter-modal')]
TERMS = [('EXW', 'EXW'), ('FCA', 'FCA'), ('CPT', 'CPT'), ('CIP', 'CIP'), ('DAP', 'DAP'),
         ('DDP', 'DDP'), ('FOB', 'FOB'), ('CFR', 'CFR'), ('CIF', 'CIF')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        ('customers', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='ChargeRule',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('mode', models.CharField(choices=MODES, max_length=12)),
                ('movement', models.CharField(choices=MOVEMENTS, max_length=12)),
                ('terms', models.CharField(choices=TERMS + [('ALL_TERMS', 'All terms')], default='ALL_TERMS', max_length=12)),
                ('is_active', models.BooleanField(default=True)),
                ('charge', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='charge_rules', to='core.charge')),
            ],
            options={
                'db_table': 'charge_rules',
                'unique_together': {('mode', 'movement', 'terms', 'charge')},
                'indexes': [models.Index(fields=['mode', 'movement', 'terms'], name='charge_rule_mode_mov_terms_idx')],
            },
        ),
        migrations.CreateModel(
            name='VendorRateHeader',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('mode', models.CharField(choices=MODES, max_length=12)),
                ('movement', models.CharField(choices=MOVEMENTS, max_length=12)),
                ('terms', models.CharField(blank=True, choices=TERMS, max_length=12, null=True)),
                ('valid_from', models.DateField()),
                ('valid_upto', models.DateField()),
                ('is_active', models.BooleanField(default=True)),
                ('notes', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('vendor', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='rate_headers', to='core.supplier')),
                ('origin', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to='core.location')),
                ('destination', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to='core.location')),
            ],
            options={
                'db_table': 'vendor_rate_headers',
                'indexes': [models.Index(fields=['mode', 'movement', 'valid_from', 'valid_upto'], name='vendor_rate_validity_idx')],
            },
        ),
        migrations.CreateModel(
            name='VendorRateLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('currency_code', models.CharField(default='USD', max_length=3)),
                ('slab_min', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('slab_max', models.DecimalField(decimal_places=2, default=Decimal('9999999999.99'), max_digits=12)),
                ('cost_rate', models.DecimalField(decimal_places=4, max_digits=12)),
                ('is_fixed_rate', models.BooleanField(default=False)),
                ('sequence', models.PositiveIntegerField(default=0)),
                ('is_active', models.BooleanField(default=True)),
                ('notes', models.TextField(blank=True, default='')),
                ('rate_header', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='pricing.vendorrateheader')),
                ('charge', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='vendor_rate_lines', to='core.charge')),
                ('uom', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='core.unitofmeasure')),
            ],
            options={
                'db_table': 'vendor_rate_lines',
                'ordering': ['sequence', 'slab_min'],
                'unique_together': {('rate_header', 'charge', 'slab_min', 'slab_max', 'uom')},
            },
        ),
        migrations.CreateModel(
            name='MarginRule',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('precedence', models.PositiveIntegerField(default=1)),
                ('margin_percentage', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=7)),
                ('margin_fixed', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('is_active', models.BooleanField(default=True)),
                ('description', models.CharField(blank=True, default='', max_length=255)),
                ('charge', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='margin_rules', to='core.charge')),
                ('customer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='margin_rules', to='customers.customer')),
            ],
            options={
                'db_table': 'margin_rules',
                'ordering': ['-precedence', 'id'],
                'unique_together': {('charge', 'customer', 'precedence')},
            },
        ),
        migrations.CreateModel(
            name='ExchangeRate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('from_currency', models.CharField(max_length=3)),
                ('to_currency', models.CharField(max_length=3)),
                ('rate', models.DecimalField(decimal_places=6, max_digits=16)),
                ('inverse_rate', models.DecimalField(blank=True, decimal_places=10, max_digits=20, null=True)),
                ('effective_date', models.DateField()),
                ('expiry_date', models.DateField(blank=True, null=True)),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive')], default='active', max_length=10)),
                ('source', models.CharField(default='manual', max_length=32)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'exchange_rates',
                'unique_together': {('from_currency', 'to_currency', 'effective_date')},
                'indexes': [models.Index(fields=['from_currency', 'to_currency', '-effective_date'], name='fx_pair_effective_idx')],
            },
        ),
    ]
