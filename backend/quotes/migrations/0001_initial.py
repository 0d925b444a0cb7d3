import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import quotes.models

MODES = [('AIR', 'Air'), ('SEA', 'Sea'), ('ROAD', 'Road'), ('RAIL', 'Rail'), ('MULTIMODAL', 'Multimodal')]
MOVEMENTS = [('IMPORT', 'Import'), ('EXPORT', 'Export'), ('DOMESTIC', 'Domestic'), ('INTER_MODAL', 'Inter-modal')]
TERMS = [('EXW', 'EXW'), ('FCA', 'FCA'), ('CPT', 'CPT'), ('CIP', 'CIP'), ('DAP', 'DAP'),
         ('DDP', 'DDP'), ('FOB', 'FOB'), ('CFR', 'CFR'), ('CIF', 'CIF')]
QUOTE_STATUSES = [
    ('draft', 'Draft'), ('pending_costing', 'Pending Costing'), ('pending_approval', 'Pending Approval'),
    ('sent', 'Sent'), ('won', 'Won'), ('lost', 'Lost'), ('cancelled', 'Cancelled'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('core', '0001_initial'),
        ('customers', '0001_initial'),
        ('pricing', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='QuotationHeader',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quote_id', models.CharField(blank=True, max_length=32, unique=True)),
                ('quote_status', models.CharField(choices=QUOTE_STATUSES, default='draft', max_length=20)),
                ('mode', models.CharField(choices=MODES, max_length=12)),
                ('movement', models.CharField(choices=MOVEMENTS, max_length=12)),
                ('terms', models.CharField(choices=TERMS, max_length=12)),
                ('base_currency', models.CharField(default=quotes.models.default_base_currency, max_length=3)),
                ('total_actual_weight', models.DecimalField(decimal_places=3, default=0, max_digits=12)),
                ('total_volumetric_weight', models.DecimalField(decimal_places=3, default=0, max_digits=12)),
                ('total_chargeable_weight', models.DecimalField(decimal_places=3, default=0, max_digits=12)),
                ('total_cbm', models.DecimalField(decimal_places=6, default=0, max_digits=12)),
                ('total_pieces', models.PositiveIntegerField(default=0)),
                ('costed_as_of', models.DateField(blank=True, null=True)),
                ('version', models.PositiveIntegerField(default=1)),
                ('notes', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='quotations', to='customers.customer')),
                ('origin', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to='core.location')),
                ('destination', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to='core.location')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('salesperson', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'quotation_headers',
                'indexes': [
                    models.Index(fields=['customer', '-created_at'], name='quotation_customer_idx'),
                    models.Index(fields=['quote_status'], name='quotation_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='QuotationDimension',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sequence', models.PositiveIntegerField(default=1)),
                ('length_cm', models.DecimalField(decimal_places=2, max_digits=10)),
                ('width_cm', models.DecimalField(decimal_places=2, max_digits=10)),
                ('height_cm', models.DecimalField(decimal_places=2, max_digits=10)),
                ('pieces', models.PositiveIntegerField(default=1)),
                ('weight_per_piece', models.DecimalField(decimal_places=3, max_digits=10)),
                ('cbm_per_piece', models.DecimalField(decimal_places=6, default=0, max_digits=14)),
                ('total_cbm', models.DecimalField(decimal_places=6, default=0, max_digits=14)),
                ('total_weight', models.DecimalField(decimal_places=3, default=0, max_digits=12)),
                ('volumetric_weight', models.DecimalField(decimal_places=3, default=0, max_digits=12)),
                ('quotation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='dimensions', to='quotes.quotationheader')),
            ],
            options={'db_table': 'quotation_dimensions', 'ordering': ['sequence', 'id']},
        ),
        migrations.CreateModel(
            name='QuotationCostLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=3, default=0, max_digits=12)),
                ('all_vendor_costs', models.JSONField(blank=True, default=list)),
                ('unit_cost_rate', models.DecimalField(decimal_places=4, default=0, max_digits=12)),
                ('unit_cost_currency', models.CharField(blank=True, default='', max_length=3)),
                ('cost_exchange_rate', models.DecimalField(decimal_places=6, default=1, max_digits=16)),
                ('total_cost_inr', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('is_costed', models.BooleanField(default=False)),
                ('costing_note', models.CharField(blank=True, default='', max_length=255)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('quotation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='cost_lines', to='quotes.quotationheader')),
                ('charge', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='core.charge')),
                ('selected_vendor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='core.supplier')),
            ],
            options={
                'db_table': 'quotation_cost_lines',
                'ordering': ['charge_id'],
                'unique_together': {('quotation', 'charge')},
            },
        ),
        migrations.CreateModel(
            name='QuotationSaleLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('display_name', models.CharField(max_length=255)),
                ('quantity', models.DecimalField(decimal_places=3, default=1, max_digits=12)),
                ('unit_sale_rate', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('sale_currency', models.CharField(max_length=3)),
                ('total_sale_price', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('tax_rate', models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ('tax_amount', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('line_total_with_tax', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('internal_cost', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('margin_percentage', models.DecimalField(blank=True, decimal_places=2, max_digits=9, null=True)),
                ('applied_margin_percentage', models.DecimalField(decimal_places=4, default=0, max_digits=7)),
                ('applied_margin_fixed', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('is_price_overridden', models.BooleanField(default=False)),
                ('quotation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sale_lines', to='quotes.quotationheader')),
                ('charge', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='core.charge')),
                ('cost_line', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='sale_lines', to='quotes.quotationcostline')),
                ('margin_rule', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='pricing.marginrule')),
            ],
            options={
                'db_table': 'quotation_sale_lines',
                'ordering': ['charge_id'],
                'unique_together': {('quotation', 'charge')},
            },
        ),
        migrations.CreateModel(
            name='QuotationApproval',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('approval_status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], default='pending', max_length=10)),
                ('total_cost_inr', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('total_sale_price_inr', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('total_margin_percentage', models.DecimalField(blank=True, decimal_places=2, max_digits=9, null=True)),
                ('approver_comments', models.TextField(blank=True, default='')),
                ('rejection_reason', models.TextField(blank=True, default='')),
                ('submitted_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('rejected_at', models.DateTimeField(blank=True, null=True)),
                ('quotation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='approvals', to='quotes.quotationheader')),
                ('submitted_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('approver', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'quotation_approvals',
                'ordering': ['-submitted_at', '-id'],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('approval_status', 'pending')), fields=('quotation',), name='one_pending_approval_per_quotation'),
                ],
            },
        ),
    ]
