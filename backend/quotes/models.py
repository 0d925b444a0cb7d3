from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.db.models import Q
from django.db.models.functions import Length
from django.utils import timezone

from pricing.conf import engine_setting
from pricing.dataclasses import DimensionInput, VendorCost
from pricing.exceptions import InvalidApprovalTransition
from pricing.models import MODE_CHOICES, MOVEMENT_CHOICES, TERMS_CHOICES
from pricing.services.utils import q2, q4, q6


def default_base_currency():
    return engine_setting("BASE_CURRENCY")


class ActiveQuotationManager(models.Manager):
    def get_queryset(self):
        return super().get_queryset().filter(deleted_at__isnull=True)


class QuotationHeader(models.Model):
    STATUS_DRAFT = 'draft'
    STATUS_PENDING_COSTING = 'pending_costing'
    STATUS_PENDING_APPROVAL = 'pending_approval'
    STATUS_SENT = 'sent'
    STATUS_WON = 'won'
    STATUS_LOST = 'lost'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_DRAFT, 'Draft'),
        (STATUS_PENDING_COSTING, 'Pending Costing'),
        (STATUS_PENDING_APPROVAL, 'Pending Approval'),
        (STATUS_SENT, 'Sent'),
        (STATUS_WON, 'Won'),
        (STATUS_LOST, 'Lost'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    TERMINAL_STATUSES = (STATUS_WON, STATUS_LOST, STATUS_CANCELLED)
    EDITABLE_STATUSES = (STATUS_DRAFT, STATUS_PENDING_COSTING)

    quote_id = models.CharField(max_length=32, unique=True, blank=True)
    quote_status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_DRAFT)
    mode = models.CharField(max_length=12, choices=MODE_CHOICES)
    movement = models.CharField(max_length=12, choices=MOVEMENT_CHOICES)
    terms = models.CharField(max_length=12, choices=TERMS_CHOICES)
    customer = models.ForeignKey('customers.Customer', on_delete=models.PROTECT, related_name='quotations')
    origin = models.ForeignKey('core.Location', null=True, blank=True, on_delete=models.PROTECT, related_name='+')
    destination = models.ForeignKey('core.Location', null=True, blank=True, on_delete=models.PROTECT, related_name='+')
    base_currency = models.CharField(max_length=3, default=default_base_currency)
    total_actual_weight = models.DecimalField(max_digits=12, decimal_places=3, default=0)
    total_volumetric_weight = models.DecimalField(max_digits=12, decimal_places=3, default=0)
    total_chargeable_weight = models.DecimalField(max_digits=12, decimal_places=3, default=0)
    total_cbm = models.DecimalField(max_digits=12, decimal_places=6, default=0)
    total_pieces = models.PositiveIntegerField(default=0)
    costed_as_of = models.DateField(null=True, blank=True)
    version = models.PositiveIntegerField(default=1)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    salesperson = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    notes = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = ActiveQuotationManager()
    all_objects = models.Manager()

    class Meta:
        db_table = 'quotation_headers'
        indexes = [
            models.Index(fields=['customer', '-created_at'], name='quotation_customer_idx'),
            models.Index(fields=['quote_status'], name='quotation_status_idx'),
        ]

    def __str__(self):
        return self.quote_id or f"Quotation #{self.pk}"

    @property
    def allows_recompute(self) -> bool:
        return self.quote_status in self.EDITABLE_STATUSES and self.deleted_at is None

    @staticmethod
    def next_quote_id(year: int) -> str:
        prefix = f"Q-{year}-"
        last = (QuotationHeader.all_objects
                .select_for_update()
                .filter(quote_id__startswith=prefix)
                .annotate(id_length=Length('quote_id'))
                .order_by('-id_length', '-quote_id')
                .first())
        seq = int(last.quote_id.rsplit('-', 1)[1]) + 1 if last else 1
        return f"{prefix}{seq:04d}"

    def save(self, *args, **kwargs):
        if self.quote_id:
            return super().save(*args, **kwargs)
        with transaction.atomic():
            self.quote_id = self.next_quote_id(timezone.now().year)
            return super().save(*args, **kwargs)

    def soft_delete(self):
        self.deleted_at = timezone.now()
        self.save(update_fields=['deleted_at', 'updated_at'])

    def current_approval(self):
        return self.approvals.order_by('-submitted_at', '-id').first()

    def pending_approval(self):
        return self.approvals.filter(approval_status=QuotationApproval.STATUS_PENDING).first()


class QuotationDimension(models.Model):
    quotation = models.ForeignKey(QuotationHeader, on_delete=models.CASCADE, related_name='dimensions')
    sequence = models.PositiveIntegerField(default=1)
    length_cm = models.DecimalField(max_digits=10, decimal_places=2)
    width_cm = models.DecimalField(max_digits=10, decimal_places=2)
    height_cm = models.DecimalField(max_digits=10, decimal_places=2)
    pieces = models.PositiveIntegerField(default=1)
    weight_per_piece = models.DecimalField(max_digits=10, decimal_places=3)
    # Derived on every recompute; never edited directly.
    cbm_per_piece = models.DecimalField(max_digits=14, decimal_places=6, default=0)
    total_cbm = models.DecimalField(max_digits=14, decimal_places=6, default=0)
    total_weight = models.DecimalField(max_digits=12, decimal_places=3, default=0)
    volumetric_weight = models.DecimalField(max_digits=12, decimal_places=3, default=0)

    class Meta:
        db_table = 'quotation_dimensions'
        ordering = ['sequence', 'id']

    def as_input(self) -> DimensionInput:
        return DimensionInput(
            length_cm=self.length_cm,
            width_cm=self.width_cm,
            height_cm=self.height_cm,
            pieces=self.pieces,
            weight_per_piece=self.weight_per_piece,
            label=f"#{self.sequence}",
        )

    def save(self, *args, **kwargs):
        if not self.quotation.allows_recompute:
            raise ValidationError(
                f"Quotation {self.quotation} is {self.quotation.quote_status}; its dimensions cannot be modified."
            )
        return super().save(*args, **kwargs)


class QuotationCostLine(models.Model):
    quotation = models.ForeignKey(QuotationHeader, on_delete=models.CASCADE, related_name='cost_lines')
    charge = models.ForeignKey('core.Charge', on_delete=models.PROTECT, related_name='+')
    quantity = models.DecimalField(max_digits=12, decimal_places=3, default=0)
    # Ordered [{vendor_id, cost, unit_cost_rate, currency, exchange_rate}, ...], cheapest first.
    all_vendor_costs = models.JSONField(default=list, blank=True)
    selected_vendor = models.ForeignKey('core.Supplier', null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    unit_cost_rate = models.DecimalField(max_digits=12, decimal_places=4, default=0)
    unit_cost_currency = models.CharField(max_length=3, blank=True, default='')
    cost_exchange_rate = models.DecimalField(max_digits=16, decimal_places=6, default=1)
    total_cost_inr = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    is_costed = models.BooleanField(default=False)
    costing_note = models.CharField(max_length=255, blank=True, default='')
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'quotation_cost_lines'
        unique_together = (('quotation', 'charge'),)
        ordering = ['charge_id']

    def vendor_costs(self):
        return [VendorCost.from_json(blob) for blob in self.all_vendor_costs or []]

    def refresh_total(self):
        """total_cost_inr is always unit_cost_rate x cost_exchange_rate, rounded to cents."""
        self.unit_cost_rate = q4(self.unit_cost_rate)
        self.cost_exchange_rate = q6(self.cost_exchange_rate)
        self.total_cost_inr = q2(self.unit_cost_rate * self.cost_exchange_rate)
        return self.total_cost_inr

    def save(self, *args, **kwargs):
        self.refresh_total()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.quotation} {self.charge.charge_code} {self.total_cost_inr}"


class QuotationSaleLine(models.Model):
    quotation = models.ForeignKey(QuotationHeader, on_delete=models.CASCADE, related_name='sale_lines')
    charge = models.ForeignKey('core.Charge', on_delete=models.PROTECT, related_name='+')
    cost_line = models.ForeignKey(QuotationCostLine, null=True, blank=True, on_delete=models.SET_NULL, related_name='sale_lines')
    display_name = models.CharField(max_length=255)
    quantity = models.DecimalField(max_digits=12, decimal_places=3, default=1)
    unit_sale_rate = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    sale_currency = models.CharField(max_length=3)
    total_sale_price = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    line_total_with_tax = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    internal_cost = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    margin_percentage = models.DecimalField(max_digits=9, decimal_places=2, null=True, blank=True)
    margin_rule = models.ForeignKey('pricing.MarginRule', null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    applied_margin_percentage = models.DecimalField(max_digits=7, decimal_places=4, default=0)
    applied_margin_fixed = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    is_price_overridden = models.BooleanField(default=False)

    class Meta:
        db_table = 'quotation_sale_lines'
        unique_together = (('quotation', 'charge'),)
        ordering = ['charge_id']


class QuotationApproval(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    quotation = models.ForeignKey(QuotationHeader, on_delete=models.CASCADE, related_name='approvals')
    submitted_by = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    approver = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    approval_status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
    total_cost_inr = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    total_sale_price_inr = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    total_margin_percentage = models.DecimalField(max_digits=9, decimal_places=2, null=True, blank=True)
    approver_comments = models.TextField(blank=True, default='')
    rejection_reason = models.TextField(blank=True, default='')
    submitted_at = models.DateTimeField(default=timezone.now)
    approved_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'quotation_approvals'
        ordering = ['-submitted_at', '-id']
        constraints = [
            models.UniqueConstraint(
                fields=['quotation'],
                condition=Q(approval_status='pending'),
                name='one_pending_approval_per_quotation',
            ),
        ]

    @property
    def is_pending(self) -> bool:
        return self.approval_status == self.STATUS_PENDING

    def save(self, *args, **kwargs):
        if self.pk:
            stored = (QuotationApproval.objects
                      .filter(pk=self.pk)
                      .values_list('approval_status', flat=True)
                      .first())
            if stored and stored != self.STATUS_PENDING:
                raise ValidationError(f"Approval #{self.pk} was already {stored} and cannot be modified.")
        return super().save(*args, **kwargs)

    def _require_pending(self, action: str):
        if not self.is_pending:
            raise InvalidApprovalTransition(
                f"Cannot {action} approval #{self.pk}: it is already {self.approval_status}."
            )

    def _move_header(self, status: str):
        header = self.quotation
        header.quote_status = status
        header.version += 1
        header.save(update_fields=['quote_status', 'version', 'updated_at'])

    def approve(self, approver, comments: str = ''):
        self._require_pending('approve')
        self.approval_status = self.STATUS_APPROVED
        self.approver = approver
        self.approver_comments = comments or ''
        self.approved_at = timezone.now()
        self.save()
        self._move_header(QuotationHeader.STATUS_SENT)

    def reject(self, approver, reason: str):
        self._require_pending('reject')
        if not (reason or '').strip():
            raise InvalidApprovalTransition("A rejection reason is required.")
        self.approval_status = self.STATUS_REJECTED
        self.approver = approver
        self.rejection_reason = reason.strip()
        self.rejected_at = timezone.now()
        self.save()
        self._move_header(QuotationHeader.STATUS_DRAFT)
