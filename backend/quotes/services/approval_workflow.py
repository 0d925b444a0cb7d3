"""
Quotation status machine.

    draft -> pending_costing -> pending_approval -> sent -> won | lost | cancelled
                                       |
                                       +-- reject --> draft

draft -> pending_costing happens inside recompute. Everything else goes through
the functions below, each in its own transaction with the header row locked.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction

from pricing.exceptions import ApprovalAlreadyPending, InvalidApprovalTransition, StaleRecompute

from ..models import QuotationApproval, QuotationHeader
from .aggregator import aggregate, approval_reasons

logger = logging.getLogger(__name__)

APPROVE = 'approve'
REJECT = 'reject'
DECISION_ALIASES = {
    'approve': APPROVE, 'approved': APPROVE,
    'reject': REJECT, 'rejected': REJECT,
}
OUTCOMES = QuotationHeader.TERMINAL_STATUSES


def _lock_header(quotation_id: int) -> QuotationHeader:
    return QuotationHeader.objects.select_for_update().get(pk=quotation_id)


def _set_status(quotation: QuotationHeader, status: str) -> None:
    logger.info(f"{quotation}: {quotation.quote_status} -> {status}")
    quotation.quote_status = status
    quotation.version += 1
    quotation.save(update_fields=['quote_status', 'version', 'updated_at'])


def submit_for_approval(quotation_id: int, submitted_by=None) -> Optional[QuotationApproval]:
    """
    Submit a costed quotation.

    Returns the new pending approval when the totals trip an approval trigger.
    Returns None when the quotation went straight to `sent`.
    """
    with transaction.atomic():
        quotation = _lock_header(quotation_id)
        pending = quotation.pending_approval()
        if pending is not None:
            raise ApprovalAlreadyPending(
                f"Quotation {quotation} already has approval #{pending.pk} awaiting a decision."
            )
        if quotation.quote_status != QuotationHeader.STATUS_PENDING_COSTING:
            raise InvalidApprovalTransition(
                f"Quotation {quotation} is {quotation.quote_status}; only pending_costing quotations can be submitted."
            )
        uncosted = list(quotation.cost_lines.filter(is_costed=False)
                        .values_list('charge__charge_code', flat=True))
        if uncosted:
            raise InvalidApprovalTransition(
                f"Quotation {quotation} has charges without a vendor cost: {', '.join(uncosted)}. "
                "Every charge must be costed before submission."
            )

        totals = aggregate(quotation)
        reasons = approval_reasons(totals)
        if not reasons:
            _set_status(quotation, QuotationHeader.STATUS_SENT)
            return None

        approval = QuotationApproval.objects.create(
            quotation=quotation,
            submitted_by=submitted_by,
            total_cost_inr=totals.total_cost,
            total_sale_price_inr=totals.total_sale,
            total_margin_percentage=totals.margin_percentage,
        )
        _set_status(quotation, QuotationHeader.STATUS_PENDING_APPROVAL)
        logger.info(f"{quotation}: approval #{approval.pk} requested ({'; '.join(reasons)})")
        return approval


def decide_approval(approval_id: int, approver, decision: str, comments: str = '',
                    expected_version: Optional[int] = None) -> str:
    """Approve or reject the current pending approval. Returns the new header status."""
    action = DECISION_ALIASES.get((decision or '').strip().lower())
    if action is None:
        raise InvalidApprovalTransition(f"Unknown decision '{decision}'; use approve or reject.")

    quotation_id = QuotationApproval.objects.values_list('quotation_id', flat=True).get(pk=approval_id)
    with transaction.atomic():
        quotation = _lock_header(quotation_id)
        approval = QuotationApproval.objects.select_for_update().get(pk=approval_id)
        approval.quotation = quotation

        if expected_version is not None and quotation.version != int(expected_version):
            raise StaleRecompute(
                f"Quotation {quotation} changed (version {quotation.version}, expected {expected_version})."
            )
        if not approval.is_pending:
            raise InvalidApprovalTransition(f"Approval #{approval.pk} is already {approval.approval_status}.")
        current = quotation.current_approval()
        if current is None or current.pk != approval.pk:
            raise InvalidApprovalTransition(f"Approval #{approval.pk} is not the current approval for {quotation}.")
        if quotation.quote_status != QuotationHeader.STATUS_PENDING_APPROVAL:
            raise InvalidApprovalTransition(
                f"Quotation {quotation} is {quotation.quote_status}, not pending_approval."
            )

        if action == APPROVE:
            approval.approve(approver, comments)
        else:
            approval.reject(approver, comments)

    logger.info(f"{quotation}: approval #{approval.pk} {approval.approval_status} -> {quotation.quote_status}")
    return quotation.quote_status


def record_outcome(quotation_id: int, outcome: str) -> str:
    outcome = (outcome or '').strip().lower()
    if outcome not in OUTCOMES:
        raise InvalidApprovalTransition(f"Unknown outcome '{outcome}'; use one of {', '.join(OUTCOMES)}.")
    with transaction.atomic():
        quotation = _lock_header(quotation_id)
        if quotation.quote_status != QuotationHeader.STATUS_SENT:
            raise InvalidApprovalTransition(
                f"Quotation {quotation} is {quotation.quote_status}; only sent quotations can be closed."
            )
        _set_status(quotation, outcome)
    return quotation.quote_status
