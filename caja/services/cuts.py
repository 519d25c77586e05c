"""Cash-cut gate.

A patient is NONE (no pending cut), PENDING (charging blocked) or, once
the next deposit arrives, RESOLVED, which behaves like NONE for the
following cut.  There is no manual unblock.
"""
import logging
from typing import Optional

from django.db import transaction
from django.utils import timezone

from caja.exceptions import ConflictError
from caja.models import CashCut, Deposit
from caja.services.accounts import get_account, lock_account
from caja.services.audit import log_action
from caja.services.debts import outstanding_total
from caja.services.notify import notify_patient

logger = logging.getLogger(__name__)


def pending_cut(patient_id) -> Optional[CashCut]:
    account = get_account(patient_id)
    return CashCut.objects.filter(patient_id=account.patient_id, resolved=False).order_by('-date', '-id').first()


def is_blocked(patient_id) -> bool:
    return pending_cut(patient_id) is not None


def request_cut(patient_id, user=None) -> CashCut:
    """Snapshot the outstanding total and block new charges."""
    with transaction.atomic():
        account = lock_account(patient_id)
        pid = account.patient_id
        total = outstanding_total(pid)
        if total <= 0:
            logger.warning('cut rejected for patient %s: no outstanding debt', pid)
            raise ConflictError('there is no outstanding debt to cut', patientId=pid)
        existing = pending_cut(pid)
        if existing is not None:
            logger.warning('cut rejected for patient %s: cut %s already pending', pid, existing.id)
            raise ConflictError('a cash cut is already pending', patientId=pid, cutId=existing.id)
        cut = CashCut.objects.create(patient_id=pid, total_amount=total)
        log_action(user=user, action='cut_request', patient_id=pid, object_type='cash_cut', object_id=cut.id,
                   detail={'totalAmount': str(total)})
        notify_patient(pid, 'cut_request')
    logger.info('cash cut %s requested for patient %s total=%s', cut.id, pid, total)
    return cut


def resolve_pending_cut(patient_id, deposit: Deposit, user=None) -> Optional[CashCut]:
    """Mark the pending cut resolved by ``deposit``; caller holds the patient lock."""
    cut = pending_cut(patient_id)
    if cut is None:
        return None
    cut.resolved = True
    cut.resolved_at = timezone.now()
    cut.resolved_by = deposit
    cut.save(update_fields=['resolved', 'resolved_at', 'resolved_by'])
    log_action(user=user, action='cut_resolve', patient_id=cut.patient_id, object_type='cash_cut', object_id=cut.id,
               detail={'depositId': deposit.id})
    return cut


def list_cuts(patient_id) -> list[CashCut]:
    account = get_account(patient_id)
    return list(CashCut.objects.filter(patient_id=account.patient_id).order_by('-date', '-id'))


def format_cut(cut: CashCut) -> dict:
    return {
        'id': cut.id,
        'patientId': cut.patient_id,
        'totalAmount': str(cut.total_amount),
        'resolved': cut.resolved,
        'state': cut.state,
        'date': cut.date.isoformat(),
        'resolvedAt': cut.resolved_at.isoformat() if cut.resolved_at else None,
        'resolvedByDepositId': cut.resolved_by_id,
    }
