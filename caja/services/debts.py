"""Debt ledger: charges owed by a patient and their coverage state."""
from decimal import Decimal
from typing import Iterable, Optional

import bleach
from django.utils import timezone

from caja.exceptions import NotFoundError, ValidationError
from caja.models import Debt
from caja.services.accounts import get_account
from caja.services.money import money_sum, positive_money

CATEGORIES = {value for value, _ in Debt.CATEGORY_CHOICES}
NOTE_MAX_LENGTH = 255


def _clean_note(note) -> str:
    """Plain text only; escaping may grow the text, so trim the raw input."""
    raw = (note or '').strip()[:NOTE_MAX_LENGTH]
    cleaned = bleach.clean(raw, tags=set(), strip=True)
    while len(cleaned) > NOTE_MAX_LENGTH:
        raw = raw[:-1]
        cleaned = bleach.clean(raw, tags=set(), strip=True)
    return cleaned


def create_debt(patient_id, category: str, amount, date=None, note: str = '') -> Debt:
    """Insert an uncovered debt.

    Callers that need credit applied go through
    :func:`caja.services.allocation.register_charge`, which calls this
    first and then covers the debt under the patient lock.
    """
    account = get_account(patient_id)
    amount = positive_money(amount)
    if category not in CATEGORIES:
        raise ValidationError(f'unknown debt category {category!r}', field='category')
    note = _clean_note(note)
    return Debt.objects.create(
        patient_id=account.patient_id,
        category=category,
        amount=amount,
        date=date or timezone.now(),
        note=note,
    )


def _outstanding_qs(patient_id):
    return Debt.objects.filter(patient_id=patient_id, is_paid=False)


def list_outstanding(patient_id) -> list[Debt]:
    """Unpaid debts with a positive remaining balance, oldest first."""
    account = get_account(patient_id)
    debts = _outstanding_qs(account.patient_id).order_by('date', 'id')
    return [d for d in debts if d.remaining > 0]


def outstanding_total(patient_id) -> Decimal:
    return money_sum(d.remaining for d in list_outstanding(patient_id))


def list_paid(patient_id, limit: Optional[int] = None) -> list[Debt]:
    account = get_account(patient_id)
    qs = Debt.objects.filter(patient_id=account.patient_id, is_paid=True).order_by('-date', '-id')
    if limit:
        qs = qs[:limit]
    return list(qs)


def get_debts(patient_id, debt_ids: Iterable[int]) -> dict[int, Debt]:
    """Fetch the given debts of one patient, keyed by id."""
    ids = set(debt_ids)
    found = {d.id: d for d in Debt.objects.filter(patient_id=patient_id, id__in=ids)}
    missing = sorted(ids - found.keys())
    if missing:
        raise NotFoundError('unknown debt id(s) for this patient', debtIds=missing)
    return found


def format_debt(debt: Debt) -> dict:
    return {
        'id': debt.id,
        'patientId': debt.patient_id,
        'category': debt.category,
        'amount': str(debt.amount),
        'coveredAmount': str(debt.covered_amount),
        'remaining': str(debt.remaining),
        'isPaid': debt.is_paid,
        'isCreditApplied': debt.is_credit_applied,
        'date': debt.date.isoformat(),
        'note': debt.note,
    }
