from django.conf import settings
from django.core.cache import cache
from django.db.models import F, Sum

from caja.models import CashCut, Debt, Deposit, PatientAccount
from caja.services.cuts import format_cut, list_cuts
from caja.services.debts import format_debt, list_outstanding, list_paid
from caja.services.deposits import format_deposit, list_deposits
from caja.services.money import ZERO, fmt, money_sum
from caja.services.notify import OVERVIEW_CACHE_KEY

CREDIT_OK = 'con_credito'
CREDIT_FROZEN = 'sin_credito'


def account_statement(patient_id) -> dict:
    """Everything the cash-register screen shows for one patient."""
    outstanding = list_outstanding(patient_id)
    deposits = list_deposits(patient_id)
    cuts = list_cuts(patient_id)
    pending = next((c for c in cuts if not c.resolved), None)
    return {
        'patientId': int(patient_id),
        'outstandingTotal': fmt(money_sum(d.remaining for d in outstanding)),
        'creditTotal': fmt(money_sum(d.credit_remaining for d in deposits)),
        'blocked': pending is not None,
        'pendingCut': format_cut(pending) if pending else None,
        'outstanding': [format_debt(d) for d in outstanding],
        'paid': [format_debt(d) for d in list_paid(patient_id)],
        'deposits': [format_deposit(d) for d in deposits],
        'cuts': [format_cut(c) for c in cuts],
    }


def _build_overview() -> list[dict]:
    owed = dict(
        Debt.objects.filter(is_paid=False)
        .values('patient_id')
        .annotate(total=Sum(F('amount') - F('covered_amount')))
        .values_list('patient_id', 'total')
    )
    credit = dict(
        Deposit.objects.filter(credit_remaining__gt=0)
        .values('patient_id')
        .annotate(total=Sum('credit_remaining'))
        .values_list('patient_id', 'total')
    )
    pending = {
        c.patient_id: c for c in CashCut.objects.filter(resolved=False)
    }
    rows = []
    for pid in PatientAccount.objects.order_by('patient_id').values_list('patient_id', flat=True):
        cut = pending.get(pid)
        rows.append({
            'patientId': pid,
            'outstandingTotal': fmt(owed.get(pid) or ZERO),
            'creditTotal': fmt(credit.get(pid) or ZERO),
            'cutAmount': fmt(cut.total_amount) if cut else None,
            'status': CREDIT_FROZEN if cut else CREDIT_OK,
        })
    return rows


def caja_overview() -> list[dict]:
    """All patient accounts with balances; cached until the next ledger write."""
    cached = cache.get(OVERVIEW_CACHE_KEY)
    if cached is not None:
        return cached
    rows = _build_overview()
    cache.set(OVERVIEW_CACHE_KEY, rows, settings.CAJA_OVERVIEW_CACHE_SECONDS)
    return rows
