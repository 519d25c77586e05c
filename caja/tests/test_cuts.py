from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction

from caja.exceptions import ConflictError, NotFoundError
from caja.models import CashCut, Debt
from caja.services.allocation import register_charge, register_deposit
from caja.services.cuts import is_blocked, list_cuts, pending_cut, request_cut

pytestmark = pytest.mark.django_db


def test_cut_requires_outstanding_debt(patient):
    with pytest.raises(ConflictError):
        request_cut(patient)
    assert CashCut.objects.count() == 0
    assert is_blocked(patient) is False


def test_cut_rejected_when_everything_is_covered(patient):
    register_deposit(patient, '20', 'r/1')
    register_charge(patient, Debt.CATEGORY_STORE, '20')
    with pytest.raises(ConflictError):
        request_cut(patient)


def test_cut_snapshots_outstanding_total(patient):
    register_charge(patient, Debt.CATEGORY_STORE, '35.50')
    register_charge(patient, Debt.CATEGORY_MEDICATION, '14.50')
    cut = request_cut(patient)
    assert cut.total_amount == Decimal('50.00')
    assert cut.resolved is False
    assert pending_cut(patient).id == cut.id


def test_only_one_pending_cut_per_patient(patient):
    register_charge(patient, Debt.CATEGORY_STORE, '10')
    request_cut(patient)
    with pytest.raises(ConflictError):
        request_cut(patient)
    assert CashCut.objects.filter(patient_id=patient, resolved=False).count() == 1


def test_database_enforces_single_pending_cut(patient):
    CashCut.objects.create(patient_id=patient, total_amount=Decimal('1.00'))
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            CashCut.objects.create(patient_id=patient, total_amount=Decimal('2.00'))


def test_new_cut_allowed_after_resolution(patient):
    register_charge(patient, Debt.CATEGORY_STORE, '10')
    first = request_cut(patient)
    register_deposit(patient, '1', 'r/1')
    second = request_cut(patient)
    assert second.total_amount == Decimal('10.00')
    assert [c.id for c in list_cuts(patient)] == [second.id, first.id]


def test_trivial_deposit_resolves_cut(patient):
    register_charge(patient, Debt.CATEGORY_STORE, '500')
    cut = request_cut(patient)
    register_deposit(patient, '0.01', 'r/1')
    cut.refresh_from_db()
    assert cut.resolved is True
    assert is_blocked(patient) is False


def test_cut_for_unknown_patient():
    with pytest.raises(NotFoundError):
        request_cut(4242)
