from decimal import Decimal

import pytest

from caja.exceptions import BlockedError, NotFoundError, ValidationError
from caja.models import AuditEvent, Debt, Deposit
from caja.services.allocation import register_charge, register_deposit
from caja.services.cuts import is_blocked, request_cut
from caja.services.debts import create_debt, outstanding_total
from caja.services.deposits import total_credit

pytestmark = pytest.mark.django_db

D = Decimal


def assert_ledger_invariants():
    for debt in Debt.objects.all():
        assert D('0') <= debt.covered_amount <= debt.amount
        assert debt.is_paid == (debt.covered_amount == debt.amount)
    for dep in Deposit.objects.all():
        assert dep.applied_amount >= 0 and dep.credit_remaining >= 0
        assert dep.applied_amount + dep.credit_remaining == dep.amount


def test_charge_without_credit_stays_unpaid(patient):
    result = register_charge(patient, Debt.CATEGORY_STORE, '100')
    debt = Debt.objects.get(pk=result.debt.pk)
    assert debt.covered_amount == D('0.00')
    assert debt.is_paid is False
    assert debt.is_credit_applied is False
    assert result.credit_used == D('0.00')
    assert outstanding_total(patient) == D('100.00')


def test_charge_consumes_partial_credit(patient):
    register_deposit(patient, '30', 'receipts/a.jpg')
    result = register_charge(patient, Debt.CATEGORY_STORE, '50')

    debt = Debt.objects.get(pk=result.debt.pk)
    assert debt.covered_amount == D('30.00')
    assert debt.is_paid is False
    assert debt.is_credit_applied is True
    assert debt.remaining == D('20.00')
    assert total_credit(patient) == D('0.00')
    assert_ledger_invariants()


def test_charge_fully_covered_by_credit_draws_oldest_deposit_first(patient, day):
    newer = register_deposit(patient, '40', 'r/new', date=day(2)).deposit
    older = register_deposit(patient, '25', 'r/old', date=day(1)).deposit

    result = register_charge(patient, Debt.CATEGORY_MEDICATION, '30')

    older.refresh_from_db()
    newer.refresh_from_db()
    assert result.debt.is_paid is True
    assert result.credit_used == D('30.00')
    assert [d.id for d in result.deposits] == [older.id, newer.id]
    assert older.credit_remaining == D('0.00')
    assert older.applied_amount == D('25.00')
    assert newer.credit_remaining == D('35.00')
    assert newer.applied_amount == D('5.00')
    assert total_credit(patient) == D('35.00')
    assert_ledger_invariants()


def test_deposit_pays_selected_debt_and_keeps_surplus_as_credit(patient):
    debt = register_charge(patient, Debt.CATEGORY_STORE, '80').debt
    result = register_deposit(patient, '100', 'receipts/c.jpg', [debt.id])

    debt.refresh_from_db()
    dep = Deposit.objects.get(pk=result.deposit.pk)
    assert debt.covered_amount == D('80.00')
    assert debt.is_paid is True
    assert dep.applied_amount == D('80.00')
    assert dep.credit_remaining == D('20.00')
    assert result.applied == D('80.00')
    assert result.credit == D('20.00')


def test_deposit_splits_across_debts_oldest_first(patient, day):
    first = register_charge(patient, Debt.CATEGORY_STORE, '40', date=day(1)).debt
    second = register_charge(patient, Debt.CATEGORY_OTHER, '60', date=day(2)).debt

    result = register_deposit(patient, '70', 'r/f', [first.id, second.id])

    first.refresh_from_db()
    second.refresh_from_db()
    dep = Deposit.objects.get(pk=result.deposit.pk)
    assert first.covered_amount == D('40.00') and first.is_paid
    assert second.covered_amount == D('30.00') and not second.is_paid
    assert dep.applied_amount == D('70.00')
    assert dep.credit_remaining == D('0.00')
    assert_ledger_invariants()


def test_deposit_follows_selection_order_unless_date_order_requested(patient, day):
    old = register_charge(patient, Debt.CATEGORY_STORE, '40', date=day(1)).debt
    new = register_charge(patient, Debt.CATEGORY_STORE, '40', date=day(2)).debt

    register_deposit(patient, '30', 'r/1', [new.id, old.id])
    old.refresh_from_db()
    new.refresh_from_db()
    assert new.covered_amount == D('30.00')
    assert old.covered_amount == D('0.00')

    register_deposit(patient, '20', 'r/2', [new.id, old.id], order='date')
    old.refresh_from_db()
    new.refresh_from_db()
    assert old.covered_amount == D('20.00')
    assert new.covered_amount == D('30.00')


def test_deposit_without_selection_becomes_credit(patient):
    debt = register_charge(patient, Debt.CATEGORY_STORE, '10').debt
    result = register_deposit(patient, '15', 'r/1')
    debt.refresh_from_db()
    assert result.applied == D('0.00')
    assert result.deposit.credit_remaining == D('15.00')
    assert debt.covered_amount == D('0.00')
    assert total_credit(patient) == D('15.00')


def test_deposit_applied_never_exceeds_selected_remaining(patient):
    a = register_charge(patient, Debt.CATEGORY_STORE, '10').debt
    b = register_charge(patient, Debt.CATEGORY_STORE, '10').debt
    register_deposit(patient, '4', 'r/0', [a.id])

    result = register_deposit(patient, '50', 'r/1', [a.id, b.id, a.id])
    assert result.applied == D('16.00')
    assert result.applied <= min(D('50.00'), D('6.00') + D('10.00'))
    assert result.deposit.credit_remaining == D('34.00')
    assert_ledger_invariants()


def test_deposit_skips_already_paid_selection(patient):
    paid = register_charge(patient, Debt.CATEGORY_STORE, '10').debt
    register_deposit(patient, '10', 'r/0', [paid.id])

    result = register_deposit(patient, '10', 'r/1', [paid.id])
    assert result.applied == D('0.00')
    assert result.debts == []
    assert result.deposit.credit_remaining == D('10.00')


def test_deposit_with_foreign_debt_id_is_rejected_without_effect(patient, other_patient):
    theirs = create_debt(other_patient, Debt.CATEGORY_STORE, '10')
    with pytest.raises(NotFoundError):
        register_deposit(patient, '10', 'r/1', [theirs.id])
    assert Deposit.objects.count() == 0


@pytest.mark.parametrize('amount, ref', [('0', 'r/1'), ('-5', 'r/1'), ('10', ''), ('10', None)])
def test_deposit_validation_errors(patient, amount, ref):
    with pytest.raises(ValidationError):
        register_deposit(patient, amount, ref)
    assert Deposit.objects.count() == 0


def test_failed_write_mid_allocation_rolls_back_everything(patient, day, monkeypatch):
    first = register_charge(patient, Debt.CATEGORY_STORE, '40', date=day(1)).debt
    second = register_charge(patient, Debt.CATEGORY_STORE, '60', date=day(2)).debt
    original_save = Debt.save

    def failing_save(self, *args, **kwargs):
        if self.pk == second.pk and 'covered_amount' in (kwargs.get('update_fields') or ()):
            raise RuntimeError('disk full')
        return original_save(self, *args, **kwargs)

    monkeypatch.setattr(Debt, 'save', failing_save)
    with pytest.raises(RuntimeError):
        register_deposit(patient, '70', 'r/1', [first.id, second.id])

    first.refresh_from_db()
    second.refresh_from_db()
    assert first.covered_amount == D('0.00') and not first.is_paid
    assert second.covered_amount == D('0.00')
    assert Deposit.objects.count() == 0
    assert not AuditEvent.objects.filter(action='deposit_register').exists()


def test_failed_credit_draw_rolls_back_charge(patient, day, monkeypatch):
    register_deposit(patient, '5', 'r/1', date=day(1))
    register_deposit(patient, '5', 'r/2', date=day(2))
    original_save = Deposit.save
    calls = {'n': 0}

    def failing_save(self, *args, **kwargs):
        if 'applied_amount' in (kwargs.get('update_fields') or ()):
            calls['n'] += 1
            if calls['n'] == 2:
                raise RuntimeError('connection lost')
        return original_save(self, *args, **kwargs)

    monkeypatch.setattr(Deposit, 'save', failing_save)
    with pytest.raises(RuntimeError):
        register_charge(patient, Debt.CATEGORY_STORE, '8')

    assert Debt.objects.count() == 0
    assert total_credit(patient) == D('10.00')


def test_cut_blocks_charges_until_next_deposit(patient):
    register_charge(patient, Debt.CATEGORY_STORE, '100')
    cut = request_cut(patient)
    assert is_blocked(patient) is True

    with pytest.raises(BlockedError):
        register_charge(patient, Debt.CATEGORY_STORE, '5')
    assert Debt.objects.count() == 1

    result = register_deposit(patient, '10', 'r/1')
    cut.refresh_from_db()
    assert cut.resolved is True
    assert cut.resolved_by_id == result.deposit.id
    assert result.resolved_cut.id == cut.id
    assert is_blocked(patient) is False

    register_charge(patient, Debt.CATEGORY_STORE, '5')
    assert Debt.objects.count() == 2


def test_patients_do_not_share_credit(patient, other_patient):
    register_deposit(other_patient, '50', 'r/1')
    result = register_charge(patient, Debt.CATEGORY_STORE, '20')
    assert result.credit_used == D('0.00')
    assert total_credit(other_patient) == D('50.00')


def test_operations_write_audit_events(patient):
    debt = register_charge(patient, Debt.CATEGORY_STORE, '10').debt
    register_deposit(patient, '10', 'r/1', [debt.id])
    actions = list(AuditEvent.objects.filter(patient_id=patient).order_by('id').values_list('action', flat=True))
    assert actions == ['charge_register', 'deposit_register']


def test_repeated_small_allocations_stay_exact(patient):
    debt = register_charge(patient, Debt.CATEGORY_MONTHLY_FEE, '1.00').debt
    for i in range(10):
        register_deposit(patient, '0.10', f'r/{i}', [debt.id])
    debt.refresh_from_db()
    assert debt.covered_amount == D('1.00')
    assert debt.is_paid is True
    assert total_credit(patient) == D('0.00')
