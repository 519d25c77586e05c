"""
Allocation engine for the caja ledgers.

This module is the only writer of ``Debt.covered_amount``/``is_paid``
and ``Deposit.applied_amount``/``credit_remaining``.  Both entry points
run inside one ``transaction.atomic()`` block holding the patient's
account lock, so either every row update commits or none does.

``register_charge`` records a new debt and covers it from the oldest
available credit first.  ``register_deposit`` records incoming money,
applies it to the debts the cashier selected and leaves the rest as
credit; it also resolves a pending cash cut.  ``preview_deposit`` runs the
same selection arithmetic read-only so the cashier sees the outcome first.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional

from django.db import transaction

from caja.exceptions import BlockedError, ValidationError
from caja.models import CashCut, Debt, Deposit
from caja.services.accounts import get_account, lock_account
from caja.services.audit import log_action
from caja.services.cuts import pending_cut, resolve_pending_cut
from caja.services.debts import create_debt, get_debts, list_outstanding
from caja.services.deposits import create_deposit, list_available_credit
from caja.services.money import money_sum, positive_money
from caja.services.notify import notify_patient

logger = logging.getLogger(__name__)

ORDER_SELECTION = 'selection'
ORDER_DATE = 'date'


@dataclass
class ChargeResult:
    debt: Debt
    credit_used: Decimal
    deposits: list[Deposit] = field(default_factory=list)


@dataclass
class DepositResult:
    deposit: Deposit
    applied: Decimal
    debts: list[Debt] = field(default_factory=list)
    resolved_cut: Optional[CashCut] = None

    @property
    def credit(self) -> Decimal:
        return self.deposit.credit_remaining


def _draw_credit(deposits: Iterable[Deposit], needed: Decimal) -> list[Deposit]:
    """Consume ``needed`` from deposits in the given order; returns the touched rows."""
    touched = []
    for deposit in deposits:
        if needed <= 0:
            break
        take = min(deposit.credit_remaining, needed)
        if take <= 0:
            continue
        deposit.applied_amount += take
        deposit.credit_remaining -= take
        deposit.save(update_fields=['applied_amount', 'credit_remaining'])
        touched.append(deposit)
        needed -= take
    if needed > 0:
        raise RuntimeError(f'credit walk ended with {needed} still needed')
    return touched


def _cover_debts(debts: Iterable[Debt], to_apply: Decimal) -> list[Debt]:
    """Pay ``to_apply`` into debts in the given order; returns the touched rows."""
    touched = []
    for debt in debts:
        if to_apply <= 0:
            break
        take = min(debt.remaining, to_apply)
        if take <= 0:
            continue
        debt.covered_amount += take
        debt.is_paid = debt.covered_amount >= debt.amount
        debt.save(update_fields=['covered_amount', 'is_paid', 'updated_at'])
        touched.append(debt)
        to_apply -= take
    if to_apply > 0:
        raise RuntimeError(f'debt walk ended with {to_apply} unapplied')
    return touched


def register_charge(patient_id, category: str, amount, date=None, note: str = '', user=None) -> ChargeResult:
    """Record a charge and cover it from existing credit, oldest deposit first."""
    amount = positive_money(amount)
    with transaction.atomic():
        account = lock_account(patient_id)
        pid = account.patient_id
        cut = pending_cut(pid)
        if cut is not None:
            logger.warning('charge rejected for patient %s: cut %s pending', pid, cut.id)
            raise BlockedError('charging is blocked until the pending cash cut is settled',
                               patientId=pid, cutId=cut.id)

        debt = create_debt(pid, category, amount, date=date, note=note)

        credit = list_available_credit(pid)
        available = money_sum(d.credit_remaining for d in credit)
        used = min(amount, available)
        touched = _draw_credit(credit, used) if used > 0 else []

        debt.covered_amount = used
        debt.is_paid = used >= amount
        debt.is_credit_applied = used > 0
        debt.save(update_fields=['covered_amount', 'is_paid', 'is_credit_applied', 'updated_at'])

        log_action(user=user, action='charge_register', patient_id=pid, object_type='debt', object_id=debt.id,
                   detail={'amount': str(amount), 'creditUsed': str(used),
                           'depositIds': [d.id for d in touched]})
        notify_patient(pid, 'charge')
    logger.info('charge %s registered for patient %s amount=%s credit_used=%s', debt.id, pid, amount, used)
    return ChargeResult(debt=debt, credit_used=used, deposits=touched)


def _unique(ids: Iterable) -> list[int]:
    seen, out = set(), []
    for raw in ids:
        try:
            debt_id = int(raw)
        except (TypeError, ValueError):
            raise ValidationError(f'invalid debt id {raw!r}', field='debtIds')
        if debt_id not in seen:
            seen.add(debt_id)
            out.append(debt_id)
    return out


def _check_order(order: str) -> None:
    if order not in (ORDER_SELECTION, ORDER_DATE):
        raise ValidationError(f'unknown allocation order {order!r}', field='order')


def _select_targets(patient_id: int, selected: list[int], order: str) -> list[Debt]:
    """Selected debts that are still outstanding, in the order they will be paid."""
    if not selected:
        return []
    by_id = get_debts(patient_id, selected)
    outstanding = {d.id: d for d in list_outstanding(patient_id)}
    if order == ORDER_DATE:
        return [d for d in outstanding.values() if d.id in by_id]
    return [outstanding[i] for i in selected if i in outstanding]


def register_deposit(patient_id, amount, receipt_ref, debt_ids: Iterable = (), date=None,
                     order: str = ORDER_SELECTION, user=None) -> DepositResult:
    """Record a deposit, apply it to the selected debts and keep the rest as credit.

    ``debt_ids`` is walked in the given order unless ``order='date'``, in
    which case the oldest debt is paid first.  Selected debts that are
    already paid are skipped; ids that do not belong to the patient raise
    ``NotFoundError``.  Any pending cash cut is resolved.
    """
    _check_order(order)
    selected = _unique(debt_ids or ())
    with transaction.atomic():
        account = lock_account(patient_id)
        pid = account.patient_id
        deposit = create_deposit(pid, amount, receipt_ref, date=date)

        targets = _select_targets(pid, selected, order)
        total_pending = money_sum(d.remaining for d in targets)
        applied = min(deposit.amount, total_pending)
        covered = _cover_debts(targets, applied) if applied > 0 else []

        deposit.applied_amount = applied
        deposit.credit_remaining = deposit.amount - applied
        deposit.save(update_fields=['applied_amount', 'credit_remaining'])

        resolved = resolve_pending_cut(pid, deposit, user=user)

        log_action(user=user, action='deposit_register', patient_id=pid, object_type='deposit', object_id=deposit.id,
                   detail={'amount': str(deposit.amount), 'applied': str(applied),
                           'debtIds': [d.id for d in covered],
                           'resolvedCutId': resolved.id if resolved else None})
        notify_patient(pid, 'deposit')
    logger.info('deposit %s registered for patient %s amount=%s applied=%s credit=%s',
                deposit.id, pid, deposit.amount, applied, deposit.credit_remaining)
    if resolved is not None:
        logger.info('cash cut %s resolved by deposit %s', resolved.id, deposit.id)
    return DepositResult(deposit=deposit, applied=applied, debts=covered, resolved_cut=resolved)


PREVIEW_CREDIT = 'credit'
PREVIEW_COVERED = 'covered'
PREVIEW_SHORT = 'short'


@dataclass
class DepositPreview:
    amount: Decimal
    pending: Decimal
    applied: Decimal
    credit: Decimal
    shortfall: Decimal
    outcome: str
    allocations: list[tuple[Debt, Decimal]] = field(default_factory=list)


def preview_deposit(patient_id, amount, debt_ids: Iterable = (), order: str = ORDER_SELECTION) -> DepositPreview:
    """What ``register_deposit`` would do with these inputs, without writing.

    ``outcome`` is ``credit`` when nothing selected is pending (the whole
    amount becomes credit), ``covered`` when the selected debts are paid
    in full and ``short`` when ``shortfall`` is still owed afterwards.
    """
    _check_order(order)
    amount = positive_money(amount)
    selected = _unique(debt_ids or ())
    pid = get_account(patient_id).patient_id

    targets = _select_targets(pid, selected, order)
    pending = money_sum(d.remaining for d in targets)
    applied = min(amount, pending)

    allocations = []
    left = applied
    for debt in targets:
        if left <= 0:
            break
        take = min(debt.remaining, left)
        allocations.append((debt, take))
        left -= take

    if pending <= 0:
        outcome = PREVIEW_CREDIT
    elif amount >= pending:
        outcome = PREVIEW_COVERED
    else:
        outcome = PREVIEW_SHORT
    return DepositPreview(
        amount=amount, pending=pending, applied=applied, credit=amount - applied,
        shortfall=pending - applied, outcome=outcome, allocations=allocations,
    )


def format_preview(preview: DepositPreview) -> dict:
    return {
        'amount': str(preview.amount),
        'pending': str(preview.pending),
        'applied': str(preview.applied),
        'credit': str(preview.credit),
        'shortfall': str(preview.shortfall),
        'outcome': preview.outcome,
        'allocations': [{'debtId': d.id, 'amount': str(take)} for d, take in preview.allocations],
    }
