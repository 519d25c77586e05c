"""Deposit ledger: money received and the credit it leaves behind."""
from decimal import Decimal

from django.utils import timezone

from caja.exceptions import ValidationError
from caja.models import Deposit
from caja.services.accounts import get_account
from caja.services.money import money_sum, positive_money


def create_deposit(patient_id, amount, receipt_ref, date=None) -> Deposit:
    """Insert a deposit whose whole amount is still unapplied credit.

    The receipt reference is an opaque handle from document storage; only
    its presence is checked.
    """
    account = get_account(patient_id)
    amount = positive_money(amount)
    receipt_ref = (receipt_ref or '').strip() if isinstance(receipt_ref, str) else ''
    if not receipt_ref:
        raise ValidationError('a receipt reference is required', field='receiptRef')
    return Deposit.objects.create(
        patient_id=account.patient_id,
        amount=amount,
        applied_amount=Decimal('0.00'),
        credit_remaining=amount,
        receipt_ref=receipt_ref,
        date=date or timezone.now(),
    )


def list_available_credit(patient_id) -> list[Deposit]:
    """Deposits with credit left, oldest first (consumption order)."""
    account = get_account(patient_id)
    return list(
        Deposit.objects.filter(patient_id=account.patient_id, credit_remaining__gt=0).order_by('date', 'id')
    )


def total_credit(patient_id) -> Decimal:
    return money_sum(d.credit_remaining for d in list_available_credit(patient_id))


def list_deposits(patient_id) -> list[Deposit]:
    account = get_account(patient_id)
    return list(Deposit.objects.filter(patient_id=account.patient_id).order_by('-date', '-id'))


def format_deposit(deposit: Deposit) -> dict:
    return {
        'id': deposit.id,
        'patientId': deposit.patient_id,
        'amount': str(deposit.amount),
        'appliedAmount': str(deposit.applied_amount),
        'creditRemaining': str(deposit.credit_remaining),
        'receiptRef': deposit.receipt_ref,
        'date': deposit.date.isoformat(),
    }
