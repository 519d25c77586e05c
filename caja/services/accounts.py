import logging

from django.db import transaction

from caja.exceptions import NotFoundError, ValidationError
from caja.models import PatientAccount
from caja.services.notify import notify_patient

logger = logging.getLogger(__name__)


def _check_patient_id(patient_id) -> int:
    try:
        pid = int(patient_id)
    except (TypeError, ValueError):
        raise ValidationError('patient id must be an integer', field='patientId')
    if pid <= 0:
        raise ValidationError('patient id must be positive', field='patientId')
    return pid


def open_account(patient_id) -> tuple[PatientAccount, bool]:
    """Register a patient with the caja; idempotent."""
    pid = _check_patient_id(patient_id)
    account, created = PatientAccount.objects.get_or_create(patient_id=pid)
    if created:
        logger.info('caja account opened for patient %s', pid)
        notify_patient(pid, 'account_open')
    return account, created


def get_account(patient_id) -> PatientAccount:
    pid = _check_patient_id(patient_id)
    account = PatientAccount.objects.filter(patient_id=pid).first()
    if account is None:
        raise NotFoundError(f'patient {pid} has no caja account', patientId=pid)
    return account


def lock_account(patient_id) -> PatientAccount:
    """Lock the patient's account row for the rest of the current transaction.

    Every ledger write for a patient goes through this lock so that the
    read-modify-write sequences of the allocation engine never interleave.
    """
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError('lock_account() must run inside transaction.atomic()')
    pid = _check_patient_id(patient_id)
    account = PatientAccount.objects.select_for_update().filter(patient_id=pid).first()
    if account is None:
        raise NotFoundError(f'patient {pid} has no caja account', patientId=pid)
    return account
