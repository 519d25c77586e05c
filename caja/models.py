"""
Database models for the caja (cash register) ledgers.

A patient is known to this app only by an opaque integer id.  The
:class:`PatientAccount` row exists so that every ledger mutation for a
patient can lock one row; debts, deposits and cash cuts hang off the
same ``patient_id``.  Monetary fields are fixed-point decimals with two
places.
"""
from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.db.models.signals import pre_delete
from django.dispatch import receiver
from django.utils import timezone

from .exceptions import ConflictError

MONEY = dict(max_digits=12, decimal_places=2)
ZERO = Decimal('0.00')


class PatientAccount(models.Model):
    """Caja account for one patient, registered by the patient records side."""
    patient_id = models.PositiveBigIntegerField(unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"account p={self.patient_id}"


class Debt(models.Model):
    """A charge owed by the patient.

    ``covered_amount`` and ``is_paid`` are written only by the allocation
    engine.  A debt that has received any coverage is part of the audit
    trail and cannot be deleted.
    """
    CATEGORY_STORE = 'store'
    CATEGORY_MEDICATION = 'medication'
    CATEGORY_MONTHLY_FEE = 'monthly-fee'
    CATEGORY_OTHER = 'other'
    CATEGORY_CHOICES = (
        (CATEGORY_STORE, 'Tienda'),
        (CATEGORY_MEDICATION, 'Medicamento'),
        (CATEGORY_MONTHLY_FEE, 'Mensualidad'),
        (CATEGORY_OTHER, 'Otro'),
    )

    patient_id = models.PositiveBigIntegerField(db_index=True)
    category = models.CharField(max_length=16, choices=CATEGORY_CHOICES, default=CATEGORY_STORE)
    amount = models.DecimalField(**MONEY)
    covered_amount = models.DecimalField(default=ZERO, **MONEY)
    is_paid = models.BooleanField(default=False, db_index=True)
    is_credit_applied = models.BooleanField(default=False)
    date = models.DateTimeField(default=timezone.now)
    note = models.CharField(max_length=255, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient_id', 'is_paid', 'date'], name='caja_debt_patient_5b1e0c_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(covered_amount__gte=0) & Q(covered_amount__lte=models.F('amount')),
                name='debt_covered_within_amount',
            ),
        ]

    @property
    def remaining(self) -> Decimal:
        return self.amount - self.covered_amount

    def __str__(self) -> str:
        return f"debt {self.id} p={self.patient_id} {self.category} {self.covered_amount}/{self.amount}"


class Deposit(models.Model):
    """Money received from the patient, backed by a receipt reference.

    ``credit_remaining`` always equals ``amount - applied_amount``; the
    unapplied part is the patient's credit balance (saldo a favor).
    """
    patient_id = models.PositiveBigIntegerField(db_index=True)
    amount = models.DecimalField(**MONEY)
    applied_amount = models.DecimalField(default=ZERO, **MONEY)
    credit_remaining = models.DecimalField(default=ZERO, **MONEY)
    receipt_ref = models.CharField(max_length=512)
    date = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient_id', 'date'], name='caja_deposi_patient_9c2f4a_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(applied_amount__gte=0) & Q(credit_remaining__gte=0),
                name='deposit_non_negative_balances',
            ),
        ]

    def __str__(self) -> str:
        return f"deposit {self.id} p={self.patient_id} {self.applied_amount}/{self.amount}"


class CashCut(models.Model):
    """A corte de caja: freezes charging until the next deposit."""
    patient_id = models.PositiveBigIntegerField(db_index=True)
    total_amount = models.DecimalField(**MONEY)
    resolved = models.BooleanField(default=False)
    date = models.DateTimeField(default=timezone.now)
    resolved_at = models.DateTimeField(null=True, blank=True)
    resolved_by = models.ForeignKey(
        Deposit, null=True, blank=True, on_delete=models.PROTECT, related_name='resolved_cuts'
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['patient_id'],
                condition=Q(resolved=False),
                name='one_pending_cut_per_patient',
            ),
        ]

    @property
    def state(self) -> str:
        return 'resolved' if self.resolved else 'pending'

    def __str__(self) -> str:
        return f"cut {self.id} p={self.patient_id} {self.total_amount} ({self.state})"


class AuditEvent(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    patient_id = models.PositiveBigIntegerField(null=True, blank=True)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.BigIntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='caja_audite_action_3e8d21_idx'),
            models.Index(fields=['patient_id', 'created_at'], name='caja_audite_patient_7a4c90_idx'),
        ]

    def __str__(self):
        return f"{self.action}:p={self.patient_id}@{self.created_at:%F %T}"


@receiver(pre_delete, sender=Debt)
def protect_covered_debt(sender, instance: Debt, **kwargs):
    # pre_delete also fires per row for QuerySet.delete()
    if instance.covered_amount > 0:
        raise ConflictError('a debt with coverage cannot be deleted', debtId=instance.pk)
