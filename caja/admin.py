"""
Django admin registrations for the caja models.

Ledger rows are read-only here: coverage and credit are written only
by the allocation engine, rows never move between patients and nothing
is deleted, so the admin is for inspection.
"""

from django.contrib import admin

from .models import PatientAccount, Debt, Deposit, CashCut, AuditEvent


class LedgerRowAdmin(admin.ModelAdmin):
    """Base admin for ledger rows: no deletes, owner and date fixed."""

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(PatientAccount)
class PatientAccountAdmin(admin.ModelAdmin):
    list_display = ('patient_id', 'created_at')
    search_fields = ('patient_id',)


@admin.register(Debt)
class DebtAdmin(LedgerRowAdmin):
    list_display = ('id', 'patient_id', 'category', 'amount', 'covered_amount', 'is_paid', 'date')
    list_filter = ('category', 'is_paid', 'is_credit_applied')
    search_fields = ('patient_id', 'note')
    readonly_fields = ('patient_id', 'date', 'amount', 'covered_amount', 'is_paid', 'is_credit_applied')


@admin.register(Deposit)
class DepositAdmin(LedgerRowAdmin):
    list_display = ('id', 'patient_id', 'amount', 'applied_amount', 'credit_remaining', 'date')
    search_fields = ('patient_id', 'receipt_ref')
    readonly_fields = ('patient_id', 'date', 'amount', 'applied_amount', 'credit_remaining')


@admin.register(CashCut)
class CashCutAdmin(LedgerRowAdmin):
    list_display = ('id', 'patient_id', 'total_amount', 'resolved', 'date', 'resolved_at')
    list_filter = ('resolved',)
    search_fields = ('patient_id',)
    readonly_fields = ('patient_id', 'date', 'total_amount', 'resolved', 'resolved_at', 'resolved_by')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'patient_id', 'object_type', 'object_id', 'user', 'created_at')
    list_filter = ('action',)
    search_fields = ('patient_id', 'object_id')
