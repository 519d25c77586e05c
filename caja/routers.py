"""
URL mappings for the caja API.

Trailing slashes are omitted to match the rest of the backend.
"""
from django.urls import path, include

from .views import health
from .views.accounts import accounts, account_detail, outstanding_debts, available_credit, blocked
from .views.ledger import charge_create, deposit_create, deposit_preview, cut_create


urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Accounts and read queries
    path('api/caja/accounts', accounts, name='caja_accounts'),
    path('api/caja/accounts/<int:patient_id>', account_detail, name='caja_account_detail'),
    path('api/caja/accounts/<int:patient_id>/debts', outstanding_debts, name='caja_outstanding_debts'),
    path('api/caja/accounts/<int:patient_id>/credit', available_credit, name='caja_available_credit'),
    path('api/caja/accounts/<int:patient_id>/blocked', blocked, name='caja_blocked'),
    # Ledger writes
    path('api/caja/charges', charge_create, name='caja_charge_create'),
    path('api/caja/deposits', deposit_create, name='caja_deposit_create'),
    path('api/caja/deposits/preview', deposit_preview, name='caja_deposit_preview'),
    path('api/caja/cuts', cut_create, name='caja_cut_create'),
]
