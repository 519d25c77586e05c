from decimal import Decimal

import pytest
from django.contrib.admin import site

from caja.models import CashCut, Debt, Deposit
from caja.services.allocation import register_charge, register_deposit

pytestmark = pytest.mark.django_db


@pytest.mark.parametrize('model', [Debt, Deposit, CashCut])
def test_ledger_rows_cannot_be_deleted_or_reassigned_in_admin(rf, admin_user, model):
    request = rf.get('/admin/')
    request.user = admin_user
    model_admin = site._registry[model]

    assert model_admin.has_delete_permission(request) is False
    assert 'delete_selected' not in model_admin.get_actions(request)
    assert {'patient_id', 'date'} <= set(model_admin.get_readonly_fields(request))


def test_admin_delete_view_refuses_partly_paid_debt(client, admin_user, patient):
    debt = register_charge(patient, Debt.CATEGORY_STORE, '50').debt
    register_deposit(patient, '20', 'r/1', [debt.id])
    client.force_login(admin_user)

    response = client.post(f'/admin/caja/debt/{debt.id}/delete/', {'post': 'yes'})

    assert response.status_code == 403
    debt.refresh_from_db()
    assert debt.covered_amount == Decimal('20.00')
