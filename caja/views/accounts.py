"""
Read endpoints for patient caja accounts.

Balances are always recomputed from the ledgers; only the overview
list is cached, and every committed ledger write drops that cache.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status

from ..permissions import ReadOnlyOrCashier
from ..serializers.caja import AccountOpenSerializer
from ..services.accounts import open_account
from ..services.cuts import format_cut, pending_cut
from ..services.debts import format_debt, list_outstanding, outstanding_total
from ..services.deposits import format_deposit, list_available_credit, total_credit
from ..services.money import fmt
from ..services.summary import account_statement, caja_overview


@api_view(['GET', 'POST'])
@permission_classes([ReadOnlyOrCashier])
def accounts(request):
    """GET: overview of every account.  POST: register a patient id."""
    if request.method == 'GET':
        return Response({'ok': True, 'data': caja_overview()})
    s = AccountOpenSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    account, created = open_account(s.validated_data['patientId'])
    return Response(
        {'ok': True, 'patientId': account.patient_id, 'created': created},
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def account_detail(request, patient_id: int):
    return Response({'ok': True, 'data': account_statement(patient_id)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def outstanding_debts(request, patient_id: int):
    debts = list_outstanding(patient_id)
    return Response({
        'ok': True,
        'data': [format_debt(d) for d in debts],
        'total': fmt(outstanding_total(patient_id)),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def available_credit(request, patient_id: int):
    deposits = list_available_credit(patient_id)
    return Response({
        'ok': True,
        'data': [format_deposit(d) for d in deposits],
        'total': fmt(total_credit(patient_id)),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def blocked(request, patient_id: int):
    cut = pending_cut(patient_id)
    return Response({'ok': True, 'blocked': cut is not None, 'cut': format_cut(cut) if cut else None})
