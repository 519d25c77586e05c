"""
Write endpoints: charges, deposits and cash cuts, plus the deposit preview.

Ledger errors raised by the services are rendered by
``caja.exceptions.api_exception_handler``.
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status

from caja.exceptions import BlockedError
from caja.permissions import IsCashier
from caja.serializers.caja import ChargeSerializer, CutSerializer, DepositPreviewSerializer, DepositSerializer
from caja.services.allocation import format_preview, preview_deposit, register_charge, register_deposit
from caja.services.cuts import format_cut, is_blocked, request_cut
from caja.services.debts import format_debt
from caja.services.deposits import format_deposit


@api_view(['POST'])
@permission_classes([IsCashier])
def charge_create(request):
    s = ChargeSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = s.validated_data
    if is_blocked(data['patientId']):
        raise BlockedError('charging is blocked until the pending cash cut is settled', patientId=data['patientId'])
    result = register_charge(
        data['patientId'], data['category'], data['amount'],
        date=data.get('date'), note=data.get('note', ''), user=request.user,
    )
    return Response({
        'ok': True,
        'debt': format_debt(result.debt),
        'creditUsed': str(result.credit_used),
        'deposits': [format_deposit(d) for d in result.deposits],
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsCashier])
def deposit_create(request):
    s = DepositSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = s.validated_data
    result = register_deposit(
        data['patientId'], data['amount'], data.get('receiptRef', ''),
        debt_ids=data['debtIds'], date=data.get('date'), order=data['order'], user=request.user,
    )
    return Response({
        'ok': True,
        'deposit': format_deposit(result.deposit),
        'applied': str(result.applied),
        'debts': [format_debt(d) for d in result.debts],
        'resolvedCut': format_cut(result.resolved_cut) if result.resolved_cut else None,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsCashier])
def cut_create(request):
    s = CutSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    cut = request_cut(s.validated_data['patientId'], user=request.user)
    return Response({'ok': True, 'cut': format_cut(cut)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def deposit_preview(request):
    """Outcome of a planned deposit; nothing is written.

    GET takes ``?patientId=&amount=&debtIds=1&debtIds=2``; POST takes the
    same fields as JSON.
    """
    s = DepositPreviewSerializer(data=request.query_params if request.method == 'GET' else request.data)
    s.is_valid(raise_exception=True)
    data = s.validated_data
    preview = preview_deposit(data['patientId'], data['amount'], data['debtIds'], order=data['order'])
    return Response({'ok': True, 'data': format_preview(preview)})
