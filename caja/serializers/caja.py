from rest_framework import serializers

from caja.models import Debt

AMOUNT = dict(max_digits=12, decimal_places=2, coerce_to_string=True)


class AccountOpenSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1)

class ChargeSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1)
    category = serializers.ChoiceField(choices=[c for c, _ in Debt.CATEGORY_CHOICES], default=Debt.CATEGORY_STORE)
    amount = serializers.DecimalField(**AMOUNT)
    date = serializers.DateTimeField(required=False)
    note = serializers.CharField(max_length=255, required=False, allow_blank=True)

class DepositSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1)
    amount = serializers.DecimalField(**AMOUNT)
    # presence is enforced by the deposit ledger so the error keeps its code
    receiptRef = serializers.CharField(max_length=512, required=False, allow_blank=True)
    debtIds = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False, default=list)
    order = serializers.ChoiceField(choices=['selection', 'date'], default='selection')
    date = serializers.DateTimeField(required=False)

class CutSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1)

class DepositPreviewSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1)
    amount = serializers.DecimalField(**AMOUNT)
    debtIds = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False, default=list)
    order = serializers.ChoiceField(choices=['selection', 'date'], default='selection')
