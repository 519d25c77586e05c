from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.cache import cache
from django.db import transaction
from django.utils import timezone

OVERVIEW_CACHE_KEY = 'caja:overview'


def patient_group(patient_id: int) -> str:
    return f"caja.{patient_id}"


def _broadcast(patient_id: int, reason: str) -> None:
    cache.delete(OVERVIEW_CACHE_KEY)
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    event = {
        "type": "caja.updated",
        "patientId": patient_id,
        "reason": reason,
        "ts": timezone.now().isoformat(),
    }
    async_to_sync(channel_layer.group_send)(patient_group(patient_id), event)


def notify_patient(patient_id: int, reason: str) -> None:
    """After commit, drop the overview cache and tell open screens to re-query."""
    transaction.on_commit(lambda: _broadcast(patient_id, reason))
