import json
from channels.generic.websocket import AsyncWebsocketConsumer

from caja.services.notify import patient_group


class CajaUpdatesConsumer(AsyncWebsocketConsumer):
    """Pushes ``caja.updated`` events for one patient so screens re-query."""

    async def connect(self):
        user = self.scope.get("user")
        if not (user and user.is_authenticated):
            await self.close(code=4003)
            return
        self.group_name = patient_group(int(self.scope["url_route"]["kwargs"]["patient_id"]))
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def caja_updated(self, event):
        # event: {"type": "caja.updated", "patientId": int, "reason": str, "ts": "..."}
        await self.send(json.dumps(event))
