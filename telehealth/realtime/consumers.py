import logging

from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.contrib.auth.models import AnonymousUser

from .rooms import is_valid_room_id, room_group_name, room_registry

logger = logging.getLogger(__name__)

# event name -> payload key forwarded to the other participants
RELAYED_EVENTS = {
    "offer": "offer",
    "answer": "answer",
    "ice-candidate": "candidate",
    "chat-message": "message",
    "typing": "isTyping",
}


async def _ws_error(ws, code: int, message: str, *, close: bool = False):
    """
    Uniform error frame.
    4xxx for client errors, 5xxx for server errors.
    """
    try:
        await ws.send_json({"event": "error", "code": code, "message": message})
    finally:
        if close:
            await ws.close(code=code)


class SignalingConsumer(AsyncJsonWebsocketConsumer):
    """WebRTC signaling relay.

    Peers join a room, then exchange offer/answer/ICE frames that are
    forwarded to every other member of the room.  The media itself never
    passes through the server.
    """

    async def connect(self):
        user = self.scope.get("user") or AnonymousUser()
        if not user.is_authenticated:
            await self.close(code=4401)
            return
        self.user = user
        await self.accept()
        logger.debug("signaling connection %s opened by user %s", self.channel_name, user.id)

    async def disconnect(self, close_code):
        for room_id in room_registry.leave_all(self.channel_name):
            await self._announce_leave(room_id)

    async def receive(self, text_data=None, bytes_data=None, **kwargs):
        if not text_data:
            return
        try:
            data = await self.decode_json(text_data)
        except ValueError:
            await _ws_error(self, 4000, "invalid_json")
            return
        await self.receive_json(data)

    async def receive_json(self, content, **kwargs):
        if not isinstance(content, dict):
            await _ws_error(self, 4000, "invalid_payload")
            return

        event = content.get("event")
        if event not in RELAYED_EVENTS and event not in ("join-room", "leave-room"):
            await _ws_error(self, 4002, "unknown_event")
            return

        room_id = content.get("roomId")
        if not is_valid_room_id(room_id):
            await _ws_error(self, 4001, "invalid_room_id")
            return

        try:
            if event == "join-room":
                await self.join_room(room_id, content)
            elif event == "leave-room":
                await self.leave_room(room_id)
            else:
                await self.relay(event, room_id, content.get(RELAYED_EVENTS[event]))
        except Exception:
            logger.exception("signaling event %s failed for %s", event, self.channel_name)
            await _ws_error(self, 5000, "server_error")

    async def join_room(self, room_id, content):
        already_member = room_registry.is_member(room_id, self.channel_name)
        others = room_registry.join(room_id, self.channel_name)
        if not already_member:
            await self.channel_layer.group_add(room_group_name(room_id), self.channel_name)
            logger.info("%s joined room %s (%d others)", self.channel_name, room_id, len(others))
            await self.channel_layer.group_send(room_group_name(room_id), {
                "type": "signal.relay",
                "sender": self.channel_name,
                "payload": {
                    "event": "user-joined",
                    "userId": self.user.id,
                    "userName": content.get("userName") or self.user.display_name,
                    "socketId": self.channel_name,
                },
            })
        await self.send_json({"event": "room-participants", "roomId": room_id, "participants": others})

    async def leave_room(self, room_id):
        if room_registry.leave(room_id, self.channel_name):
            await self._announce_leave(room_id)

    async def _announce_leave(self, room_id):
        group = room_group_name(room_id)
        await self.channel_layer.group_discard(group, self.channel_name)
        await self.channel_layer.group_send(group, {
            "type": "signal.relay",
            "sender": self.channel_name,
            "payload": {"event": "user-left", "roomId": room_id, "socketId": self.channel_name},
        })
        logger.info("%s left room %s", self.channel_name, room_id)

    async def relay(self, event, room_id, value):
        if not room_registry.is_member(room_id, self.channel_name):
            await _ws_error(self, 4003, "not_in_room")
            return
        await self.channel_layer.group_send(room_group_name(room_id), {
            "type": "signal.relay",
            "sender": self.channel_name,
            "payload": {
                "event": event,
                "roomId": room_id,
                RELAYED_EVENTS[event]: value,
                "from": self.channel_name,
            },
        })

    # group_send handler: {"type": "signal.relay", "sender": ..., "payload": {...}}
    async def signal_relay(self, event):
        if event.get("sender") == self.channel_name:
            return
        await self.send_json(event.get("payload", {}))
