from types import SimpleNamespace

import pytest
from channels.db import database_sync_to_async
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser
from django.urls import path
from rest_framework.authtoken.models import Token

from telehealth.middleware import TokenAuthMiddlewareStack
from telehealth.models import User
from telehealth.realtime.consumers import SignalingConsumer
from telehealth.realtime.rooms import room_registry

# channels>=4.2 closes stale DB connections on every consumer dispatch.
pytestmark = pytest.mark.django_db(transaction=True)

application = URLRouter([path("ws/signaling/", SignalingConsumer.as_asgi())])


def fake_user(uid, name):
    return SimpleNamespace(is_authenticated=True, id=uid, display_name=name)


async def connect(user, app=application, path_="/ws/signaling/"):
    communicator = WebsocketCommunicator(app, path_)
    communicator.scope["user"] = user
    connected, _ = await communicator.connect()
    assert connected
    return communicator


async def join(communicator, room="r1", name=None):
    frame = {"event": "join-room", "roomId": room}
    if name:
        frame["userName"] = name
    await communicator.send_json_to(frame)
    reply = await communicator.receive_json_from()
    assert reply["event"] == "room-participants"
    return reply["participants"]


@pytest.mark.asyncio
async def test_anonymous_connection_is_rejected():
    communicator = WebsocketCommunicator(application, "/ws/signaling/")
    communicator.scope["user"] = AnonymousUser()
    connected, code = await communicator.connect()
    assert connected is False
    assert code == 4401


@pytest.mark.asyncio
async def test_join_announces_and_lists_participants():
    a = await connect(fake_user(1, "Alice"))
    b = await connect(fake_user(2, "Bob"))

    assert await join(a, name="Alice") == []
    (a_id,) = room_registry.participants("r1")

    assert await join(b, name="Bob") == [a_id]
    joined = await a.receive_json_from()
    assert joined["event"] == "user-joined"
    assert joined["userId"] == 2
    assert joined["userName"] == "Bob"
    b_id = joined["socketId"]
    assert sorted(room_registry.participants("r1")) == sorted([a_id, b_id])

    await a.disconnect()
    await b.disconnect()


@pytest.mark.asyncio
async def test_user_name_defaults_to_display_name():
    a = await connect(fake_user(1, "Alice"))
    b = await connect(fake_user(2, "Dr. Bob"))
    await join(a)
    await join(b)
    joined = await a.receive_json_from()
    assert joined["userName"] == "Dr. Bob"
    await a.disconnect()
    await b.disconnect()


@pytest.mark.asyncio
async def test_signals_are_relayed_to_others_only():
    a = await connect(fake_user(1, "Alice"))
    b = await connect(fake_user(2, "Bob"))
    c = await connect(fake_user(3, "Carol"))
    await join(a)
    (a_id,) = room_registry.participants("r1")
    await join(b)
    b_id = (await a.receive_json_from())["socketId"]
    await join(c)
    await a.receive_json_from()
    await b.receive_json_from()

    offer = {"type": "offer", "sdp": "v=0"}
    await a.send_json_to({"event": "offer", "roomId": "r1", "offer": offer})
    for peer in (b, c):
        msg = await peer.receive_json_from()
        assert msg == {"event": "offer", "roomId": "r1", "offer": offer, "from": a_id}
    assert await a.receive_nothing()

    await b.send_json_to({"event": "ice-candidate", "roomId": "r1", "candidate": {"candidate": "c1"}})
    for peer in (a, c):
        msg = await peer.receive_json_from()
        assert msg["event"] == "ice-candidate"
        assert msg["candidate"] == {"candidate": "c1"}
        assert msg["from"] == b_id
    assert await b.receive_nothing()

    for ws in (a, b, c):
        await ws.disconnect()


@pytest.mark.asyncio
async def test_chat_and_typing_are_relayed():
    a = await connect(fake_user(1, "Alice"))
    b = await connect(fake_user(2, "Bob"))
    await join(a)
    await join(b)
    await a.receive_json_from()

    await a.send_json_to({"event": "chat-message", "roomId": "r1", "message": {"text": "hi"}})
    assert (await b.receive_json_from())["message"] == {"text": "hi"}

    await b.send_json_to({"event": "typing", "roomId": "r1", "isTyping": True})
    assert (await a.receive_json_from())["isTyping"] is True

    await a.disconnect()
    await b.disconnect()


@pytest.mark.asyncio
async def test_relay_requires_membership():
    a = await connect(fake_user(1, "Alice"))
    await a.send_json_to({"event": "answer", "roomId": "r1", "answer": {}})
    err = await a.receive_json_from()
    assert err == {"event": "error", "code": 4003, "message": "not_in_room"}
    await a.disconnect()


@pytest.mark.asyncio
async def test_bad_frames_produce_error_frames():
    a = await connect(fake_user(1, "Alice"))

    await a.send_to(text_data="{not json")
    assert (await a.receive_json_from())["code"] == 4000

    await a.send_json_to({"event": "hack", "roomId": "r1"})
    assert (await a.receive_json_from())["code"] == 4002

    await a.send_json_to({"event": "join-room", "roomId": "bad room!"})
    assert (await a.receive_json_from())["code"] == 4001

    # connection stays open after errors
    assert await join(a) == []
    await a.disconnect()


@pytest.mark.asyncio
async def test_leave_room_notifies_and_discards_empty_room():
    a = await connect(fake_user(1, "Alice"))
    b = await connect(fake_user(2, "Bob"))
    await join(a)
    await join(b)
    joined = await a.receive_json_from()
    b_id = joined["socketId"]

    await b.send_json_to({"event": "leave-room", "roomId": "r1"})
    left = await a.receive_json_from()
    assert left == {"event": "user-left", "roomId": "r1", "socketId": b_id}
    assert b_id not in room_registry.participants("r1")

    await a.send_json_to({"event": "leave-room", "roomId": "r1"})
    assert await a.receive_nothing()
    assert room_registry.rooms() == {}

    await a.disconnect()
    await b.disconnect()


@pytest.mark.asyncio
async def test_disconnect_leaves_every_room():
    a = await connect(fake_user(1, "Alice"))
    b = await connect(fake_user(2, "Bob"))
    await join(a, room="r1")
    await join(a, room="r2")
    await join(b, room="r1")
    joined = await a.receive_json_from()
    b_id = joined["socketId"]

    await b.disconnect()
    left = await a.receive_json_from()
    assert left["event"] == "user-left"
    assert left["socketId"] == b_id

    await a.disconnect()
    assert room_registry.rooms() == {}


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_token_in_query_string_authenticates():
    user = await database_sync_to_async(User.objects.create_user)(
        username="ws_doc", password="P@ssw0rd1", role="doctor")
    token = await database_sync_to_async(Token.objects.create)(user=user)
    app = TokenAuthMiddlewareStack(application)

    communicator = WebsocketCommunicator(app, f"/ws/signaling/?token={token.key}")
    connected, _ = await communicator.connect()
    assert connected
    await communicator.disconnect()

    communicator = WebsocketCommunicator(app, "/ws/signaling/?token=not-a-token")
    connected, code = await communicator.connect()
    assert connected is False
    assert code == 4401
