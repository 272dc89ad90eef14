import asyncio

import pytest

from relay import EventRouter
from sio import build_sio
from transport import DeliveryHub


@pytest.fixture
def server(state):
    colors = iter(["#c1c1c1", "#c2c2c2", "#c3c3c3"])
    relay = EventRouter(state, color_factory=lambda: next(colors))
    hub = DeliveryHub()
    sio = build_sio(relay, hub)
    emitted = []

    async def fake_emit(event, data=None, to=None, **kwargs):
        emitted.append((to, event, data))

    sio.emit = fake_emit
    return sio, hub, emitted


def fire(sio, event, *args):
    asyncio.run(sio.handlers["/"][event](*args))


def test_lobby_over_socketio(server, state):
    sio, hub, emitted = server

    fire(sio, "connect", "A", {})
    fire(sio, "connect", "B", {})
    assert hub.is_registered("A") and hub.is_registered("B")

    fire(sio, "join", "A", {"roomName": "lobby", "username": "alice"})
    fire(sio, "join", "B", {"roomName": "lobby", "username": "bob"})
    fire(sio, "mousePosition", "B", {"x": 10, "y": 20})
    fire(sio, "disconnect", "B")

    assert emitted == [
        ("A", "userJoined", {"username": "bob", "userId": "B", "color": "#c2c2c2"}),
        ("A", "mousePosition", {"username": "bob", "x": 10, "y": 20, "color": "#c2c2c2"}),
        ("A", "userLeft", {"userId": "B"}),
    ]
    assert not hub.is_registered("B")
    assert [m.connection_id for m in state.directory.members("lobby")] == ["A"]


def test_create_room_over_socketio(server, state):
    sio, hub, emitted = server

    fire(sio, "connect", "A", {})
    fire(sio, "createRoom", "A", "studio")
    fire(sio, "createRoom", "A", "studio")

    assert state.directory.room_names() == frozenset({"studio"})
    assert emitted == []


def test_disconnect_accepts_reason_argument(server, state):
    sio, hub, emitted = server

    fire(sio, "connect", "A", {})
    fire(sio, "join", "A", {"roomName": "lobby", "username": "alice"})
    fire(sio, "disconnect", "A", "client disconnect")

    assert not state.directory.has_room("lobby")
    assert not hub.is_registered("A")


def test_malformed_event_is_silent(server):
    sio, hub, emitted = server

    fire(sio, "connect", "A", {})
    fire(sio, "join", "A", "not-an-object")
    fire(sio, "mousePosition", "A")

    assert emitted == []
