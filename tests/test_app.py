import time

import pytest
from fastapi.testclient import TestClient

from app import create_app
from relay import EventRouter


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        time.sleep(0.01)


@pytest.fixture
def relay(state):
    colors = iter(["#c1c1c1", "#c2c2c2", "#c3c3c3", "#c4c4c4"])
    return EventRouter(state, color_factory=lambda: next(colors))


@pytest.fixture
def client(relay):
    with TestClient(create_app(relay=relay)) as c:
        yield c


def frame(event, data):
    return {"event": event, "data": data}


def test_index(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == "Cursor presence relay is running"


def test_room_endpoints(client, relay):
    relay.join("A", "lobby", "alice")
    relay.join("B", "lobby", "bob")
    relay.create_room("C", "empty")

    response = client.get("/rooms")
    assert response.status_code == 200
    assert response.json() == [
        {"room_name": "empty", "member_count": 0},
        {"room_name": "lobby", "member_count": 2},
    ]

    response = client.get("/rooms/lobby")
    assert response.status_code == 200
    assert response.json() == {
        "room_name": "lobby",
        "member_count": 2,
        "members": [
            {"user_id": "A", "username": "alice", "color": "#c1c1c1"},
            {"user_id": "B", "username": "bob", "color": "#c2c2c2"},
        ],
    }


def test_unknown_room_is_404(client):
    response = client.get("/rooms/nowhere")
    assert response.status_code == 404
    assert response.json()["detail"] == "Room not found"


def test_lobby_over_websocket(client, relay):
    directory = relay.directory
    with client.websocket_connect("/ws") as alice:
        alice.send_json(frame("join", {"roomName": "lobby", "username": "alice"}))
        wait_for(lambda: directory.has_room("lobby"))

        with client.websocket_connect("/ws") as bob:
            bob.send_json(frame("join", {"roomName": "lobby", "username": "bob"}))
            joined = alice.receive_json()
            assert joined["event"] == "userJoined"
            assert joined["data"]["username"] == "bob"
            assert joined["data"]["color"] == "#c2c2c2"
            bob_id = joined["data"]["userId"]

            bob.send_json(frame("mousePosition", {"x": 10, "y": 20}))
            assert alice.receive_json() == frame(
                "mousePosition", {"username": "bob", "x": 10, "y": 20, "color": "#c2c2c2"}
            )
            bob.close()
            wait_for(lambda: len(directory.members("lobby")) == 1)

        assert alice.receive_json() == frame("userLeft", {"userId": bob_id})
        assert len(directory.members("lobby")) == 1

    wait_for(lambda: not directory.has_room("lobby"))


def test_garbage_frames_keep_connection_open(client, relay):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        ws.send_json(["no", "event"])
        ws.send_json(frame("join", {"username": "missing room"}))
        ws.send_json(frame("join", {"roomName": "lobby", "username": "alice"}))
        wait_for(lambda: relay.directory.has_room("lobby"))
