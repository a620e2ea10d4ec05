"""REST room endpoints."""

import pytest
from fastapi.testclient import TestClient

from gomoku_hub.main import create_app


@pytest.fixture
def client(coordinator):
    with TestClient(create_app(coordinator)) as c:
        yield c


def create_room(client, name="Friday game", email="alice@example.com"):
    return client.post("/api/rooms", json={"name": name, "email": email})


def test_create_room(client):
    resp = create_room(client)
    assert resp.status_code == 201
    room = resp.json()
    assert room["name"] == "Friday game"
    assert room["status"] == "WAITING"
    assert room["black_player"] == "email:alice@example.com"
    assert room["white_player"] is None
    assert room["move_history"] == []
    assert len(room["board"]) == 15


def test_create_room_requires_name(client):
    resp = create_room(client, name="   ")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Room name is required"


def test_create_room_creates_unknown_user(client, coordinator):
    resp = create_room(client, email="erin@example.com")
    assert resp.status_code == 201
    assert resp.json()["black_player"] == "email:erin@example.com"


def test_list_rooms_newest_first(client):
    create_room(client, name="first")
    create_room(client, name="second")
    resp = client.get("/api/rooms")
    assert resp.status_code == 200
    names = [r["name"] for r in resp.json()]
    assert names.index("second") < names.index("first")


def test_get_room(client):
    room_id = create_room(client).json()["id"]
    resp = client.get(f"/api/rooms/{room_id}")
    assert resp.status_code == 200
    assert resp.json()["id"] == room_id


def test_get_missing_room(client):
    resp = client.get("/api/rooms/nope")
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Room not found", "error_code": "ROOM_NOT_FOUND"}


def test_join_room(client):
    room_id = create_room(client).json()["id"]

    resp = client.post(f"/api/rooms/{room_id}/join", json={"email": "bob@example.com"})
    assert resp.status_code == 200
    room = resp.json()
    assert room["white_player"] == "email:bob@example.com"
    assert room["status"] == "PLAYING"

    # Joining again as a seated player returns the room unchanged.
    again = client.post(f"/api/rooms/{room_id}/join", json={"email": "bob@example.com"})
    assert again.status_code == 200
    assert again.json()["white_player"] == "email:bob@example.com"


def test_join_full_room(client):
    room_id = create_room(client).json()["id"]
    client.post(f"/api/rooms/{room_id}/join", json={"email": "bob@example.com"})

    resp = client.post(f"/api/rooms/{room_id}/join", json={"email": "carol@example.com"})
    assert resp.status_code == 400
    assert resp.json()["error_code"] == "ROOM_FULL"
