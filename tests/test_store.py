"""In-memory store: serialized rows and read-side deserialization."""

import json

import pytest

from conftest import ALICE, BOB, DAVE
from gomoku_hub.errors import RoomNotFound
from gomoku_hub.game import BLACK, apply_move, new_game
from gomoku_hub.room import RoomStatus
from gomoku_hub.store import InMemoryStore, Profile


@pytest.mark.asyncio
async def test_find_user_by_email_then_id(store):
    assert await store.find_user("alice@example.com") == ALICE
    assert await store.find_user("wx-dave") == DAVE
    assert await store.find_user("u-bob") == BOB
    assert await store.find_user("nobody") is None


@pytest.mark.asyncio
async def test_create_user_assigns_id(store):
    profile = await store.create_user(Profile(id="", email="erin@example.com", name="Erin"))
    assert profile.id
    assert await store.find_user("erin@example.com") == profile


@pytest.mark.asyncio
async def test_board_and_history_stored_as_json(store):
    room = await store.create_room({"name": "t", "black_player": ALICE.identity})
    game = apply_move(apply_move(new_game(), 7, 7), 8, 8)

    updated = await store.update_room(room.id, {"game": game, "status": RoomStatus.PLAYING})

    row = store._rooms[room.id]
    assert json.loads(row["board"])[7][7] == "black"
    assert json.loads(row["move_history"])[1] == {"row": 8, "col": 8, "player": "white", "seq": 2}
    assert updated.game == game
    assert updated.black_player == ALICE.identity


@pytest.mark.asyncio
async def test_missing_board_is_rebuilt_from_history(store):
    room = await store.create_room({"name": "t", "black_player": ALICE.identity})
    await store.update_room(room.id, {"game": apply_move(new_game(), 3, 3)})
    store._rooms[room.id]["board"] = ""

    restored = await store.find_room(room.id)
    assert restored.game.board[3][3] == BLACK


@pytest.mark.asyncio
async def test_reads_return_copies(store):
    room = await store.create_room({"name": "t", "black_player": ALICE.identity})
    room.name = "changed"
    assert (await store.find_room(room.id)).name == "t"


@pytest.mark.asyncio
async def test_update_missing_room():
    with pytest.raises(RoomNotFound):
        await InMemoryStore().update_room("nope", {"name": "x"})


@pytest.mark.asyncio
async def test_delete_rooms_matching(store):
    keep = await store.create_room({"name": "keep", "black_player": ALICE.identity})
    await store.create_room({"name": "drop", "black_player": BOB.identity})

    assert await store.delete_rooms_matching(lambda r: r.name == "drop") == 1
    assert [r.id for r in await store.list_rooms()] == [keep.id]
