"""Durable store contract and an in-memory implementation.

Rooms are kept as flat rows: the board and the move history are stored as
JSON strings and turned back into a :class:`~gomoku_hub.game.GameState` on
every read, so callers always get a fresh copy and never alias store state.
"""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol
from uuid import uuid4

from gomoku_hub.errors import RoomNotFound
from gomoku_hub.game import BOARD_SIZE, GameState, Move, new_game, replay
from gomoku_hub.identity import Identity
from gomoku_hub.room import Room, RoomStatus

logger = logging.getLogger(__name__)


@dataclass
class Profile:
    id: str
    email: str | None
    name: str | None = None
    image: str | None = None

    @property
    def identity(self) -> Identity:
        return Identity.for_profile(self)


class Store(Protocol):
    """Persistence used by the coordinator. Implementations raise StoreUnavailable on failure."""

    async def find_user(self, identifier: str) -> Profile | None:
        """Look a user up by e-mail first, then by user id."""
        ...

    async def create_user(self, profile: Profile) -> Profile:
        ...

    async def find_room(self, room_id: str) -> Room | None:
        ...

    async def list_rooms(self) -> list[Room]:
        """All rooms, newest first."""
        ...

    async def create_room(self, fields: dict[str, Any]) -> Room:
        ...

    async def update_room(self, room_id: str, fields: dict[str, Any]) -> Room:
        ...

    async def delete_rooms_matching(self, predicate: Callable[[Room], bool]) -> int:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryStore:
    """Store backed by dicts. ``latency`` simulates a round-trip on every call."""

    def __init__(
        self,
        users: list[Profile] | None = None,
        board_size: int = BOARD_SIZE,
        latency: float = 0.0,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.board_size = board_size
        self.latency = latency
        self.clock = clock
        self._users: dict[str, Profile] = {}
        self._rooms: dict[str, dict[str, Any]] = {}
        self._next_seq = 0
        for profile in users or []:
            self._users[profile.id] = profile

    async def _round_trip(self):
        await asyncio.sleep(self.latency)

    # -- users -----------------------------------------------------------

    async def find_user(self, identifier: str) -> Profile | None:
        await self._round_trip()
        for profile in self._users.values():
            if profile.email and profile.email == identifier:
                return profile
        return self._users.get(identifier)

    async def create_user(self, profile: Profile) -> Profile:
        await self._round_trip()
        if not profile.id:
            profile = Profile(id=uuid4().hex, email=profile.email, name=profile.name, image=profile.image)
        self._users[profile.id] = profile
        logger.debug(f"Created user {profile.id}")
        return profile

    # -- rooms -----------------------------------------------------------

    def _generate_room_id(self) -> str:
        while True:
            room_id = secrets.token_hex(3)  # 6-char hex
            if room_id not in self._rooms:
                return room_id

    async def find_room(self, room_id: str) -> Room | None:
        await self._round_trip()
        row = self._rooms.get(room_id)
        if row is None:
            return None
        return self._to_room(row)

    async def list_rooms(self) -> list[Room]:
        await self._round_trip()
        rows = sorted(self._rooms.values(), key=lambda r: (r["created_at"], r["seq"]), reverse=True)
        return [self._to_room(row) for row in rows]

    async def create_room(self, fields: dict[str, Any]) -> Room:
        await self._round_trip()
        now = self.clock()
        row: dict[str, Any] = {
            "id": self._generate_room_id(),
            "seq": self._next_seq,
            "name": "",
            "black_player": None,
            "white_player": None,
            "status": RoomStatus.WAITING,
            "created_at": now,
            "updated_at": now,
        }
        row.update(self._serialize_game(new_game(self.board_size)))
        row.update(self._serialize(fields))
        self._rooms[row["id"]] = row
        self._next_seq += 1
        return self._to_room(row)

    async def update_room(self, room_id: str, fields: dict[str, Any]) -> Room:
        await self._round_trip()
        row = self._rooms.get(room_id)
        if row is None:
            raise RoomNotFound()
        row.update(self._serialize(fields))
        row["updated_at"] = self.clock()
        return self._to_room(row)

    async def delete_rooms_matching(self, predicate: Callable[[Room], bool]) -> int:
        await self._round_trip()
        doomed = [room_id for room_id, row in self._rooms.items() if predicate(self._to_room(row))]
        for room_id in doomed:
            del self._rooms[room_id]
        return len(doomed)

    # -- (de)serialization -----------------------------------------------

    def _serialize(self, fields: dict[str, Any]) -> dict[str, Any]:
        row: dict[str, Any] = {}
        for key, value in fields.items():
            if key == "game":
                row.update(self._serialize_game(value))
            elif key in ("black_player", "white_player"):
                row[key] = value.key if value is not None else None
            elif key == "status":
                row[key] = RoomStatus(value)
            else:
                row[key] = value
        return row

    @staticmethod
    def _serialize_game(game: GameState) -> dict[str, Any]:
        return {
            "board": json.dumps(game.board_as_lists()),
            "move_history": json.dumps([m.to_dict() for m in game.move_history]),
            "move_count": game.move_count,
            "current_player": game.current_player,
            "winner": game.winner,
            "is_game_over": game.is_game_over,
        }

    def _to_room(self, row: dict[str, Any]) -> Room:
        moves = tuple(
            Move.from_dict(m, seq=i + 1)
            for i, m in enumerate(json.loads(row["move_history"] or "[]"))
        )
        if row["board"]:
            board = tuple(tuple(line) for line in json.loads(row["board"]))
        else:
            board = replay(moves, self.board_size)
        game = GameState(
            board=board,
            current_player=row["current_player"],
            winner=row["winner"],
            is_game_over=row["is_game_over"],
            move_history=moves,
        )
        return Room(
            id=row["id"],
            name=row["name"],
            black_player=Identity.parse(row["black_player"]) if row["black_player"] else None,
            white_player=Identity.parse(row["white_player"]) if row["white_player"] else None,
            status=row["status"],
            game=game,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
