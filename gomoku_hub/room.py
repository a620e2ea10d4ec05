"""Room sessions: seats, authoritative game state, subscriptions, and cleanup."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import StrEnum
from typing import TYPE_CHECKING

from gomoku_hub.connection import Connection, ConnectionHub
from gomoku_hub.errors import (
    CellOccupied,
    GameOver,
    NotAPlayer,
    NotYourTurn,
    OutOfBounds,
    RoomFull,
    RoomNotFound,
    SeatsIncomplete,
)
from gomoku_hub.game import BLACK, WHITE, GameState, apply_move, in_bounds
from gomoku_hub.identity import Identity
from gomoku_hub.models import (
    GameUpdatedMsg,
    LobbyUpdatedMsg,
    MovePayload,
    RoomPayload,
    RoomUpdatedMsg,
)
from gomoku_hub.presence import PresenceRegistry, PresenceStatus

if TYPE_CHECKING:
    from pydantic import BaseModel

    from gomoku_hub.store import Store

logger = logging.getLogger(__name__)

WAITING_ROOM_TTL = 60 * 60  # seconds
PLAYING_ROOM_TTL = 2 * 60 * 60


class RoomStatus(StrEnum):
    WAITING = "WAITING"
    PLAYING = "PLAYING"
    FINISHED = "FINISHED"


@dataclass
class Room:
    id: str
    name: str
    black_player: Identity | None = None
    white_player: Identity | None = None
    status: RoomStatus = RoomStatus.WAITING
    game: GameState = field(default_factory=GameState)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def seats_filled(self) -> bool:
        return self.black_player is not None and self.white_player is not None

    @property
    def players(self) -> list[Identity]:
        return [p for p in (self.black_player, self.white_player) if p is not None]

    def color_of(self, identity: Identity) -> str | None:
        if identity == self.black_player:
            return BLACK
        if identity == self.white_player:
            return WHITE
        return None

    def to_payload(self) -> RoomPayload:
        return RoomPayload(
            id=self.id,
            name=self.name,
            black_player=self.black_player.key if self.black_player else None,
            white_player=self.white_player.key if self.white_player else None,
            status=str(self.status),
            board=self.game.board_as_lists(),
            current_player=self.game.current_player,
            winner=self.game.winner,
            is_game_over=self.game.is_game_over,
            move_history=[MovePayload(**m.to_dict()) for m in self.game.move_history],
            move_count=self.game.move_count,
            created_at=self.created_at.isoformat() if self.created_at else "",
            updated_at=self.updated_at.isoformat() if self.updated_at else "",
        )


class RoomSessionManager:
    """Sole writer of room state.

    Every mutation of a room runs under that room's lock, so two moves sent
    back to back are applied one after the other even though the store is
    awaited in between. Rooms never share a lock, and a lock only lives while
    some task holds or waits on it.
    """

    def __init__(
        self,
        store: Store,
        presence: PresenceRegistry,
        hub: ConnectionHub,
        waiting_ttl: float = WAITING_ROOM_TTL,
        playing_ttl: float = PLAYING_ROOM_TTL,
    ):
        self.store = store
        self.presence = presence
        self.hub = hub
        self.waiting_ttl = timedelta(seconds=waiting_ttl)
        self.playing_ttl = timedelta(seconds=playing_ttl)
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self._subscribers: dict[str, set[Connection]] = {}

    @asynccontextmanager
    async def locked(self, room_id: str):
        lock = self._locks.get(room_id)
        if lock is None:
            lock = self._locks[room_id] = asyncio.Lock()
        self._lock_users[room_id] = self._lock_users.get(room_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[room_id] -= 1
            if not self._lock_users[room_id]:
                del self._lock_users[room_id]
                del self._locks[room_id]

    def active_locks(self) -> int:
        return len(self._locks)

    def subscribers(self, room_id: str) -> set[Connection]:
        return set(self._subscribers.get(room_id, ()))

    async def _fetch(self, room_id: str) -> Room:
        room = await self.store.find_room(room_id)
        if room is None:
            raise RoomNotFound()
        return room

    async def _broadcast_room(self, room_id: str, msg: BaseModel):
        for conn in list(self._subscribers.get(room_id, ())):
            await conn.send(msg)

    async def _mark_playing(self, room: Room):
        for identity in room.players:
            self.presence.set_status(identity, PresenceStatus.PLAYING)
        await self.presence.broadcast(self.hub)

    # -- queries ---------------------------------------------------------

    async def get_room(self, room_id: str) -> Room:
        return await self._fetch(room_id)

    async def list_rooms(self) -> list[Room]:
        return await self.store.list_rooms()

    async def has_active_room(self, identity: Identity) -> bool:
        for room in await self.store.list_rooms():
            if room.status == RoomStatus.PLAYING and room.color_of(identity) is not None:
                return True
        return False

    # -- seats -----------------------------------------------------------

    async def create_room(self, name: str, black: Identity, white: Identity | None = None) -> Room:
        """Create a room seating ``black`` (and ``white`` when given)."""
        status = RoomStatus.PLAYING if white is not None else RoomStatus.WAITING
        room = await self.store.create_room(
            {"name": name, "black_player": black, "white_player": white, "status": status}
        )
        logger.info(f"Room {room.id} ({room.name!r}) created, status {room.status}")
        if room.status == RoomStatus.PLAYING:
            await self._mark_playing(room)
        await self.hub.broadcast(LobbyUpdatedMsg())
        return room

    async def take_seat(self, room_id: str, identity: Identity) -> Room:
        """Seat ``identity`` in the first free seat (white, then black)."""
        async with self.locked(room_id):
            room = await self._fetch(room_id)
            if room.color_of(identity) is not None:
                return room
            if room.seats_filled:
                raise RoomFull()

            if room.white_player is None:
                fields = {"white_player": identity}
                filled = room.black_player is not None
            else:
                fields = {"black_player": identity}
                filled = True
            fields["status"] = RoomStatus.PLAYING if filled else RoomStatus.WAITING
            room = await self.store.update_room(room_id, fields)
            logger.info(f"User {identity} took a seat in room {room_id}, status {room.status}")

            if room.status == RoomStatus.PLAYING:
                await self._mark_playing(room)
            await self._broadcast_room(room_id, RoomUpdatedMsg(room=room.to_payload()))

        await self.hub.broadcast(LobbyUpdatedMsg())
        return room

    # -- moves -----------------------------------------------------------

    async def submit_move(self, room_id: str, identity: Identity, row: int, col: int) -> Room:
        async with self.locked(room_id):
            room = await self._fetch(room_id)
            if not room.seats_filled:
                raise SeatsIncomplete()
            color = room.color_of(identity)
            if color is None:
                raise NotAPlayer()
            if room.game.current_player != color:
                raise NotYourTurn()
            if room.game.is_game_over:
                raise GameOver()
            if not in_bounds(room.game.board, row, col):
                raise OutOfBounds()
            if room.game.cell(row, col) is not None:
                raise CellOccupied()

            game = apply_move(room.game, row, col)
            status = RoomStatus.FINISHED if game.is_game_over else RoomStatus.PLAYING
            room = await self.store.update_room(room_id, {"game": game, "status": status})
            logger.debug(f"Room {room_id}: {color} played ({row}, {col}), move {game.move_count}")

            if game.is_game_over:
                logger.info(f"Room {room_id} finished, winner: {game.winner or 'draw'}")
                for player in room.players:
                    self.presence.set_status(player, PresenceStatus.AVAILABLE)
                await self.presence.broadcast(self.hub)

            await self._broadcast_room(room_id, GameUpdatedMsg(room=room.to_payload()))

        await self.hub.broadcast(LobbyUpdatedMsg())
        return room

    # -- subscriptions ---------------------------------------------------

    async def join(self, room_id: str, conn: Connection) -> Room:
        """Subscribe ``conn`` to the room and push the current snapshot to its subscribers."""
        async with self.locked(room_id):
            room = await self._fetch(room_id)
            self._subscribers.setdefault(room_id, set()).add(conn)
            await self._broadcast_room(room_id, RoomUpdatedMsg(room=room.to_payload()))
        logger.debug(f"{conn!r} joined room {room_id}")
        return room

    def leave(self, room_id: str, conn: Connection):
        subscribers = self._subscribers.get(room_id)
        if subscribers is None:
            return
        subscribers.discard(conn)
        if not subscribers:
            del self._subscribers[room_id]
        logger.debug(f"{conn!r} left room {room_id}")

    def unsubscribe_all(self, conn: Connection):
        for room_id in list(self._subscribers):
            self.leave(room_id, conn)

    # -- cleanup ---------------------------------------------------------

    def is_abandoned(self, room: Room, now: datetime) -> bool:
        if room.updated_at is None:
            return False
        idle = now - room.updated_at
        if room.status == RoomStatus.WAITING:
            return idle > self.waiting_ttl
        if room.status == RoomStatus.PLAYING:
            return idle > self.playing_ttl
        return False

    async def _release_players(self, players: set[Identity]) -> bool:
        """Set players of deleted games back to available unless they sit in another game."""
        changed = False
        for identity in players:
            entry = self.presence.get(identity)
            if entry is None or entry.status != PresenceStatus.PLAYING:
                continue
            if await self.has_active_room(identity):
                continue
            self.presence.set_status(identity, PresenceStatus.AVAILABLE)
            changed = True
        return changed

    async def sweep(self, now: datetime | None = None) -> int:
        """Delete WAITING and PLAYING rooms that have been idle too long."""
        now = now or datetime.now(timezone.utc)
        deleted = 0
        orphaned: set[Identity] = set()
        for room in await self.store.list_rooms():
            if not self.is_abandoned(room, now):
                continue
            async with self.locked(room.id):
                # Re-checked inside the store call in case a move landed meanwhile.
                count = await self.store.delete_rooms_matching(
                    lambda r, room_id=room.id: r.id == room_id and self.is_abandoned(r, now)
                )
            if count:
                self._subscribers.pop(room.id, None)
                deleted += count
                if room.status == RoomStatus.PLAYING:
                    orphaned.update(room.players)

        if deleted:
            logger.info(f"Cleaned up {deleted} abandoned rooms")
        if await self._release_players(orphaned):
            await self.presence.broadcast(self.hub)
        return deleted
