"""Wires presence, invitations and rooms together for one server process."""

from __future__ import annotations

import asyncio
import logging

from gomoku_hub.config import Settings, settings as default_settings
from gomoku_hub.connection import Connection, ConnectionHub
from gomoku_hub.errors import InvalidStatus, NotAuthenticated, UserNotFound
from gomoku_hub.identity import Identity
from gomoku_hub.invitations import InvitationBroker
from gomoku_hub.models import OnlineUsersUpdatedMsg
from gomoku_hub.presence import PresenceRegistry, PresenceStatus
from gomoku_hub.room import RoomSessionManager
from gomoku_hub.store import InMemoryStore, Profile, Store

logger = logging.getLogger(__name__)


class Coordinator:
    def __init__(self, store: Store | None = None, settings: Settings | None = None):
        self.settings = settings or default_settings
        self.store = store if store is not None else InMemoryStore(board_size=self.settings.board_size)
        self.hub = ConnectionHub()
        self.presence = PresenceRegistry()
        self.rooms = RoomSessionManager(
            self.store,
            self.presence,
            self.hub,
            waiting_ttl=self.settings.waiting_room_ttl,
            playing_ttl=self.settings.playing_room_ttl,
        )
        self.invitations = InvitationBroker(self.presence, self.rooms, self.hub)
        self._tasks: set[asyncio.Task] = set()

    # -- connections -----------------------------------------------------

    def connect(self, conn: Connection):
        self.hub.add(conn)
        logger.info(f"Client connected: {conn.id}")

    async def authenticate(self, conn: Connection, identifier: str) -> Profile:
        profile = await self.store.find_user(identifier)
        if profile is None:
            raise UserNotFound()
        identity = profile.identity
        in_game = await self.rooms.has_active_room(identity)
        self.presence.authenticate(identity, conn, profile, in_game=in_game)
        await self.presence.broadcast(self.hub)
        return profile

    def identity_for(self, conn: Connection) -> Identity | None:
        return self.presence.identity_for(conn)

    def require_identity(self, conn: Connection) -> Identity:
        identity = self.presence.identity_for(conn)
        if identity is None:
            raise NotAuthenticated()
        return identity

    async def send_online_users(self, conn: Connection):
        await conn.send(OnlineUsersUpdatedMsg(users=self.presence.snapshot()))

    async def update_status(self, conn: Connection, status: str):
        identity = self.require_identity(conn)
        entry = self.presence.get(identity)
        if entry.status == PresenceStatus.PLAYING:
            raise InvalidStatus("Cannot change status while playing")
        self.presence.set_status(identity, PresenceStatus(status))
        await self.presence.broadcast(self.hub)

    async def disconnect(self, conn: Connection):
        """Forget everything tied to ``conn``, then schedule a delayed room sweep."""
        logger.info(f"Client disconnected: {conn.id}")
        self.hub.remove(conn)
        self.rooms.unsubscribe_all(conn)

        identity = self.presence.disconnect(conn)
        if identity is not None:
            await self.invitations.cancel_all_for(identity)
            await self.presence.broadcast(self.hub)

        self.schedule_sweep(self.settings.reconnect_grace)

    def release(self, conn: Connection) -> asyncio.Task:
        """Run :meth:`disconnect` as a task of its own so cancelling the caller cannot cut it short."""
        return self._spawn(self.disconnect(conn))

    # -- background cleanup ----------------------------------------------

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def sweep(self) -> int:
        try:
            return await self.rooms.sweep()
        except Exception:
            logger.exception("Error cleaning up rooms")
            return 0

    def schedule_sweep(self, delay: float) -> asyncio.Task:
        async def sweep_later():
            await asyncio.sleep(delay)
            await self.sweep()

        return self._spawn(sweep_later())

    def start_sweeper(self) -> asyncio.Task:
        interval = self.settings.sweep_interval

        async def sweep_loop():
            while True:
                await asyncio.sleep(interval)
                await self.sweep()

        logger.info(f"Room sweeper running every {interval:g}s")
        return self._spawn(sweep_loop())

    async def shutdown(self):
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
