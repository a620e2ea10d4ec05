"""Presence registry: who is online, on which connection, and whether they can be invited."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from gomoku_hub.connection import Connection, ConnectionHub
from gomoku_hub.identity import Identity
from gomoku_hub.models import OnlineUser, OnlineUsersUpdatedMsg

if TYPE_CHECKING:
    from gomoku_hub.store import Profile

logger = logging.getLogger(__name__)


class PresenceStatus(StrEnum):
    AVAILABLE = "available"
    PLAYING = "playing"
    AWAY = "away"


@dataclass
class PresenceEntry:
    identity: Identity
    connection: Connection
    profile: Profile
    status: PresenceStatus = PresenceStatus.AVAILABLE

    def to_online_user(self) -> OnlineUser:
        return OnlineUser(
            identity=self.identity.key,
            email=self.profile.email,
            name=self.profile.name,
            image=self.profile.image,
            status=str(self.status),
        )


class PresenceRegistry:
    """Single owner of the identity → entry map.

    Every method is synchronous, so a mutation always completes within the
    dispatch step that triggered it.
    """

    def __init__(self):
        self._entries: dict[Identity, PresenceEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identity: Identity) -> bool:
        return identity in self._entries

    def get(self, identity: Identity | None) -> PresenceEntry | None:
        if identity is None:
            return None
        return self._entries.get(identity)

    def authenticate(
        self,
        identity: Identity,
        connection: Connection,
        profile: Profile,
        in_game: bool = False,
    ) -> PresenceEntry:
        """Register ``identity`` on ``connection``, replacing any earlier connection.

        An existing entry keeps its status; ``in_game`` marks identities seated
        in a room that is still being played. A connection carries at most
        one identity, so signing in as someone else drops the old entry.
        """
        previous = self.identity_for(connection)
        if previous is not None and previous != identity:
            del self._entries[previous]
            logger.info(f"User {previous} signed out on {connection!r}")

        entry = self._entries.get(identity)
        if entry is None:
            status = PresenceStatus.PLAYING if in_game else PresenceStatus.AVAILABLE
            entry = PresenceEntry(identity=identity, connection=connection, profile=profile, status=status)
            self._entries[identity] = entry
            logger.info(f"User {identity} is now online")
            return entry

        if entry.connection is not connection:
            logger.info(f"User {identity} reconnected on {connection!r} (was {entry.connection!r})")
        entry.connection = connection
        entry.profile = profile
        if in_game:
            entry.status = PresenceStatus.PLAYING
        return entry

    def set_status(self, identity: Identity, status: PresenceStatus):
        entry = self._entries.get(identity)
        if entry is None:
            return
        entry.status = PresenceStatus(status)

    def identity_for(self, connection: Connection) -> Identity | None:
        for identity, entry in self._entries.items():
            if entry.connection is connection:
                return identity
        return None

    def disconnect(self, connection: Connection) -> Identity | None:
        """Drop the entry owned by ``connection``.

        Removal is keyed on the connection handle, so a late disconnect of a
        replaced connection leaves the newer entry alone.
        """
        identity = self.identity_for(connection)
        if identity is None:
            return None
        del self._entries[identity]
        logger.info(f"User {identity} went offline")
        return identity

    def snapshot(self) -> list[OnlineUser]:
        return [entry.to_online_user() for entry in self._entries.values()]

    async def broadcast(self, hub: ConnectionHub):
        await hub.broadcast(OnlineUsersUpdatedMsg(users=self.snapshot()))
