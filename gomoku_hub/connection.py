"""Connection handles and the set of live connections."""

from __future__ import annotations

import logging
from uuid import uuid4

from fastapi import WebSocket
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class Connection:
    """One client WebSocket. Compared by identity, never by value."""

    def __init__(self, ws: WebSocket):
        self.ws = ws
        self.id = uuid4().hex[:12]
        self.open = True

    async def send(self, msg: BaseModel):
        if not self.open:
            return
        try:
            await self.ws.send_json(msg.model_dump())
        except Exception as exc:
            logger.warning(f"Dropping {msg.type!r} for connection {self.id}: {exc}")

    def __repr__(self) -> str:
        return f"Connection({self.id})"


class ConnectionHub:
    def __init__(self):
        self._connections: dict[str, Connection] = {}

    def add(self, conn: Connection):
        self._connections[conn.id] = conn

    def remove(self, conn: Connection):
        conn.open = False
        self._connections.pop(conn.id, None)

    def __len__(self) -> int:
        return len(self._connections)

    def __iter__(self):
        return iter(list(self._connections.values()))

    async def broadcast(self, msg: BaseModel):
        for conn in self:
            await conn.send(msg)
