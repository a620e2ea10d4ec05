"""Shared fixtures: seeded in-memory store, coordinator, and mock WebSockets."""

from unittest.mock import AsyncMock

import pytest

from gomoku_hub.config import Settings
from gomoku_hub.connection import Connection
from gomoku_hub.coordinator import Coordinator
from gomoku_hub.store import InMemoryStore, Profile

ALICE = Profile(id="u-alice", email="alice@example.com", name="Alice")
BOB = Profile(id="u-bob", email="bob@example.com", name="Bob")
CAROL = Profile(id="u-carol", email="carol@example.com", name="Carol")
# Platform login without an e-mail address.
DAVE = Profile(id="wx-dave", email=None, name="Dave")

USERS = [ALICE, BOB, CAROL, DAVE]


def make_mock_ws():
    """Create a mock WebSocket that tracks sent messages."""
    ws = AsyncMock()
    ws.send_json = AsyncMock()
    return ws


def sent(conn: Connection) -> list[dict]:
    return [call[0][0] for call in conn.ws.send_json.call_args_list]


def sent_types(conn: Connection) -> list[str]:
    return [m["type"] for m in sent(conn)]


def last_of(conn: Connection, msg_type: str) -> dict:
    matching = [m for m in sent(conn) if m["type"] == msg_type]
    assert matching, f"no {msg_type!r} sent, got {sent_types(conn)}"
    return matching[-1]


@pytest.fixture
def settings():
    return Settings(cors_origins=[], reconnect_grace=0.01, sweep_interval=3600)


@pytest.fixture
def store():
    return InMemoryStore(users=list(USERS))


@pytest.fixture
def coordinator(store, settings):
    return Coordinator(store=store, settings=settings)


@pytest.fixture
def login(coordinator):
    """Connect a mock WebSocket and authenticate it as ``profile``."""

    async def _login(profile: Profile) -> Connection:
        conn = Connection(make_mock_ws())
        coordinator.connect(conn)
        await coordinator.authenticate(conn, profile.email or profile.id)
        return conn

    return _login
