"""WebSocket endpoint and message routing."""

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from gomoku_hub.connection import Connection
from gomoku_hub.coordinator import Coordinator
from gomoku_hub.errors import GameError, NotAPlayer, StoreUnavailable
from gomoku_hub.identity import Identity
from gomoku_hub.models import (
    ACKED_MESSAGES,
    AcceptInvitationMsg,
    AckMsg,
    AuthenticateMsg,
    CancelInvitationMsg,
    DeclineInvitationMsg,
    ErrorMsg,
    JoinRoomMsg,
    LeaveRoomMsg,
    LobbyUpdatedMsg,
    MakeMoveMsg,
    RequestLobbyUpdateMsg,
    RequestOnlineUsersMsg,
    SendInvitationMsg,
    UpdateStatusMsg,
    parse_client_message,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Message shown to the client when the store fails while handling a message.
FAILURE_MESSAGES = {
    "authenticate": "Failed to authenticate",
    "send-game-invitation": "Failed to send invitation",
    "accept-invitation": "Failed to accept invitation",
    "decline-invitation": "Failed to decline invitation",
    "cancel-invitation": "Failed to cancel invitation",
    "update-status": "Failed to update status",
    "join-room": "Failed to join room",
    "make-move": "Failed to make move",
}


def _move_identity(coordinator: Coordinator, conn: Connection, claimed: str | None) -> Identity:
    """Moves are made as the authenticated user; a differing ``identity`` in the payload is refused."""
    identity = coordinator.require_identity(conn)
    if claimed and Identity.parse(claimed) != identity:
        raise NotAPlayer()
    return identity


async def dispatch(coordinator: Coordinator, conn: Connection, msg) -> str | None:
    """Handle one client message. Returns a room id for acks that carry one."""
    if isinstance(msg, AuthenticateMsg):
        await coordinator.authenticate(conn, msg.identifier)

    elif isinstance(msg, RequestOnlineUsersMsg):
        await coordinator.send_online_users(conn)

    elif isinstance(msg, SendInvitationMsg):
        await coordinator.invitations.send(
            coordinator.identity_for(conn), Identity.parse(msg.to_identity)
        )

    elif isinstance(msg, AcceptInvitationMsg):
        room = await coordinator.invitations.accept(msg.invitation_id, by=coordinator.identity_for(conn))
        return room.id

    elif isinstance(msg, DeclineInvitationMsg):
        await coordinator.invitations.decline(msg.invitation_id, by=coordinator.identity_for(conn))

    elif isinstance(msg, CancelInvitationMsg):
        await coordinator.invitations.cancel(msg.invitation_id, by=coordinator.require_identity(conn))

    elif isinstance(msg, UpdateStatusMsg):
        await coordinator.update_status(conn, msg.status)

    elif isinstance(msg, JoinRoomMsg):
        await coordinator.rooms.join(msg.room_id, conn)

    elif isinstance(msg, MakeMoveMsg):
        identity = _move_identity(coordinator, conn, msg.identity)
        await coordinator.rooms.submit_move(msg.room_id, identity, msg.row, msg.col)

    elif isinstance(msg, LeaveRoomMsg):
        coordinator.rooms.leave(msg.room_id, conn)

    elif isinstance(msg, RequestLobbyUpdateMsg):
        await conn.send(LobbyUpdatedMsg())

    return None


async def handle_message(coordinator: Coordinator, conn: Connection, data) -> None:
    """Parse, dispatch and answer one message without ever raising."""
    msg = parse_client_message(data)
    if msg is None:
        await conn.send(ErrorMsg(message="Unknown or invalid message"))
        return

    acked = isinstance(msg, ACKED_MESSAGES)
    error: str | None = None
    room_id: str | None = None
    try:
        room_id = await dispatch(coordinator, conn, msg)
    except StoreUnavailable as exc:
        logger.error(f"Store failure handling {msg.type!r} from {conn.id}: {exc}")
        error = FAILURE_MESSAGES.get(msg.type, "Request failed")
    except GameError as exc:
        error = str(exc)
    except ValueError as exc:
        # Malformed identity keys.
        error = f"Invalid request: {exc}"
    except Exception:
        logger.exception(f"Error handling {msg.type!r} from {conn.id}")
        error = FAILURE_MESSAGES.get(msg.type, "Request failed")

    if acked:
        await conn.send(
            AckMsg(request_id=msg.request_id, success=error is None, error=error, room_id=room_id)
        )
    elif error is not None:
        await conn.send(ErrorMsg(message=error))


@router.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    coordinator: Coordinator = ws.app.state.coordinator
    await ws.accept()
    conn = Connection(ws)
    coordinator.connect(conn)
    try:
        while True:
            try:
                data = await ws.receive_json()
            except ValueError:
                await conn.send(ErrorMsg(message="Unknown or invalid message"))
                continue
            await handle_message(coordinator, conn, data)
    except WebSocketDisconnect:
        pass
    finally:
        await asyncio.shield(coordinator.release(conn))
