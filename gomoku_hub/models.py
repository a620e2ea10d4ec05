"""Pydantic models for the WebSocket message protocol and the REST bodies."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, ValidationError


# ---------------------------------------------------------------------------
# Client → Server
# ---------------------------------------------------------------------------

class AuthenticateMsg(BaseModel):
    type: Literal["authenticate"] = "authenticate"
    identifier: str = Field(min_length=1)


class RequestOnlineUsersMsg(BaseModel):
    type: Literal["request-online-users"] = "request-online-users"


class SendInvitationMsg(BaseModel):
    type: Literal["send-game-invitation"] = "send-game-invitation"
    to_identity: str
    request_id: str | None = None


class AcceptInvitationMsg(BaseModel):
    type: Literal["accept-invitation"] = "accept-invitation"
    invitation_id: str
    request_id: str | None = None


class DeclineInvitationMsg(BaseModel):
    type: Literal["decline-invitation"] = "decline-invitation"
    invitation_id: str
    request_id: str | None = None


class CancelInvitationMsg(BaseModel):
    type: Literal["cancel-invitation"] = "cancel-invitation"
    invitation_id: str
    request_id: str | None = None


class UpdateStatusMsg(BaseModel):
    type: Literal["update-status"] = "update-status"
    status: Literal["available", "away"]
    request_id: str | None = None


class JoinRoomMsg(BaseModel):
    type: Literal["join-room"] = "join-room"
    room_id: str
    identity: str | None = None


class MakeMoveMsg(BaseModel):
    type: Literal["make-move"] = "make-move"
    room_id: str
    row: int
    col: int
    identity: str | None = None


class LeaveRoomMsg(BaseModel):
    type: Literal["leave-room"] = "leave-room"
    room_id: str


class RequestLobbyUpdateMsg(BaseModel):
    type: Literal["request-lobby-update"] = "request-lobby-update"


ClientMessage = (
    AuthenticateMsg
    | RequestOnlineUsersMsg
    | SendInvitationMsg
    | AcceptInvitationMsg
    | DeclineInvitationMsg
    | CancelInvitationMsg
    | UpdateStatusMsg
    | JoinRoomMsg
    | MakeMoveMsg
    | LeaveRoomMsg
    | RequestLobbyUpdateMsg
)

# Messages answered with an ``ack`` instead of an ``error`` event.
ACKED_MESSAGES = (
    SendInvitationMsg,
    AcceptInvitationMsg,
    DeclineInvitationMsg,
    CancelInvitationMsg,
    UpdateStatusMsg,
)


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------

class OnlineUser(BaseModel):
    identity: str
    email: str | None
    name: str | None
    image: str | None
    status: str


class InvitationPayload(BaseModel):
    id: str
    from_user: OnlineUser
    to_user: OnlineUser
    created_at: str
    status: str


class MovePayload(BaseModel):
    row: int
    col: int
    player: str
    seq: int


class RoomPayload(BaseModel):
    id: str
    name: str
    black_player: str | None
    white_player: str | None
    status: str
    board: list[list[str | None]]
    current_player: str
    winner: str | None
    is_game_over: bool
    move_history: list[MovePayload]
    move_count: int
    created_at: str
    updated_at: str


# ---------------------------------------------------------------------------
# Server → Client
# ---------------------------------------------------------------------------

class OnlineUsersUpdatedMsg(BaseModel):
    type: Literal["online-users-updated"] = "online-users-updated"
    users: list[OnlineUser]


class GameInvitationMsg(BaseModel):
    type: Literal["game-invitation"] = "game-invitation"
    invitation: InvitationPayload


class InvitationAcceptedMsg(BaseModel):
    type: Literal["invitation-accepted"] = "invitation-accepted"
    invitation_id: str
    room_id: str


class InvitationDeclinedMsg(BaseModel):
    type: Literal["invitation-declined"] = "invitation-declined"
    invitation_id: str


class InvitationCancelledMsg(BaseModel):
    type: Literal["invitation-cancelled"] = "invitation-cancelled"
    invitation_id: str


class RoomUpdatedMsg(BaseModel):
    type: Literal["room-updated"] = "room-updated"
    room: RoomPayload


class GameUpdatedMsg(BaseModel):
    type: Literal["game-updated"] = "game-updated"
    room: RoomPayload


class LobbyUpdatedMsg(BaseModel):
    type: Literal["lobby-updated"] = "lobby-updated"


class AckMsg(BaseModel):
    type: Literal["ack"] = "ack"
    request_id: str | None = None
    success: bool
    error: str | None = None
    room_id: str | None = None


class ErrorMsg(BaseModel):
    type: Literal["error"] = "error"
    message: str


# ---------------------------------------------------------------------------
# REST bodies
# ---------------------------------------------------------------------------

class UserFields(BaseModel):
    email: str = Field(min_length=3)
    user_name: str | None = None
    image: str | None = None


class CreateRoomRequest(UserFields):
    name: str


class JoinRoomRequest(UserFields):
    pass


def parse_client_message(data: dict) -> ClientMessage | None:
    """Parse a raw dict into a typed client message, or None if invalid."""
    if not isinstance(data, dict):
        return None
    msg_type = data.get("type")
    mapping: dict[str, type[BaseModel]] = {
        "authenticate": AuthenticateMsg,
        "request-online-users": RequestOnlineUsersMsg,
        "send-game-invitation": SendInvitationMsg,
        "accept-invitation": AcceptInvitationMsg,
        "decline-invitation": DeclineInvitationMsg,
        "cancel-invitation": CancelInvitationMsg,
        "update-status": UpdateStatusMsg,
        "join-room": JoinRoomMsg,
        "make-move": MakeMoveMsg,
        "leave-room": LeaveRoomMsg,
        "request-lobby-update": RequestLobbyUpdateMsg,
    }
    model = mapping.get(msg_type)  # type: ignore[arg-type]
    if model is None:
        return None
    try:
        return model.model_validate(data)  # type: ignore[return-value]
    except ValidationError:
        return None
