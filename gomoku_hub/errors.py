"""Error taxonomy shared by the coordinator, the WebSocket gateway and the REST router."""


class GameError(Exception):
    """Base class for errors reported back to the client."""

    code = "GAME_ERROR"
    status_code = 400
    message = "Request failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)


class NotAuthenticated(GameError):
    code = "NOT_AUTHENTICATED"
    status_code = 401
    message = "Not authenticated"


class UserOffline(GameError):
    code = "USER_OFFLINE"
    message = "User is not online"


class UserUnavailable(GameError):
    code = "USER_UNAVAILABLE"
    message = "User is not available"


class SelfInvitation(GameError):
    code = "SELF_INVITATION"
    message = "Cannot invite yourself"


class DuplicatePending(GameError):
    code = "DUPLICATE_PENDING"
    status_code = 409
    message = "Invitation already sent"


class NotFound(GameError):
    code = "NOT_FOUND"
    status_code = 404
    message = "Not found"


class InvitationNotFound(NotFound):
    code = "INVITATION_NOT_FOUND"
    message = "Invitation not found"


class RoomNotFound(NotFound):
    code = "ROOM_NOT_FOUND"
    message = "Room not found"


class UserNotFound(NotFound):
    code = "USER_NOT_FOUND"
    message = "User not found"


class RoomFull(GameError):
    code = "ROOM_FULL"
    message = "Room is full"


class SeatsIncomplete(GameError):
    code = "SEATS_INCOMPLETE"
    message = "Waiting for another player to join"


class NotAPlayer(GameError):
    code = "NOT_A_PLAYER"
    status_code = 403
    message = "You are not a player in this game"


class NotYourTurn(GameError):
    code = "NOT_YOUR_TURN"
    message = "Not your turn"


class GameOver(GameError):
    code = "GAME_OVER"
    message = "Game is already over"


class OutOfBounds(GameError):
    code = "OUT_OF_BOUNDS"
    message = "Coordinates out of bounds"


class CellOccupied(GameError):
    code = "CELL_OCCUPIED"
    message = "Cell already occupied"


class InvalidStatus(GameError):
    code = "INVALID_STATUS"
    message = "Status change not allowed"


class StoreUnavailable(GameError):
    """The durable store failed; in-memory state is left untouched."""

    code = "STORE_UNAVAILABLE"
    status_code = 503
    message = "Storage is unavailable"
