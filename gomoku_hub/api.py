"""REST endpoints for the room list: create, list, fetch, and join by id."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from gomoku_hub.coordinator import Coordinator
from gomoku_hub.errors import GameError
from gomoku_hub.models import CreateRoomRequest, JoinRoomRequest, RoomPayload, UserFields
from gomoku_hub.store import Profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rooms", tags=["rooms"])


def get_coordinator(request: Request) -> Coordinator:
    return request.app.state.coordinator


async def find_or_create_user(coordinator: Coordinator, body: UserFields) -> Profile:
    profile = await coordinator.store.find_user(body.email)
    if profile is None:
        profile = await coordinator.store.create_user(
            Profile(id="", email=body.email, name=body.user_name, image=body.image)
        )
    return profile


@router.get("", response_model=list[RoomPayload])
async def list_rooms(coordinator: Coordinator = Depends(get_coordinator)):
    rooms = await coordinator.rooms.list_rooms()
    return [room.to_payload() for room in rooms]


@router.post("", response_model=RoomPayload, status_code=201)
async def create_room(body: CreateRoomRequest, coordinator: Coordinator = Depends(get_coordinator)):
    name = body.name.strip()
    if not name:
        return JSONResponse(
            status_code=400,
            content={"detail": "Room name is required", "error_code": "ROOM_NAME_REQUIRED"},
        )
    profile = await find_or_create_user(coordinator, body)
    room = await coordinator.rooms.create_room(name, black=profile.identity)
    return room.to_payload()


@router.get("/{room_id}", response_model=RoomPayload)
async def get_room(room_id: str, coordinator: Coordinator = Depends(get_coordinator)):
    room = await coordinator.rooms.get_room(room_id)
    return room.to_payload()


@router.post("/{room_id}/join", response_model=RoomPayload)
async def join_room(room_id: str, body: JoinRoomRequest, coordinator: Coordinator = Depends(get_coordinator)):
    profile = await find_or_create_user(coordinator, body)
    room = await coordinator.rooms.take_seat(room_id, profile.identity)
    return room.to_payload()


async def game_error_handler(request: Request, exc: GameError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc), "error_code": exc.code},
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(GameError, game_error_handler)
