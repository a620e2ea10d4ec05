"""Invitation broker: pending game invitations between online users."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from uuid import uuid4

from gomoku_hub.connection import ConnectionHub
from gomoku_hub.errors import (
    DuplicatePending,
    InvitationNotFound,
    NotAuthenticated,
    SelfInvitation,
    StoreUnavailable,
    UserOffline,
    UserUnavailable,
)
from gomoku_hub.identity import Identity
from gomoku_hub.models import (
    GameInvitationMsg,
    InvitationAcceptedMsg,
    InvitationCancelledMsg,
    InvitationDeclinedMsg,
    InvitationPayload,
    OnlineUser,
)
from gomoku_hub.presence import PresenceRegistry, PresenceStatus
from gomoku_hub.room import Room, RoomSessionManager

logger = logging.getLogger(__name__)


class InvitationStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"


@dataclass
class Invitation:
    id: str
    from_identity: Identity
    to_identity: Identity
    from_user: OnlineUser
    to_user: OnlineUser
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: InvitationStatus = InvitationStatus.PENDING

    def involves(self, identity: Identity) -> bool:
        return identity in (self.from_identity, self.to_identity)

    def counterpart(self, identity: Identity) -> Identity:
        return self.to_identity if identity == self.from_identity else self.from_identity

    def to_payload(self) -> InvitationPayload:
        return InvitationPayload(
            id=self.id,
            from_user=self.from_user,
            to_user=self.to_user,
            created_at=self.created_at.isoformat(),
            status=str(self.status),
        )


class InvitationBroker:
    """Owns the pending-invitation map.

    An invitation is taken out of the map before the first await of any
    operation that resolves it, so of two racing accept/decline calls only
    the first finds it.
    """

    def __init__(self, presence: PresenceRegistry, rooms: RoomSessionManager, hub: ConnectionHub):
        self.presence = presence
        self.rooms = rooms
        self.hub = hub
        self._pending: dict[str, Invitation] = {}

    def pending(self) -> list[Invitation]:
        return list(self._pending.values())

    def get(self, invitation_id: str) -> Invitation | None:
        return self._pending.get(invitation_id)

    def _take(self, invitation_id: str, by: Identity | None, role: str) -> Invitation:
        invitation = self._pending.get(invitation_id)
        if invitation is None:
            raise InvitationNotFound()
        if by is not None and getattr(invitation, role) != by:
            raise InvitationNotFound()
        del self._pending[invitation_id]
        return invitation

    async def send(self, sender: Identity | None, recipient: Identity) -> Invitation:
        sender_entry = self.presence.get(sender)
        if sender_entry is None:
            raise NotAuthenticated()
        if recipient == sender:
            raise SelfInvitation()
        recipient_entry = self.presence.get(recipient)
        if recipient_entry is None:
            raise UserOffline()
        if recipient_entry.status != PresenceStatus.AVAILABLE:
            raise UserUnavailable()
        for invitation in self._pending.values():
            if invitation.from_identity == sender and invitation.to_identity == recipient:
                raise DuplicatePending()

        invitation = Invitation(
            id=f"inv_{uuid4().hex}",
            from_identity=sender,
            to_identity=recipient,
            from_user=sender_entry.to_online_user(),
            to_user=recipient_entry.to_online_user(),
        )
        self._pending[invitation.id] = invitation
        logger.info(f"Invitation {invitation.id}: {sender} -> {recipient}")

        await recipient_entry.connection.send(GameInvitationMsg(invitation=invitation.to_payload()))
        return invitation

    async def accept(self, invitation_id: str, by: Identity | None = None) -> Room:
        """Resolve the invitation into a new PLAYING room (inviter plays black)."""
        invitation = self._take(invitation_id, by, "to_identity")

        name = (
            f"{invitation.from_user.name or invitation.from_user.identity} vs "
            f"{invitation.to_user.name or invitation.to_user.identity}"
        )
        try:
            room = await self.rooms.create_room(
                name, black=invitation.from_identity, white=invitation.to_identity
            )
        except StoreUnavailable:
            # Put it back so the recipient can retry.
            self._pending.setdefault(invitation.id, invitation)
            raise

        invitation.status = InvitationStatus.ACCEPTED
        logger.info(f"Invitation {invitation.id} accepted, room {room.id}")

        # create_room has already marked both players as playing and broadcast presence.
        msg = InvitationAcceptedMsg(invitation_id=invitation.id, room_id=room.id)
        for identity in (invitation.from_identity, invitation.to_identity):
            entry = self.presence.get(identity)
            if entry is not None:
                await entry.connection.send(msg)
        return room

    async def decline(self, invitation_id: str, by: Identity | None = None) -> Invitation:
        invitation = self._take(invitation_id, by, "to_identity")
        invitation.status = InvitationStatus.DECLINED
        logger.info(f"Invitation {invitation.id} declined")

        sender = self.presence.get(invitation.from_identity)
        if sender is not None:
            await sender.connection.send(InvitationDeclinedMsg(invitation_id=invitation.id))
        return invitation

    async def cancel(self, invitation_id: str, by: Identity | None = None) -> Invitation:
        """Withdraw an invitation on behalf of its sender."""
        invitation = self._take(invitation_id, by, "from_identity")
        invitation.status = InvitationStatus.CANCELLED
        logger.info(f"Invitation {invitation.id} cancelled by sender")

        recipient = self.presence.get(invitation.to_identity)
        if recipient is not None:
            await recipient.connection.send(InvitationCancelledMsg(invitation_id=invitation.id))
        return invitation

    async def cancel_all_for(self, identity: Identity) -> int:
        doomed = [inv for inv in self._pending.values() if inv.involves(identity)]
        for invitation in doomed:
            del self._pending[invitation.id]
            invitation.status = InvitationStatus.CANCELLED

        for invitation in doomed:
            other = self.presence.get(invitation.counterpart(identity))
            if other is not None:
                await other.connection.send(InvitationCancelledMsg(invitation_id=invitation.id))

        if doomed:
            logger.info(f"Cancelled {len(doomed)} invitation(s) involving {identity}")
        return len(doomed)
