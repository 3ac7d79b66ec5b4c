from __future__ import annotations

import asyncio
from threading import Lock
from typing import Dict, List, Optional, Set, Tuple

from .logging_config import get_logger
from .registry import Connection, ConnectionRegistry, SendResult
from .schemas import (
    OutboundMessage,
    Participant,
    ParticipantStatus,
    UserJoined,
    UserLeft,
    UserStatusChanged,
    UsersList,
    now_millis,
)
from .signaling import handle_ws_message

logger = get_logger(__name__)

# status change message -> (new status, broadcast type)
STATUS_TRANSITIONS: Dict[str, Tuple[ParticipantStatus, str]] = {
    "mute": (ParticipantStatus.MUTED, "user-muted"),
    "unmute": (ParticipantStatus.ONLINE, "user-unmuted"),
    "speaking": (ParticipantStatus.SPEAKING, "user-speaking"),
    "stop-speaking": (ParticipantStatus.ONLINE, "user-stopped-speaking"),
}


class RoomState:
    """Participants of the single voice room and the fan-out helpers around them.

    Connection handles belong to the :class:`ConnectionRegistry`; this
    class only stores connection ids. Both tables are guarded by their
    own lock, which is never held across a send.
    """

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry
        # connection id -> participant, present only after ``join``
        self._participants: Dict[str, Participant] = {}
        # connections that sent ``leave``; Left is terminal until the socket closes
        self._departed: Set[str] = set()
        self._lock = Lock()
        # departure fan-outs that must outlive a cancelled connection task
        self._announcements: Set[asyncio.Task] = set()

    # ---------------------------------------------------------------------
    # Read helpers
    # ---------------------------------------------------------------------

    def __len__(self) -> int:
        with self._lock:
            return len(self._participants)

    def get_participant(self, conn_id: str) -> Optional[Participant]:
        """Return a copy of the participant record for *conn_id*, if joined."""
        with self._lock:
            participant = self._participants.get(conn_id)
            return participant.model_copy() if participant else None

    def snapshot(self, exclude: Optional[str] = None) -> List[Participant]:
        with self._lock:
            return [p.model_copy() for pid, p in self._participants.items() if pid != exclude]

    # ---------------------------------------------------------------------
    # Transport boundary
    # ---------------------------------------------------------------------

    def on_connect(self, conn_id: str, connection: Connection) -> None:
        self.registry.register(conn_id, connection)
        logger.info("Connection opened: %s", conn_id)

    async def on_message(self, conn_id: str, text: str) -> None:
        await handle_ws_message(self, conn_id, text)

    async def on_disconnect(self, conn_id: str) -> None:
        logger.info("Connection closed: %s", conn_id)
        await self._cleanup(conn_id)

    async def on_transport_error(self, conn_id: str, exc: BaseException) -> None:
        logger.error("Transport error on %s: %s", conn_id, exc, exc_info=exc)
        await self._cleanup(conn_id)

    async def _cleanup(self, conn_id: str) -> None:
        # Handle goes first, before any await, so the closing connection is
        # never a broadcast target and cannot stay registered.
        self.registry.unregister(conn_id)
        with self._lock:
            participant = self._participants.pop(conn_id, None)
            self._departed.discard(conn_id)
        if participant is None:
            return

        logger.info("User left: %s (%s)", participant.username, conn_id)
        task = asyncio.ensure_future(self._announce_left(participant))
        self._announcements.add(task)
        task.add_done_callback(self._announcements.discard)
        # Cancelling the connection task must not cancel the user-left fan-out.
        await asyncio.shield(task)

    # ---------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------

    async def join(self, conn_id: str, username: str) -> Optional[Participant]:
        """Admit *conn_id* as *username*; returns ``None`` if it already joined or left."""
        with self._lock:
            if conn_id in self._participants or conn_id in self._departed:
                logger.debug("Ignoring join from %s", conn_id)
                return None
            participant = Participant(id=conn_id, username=username)
            self._participants[conn_id] = participant
            others = [p.model_copy() for pid, p in self._participants.items() if pid != conn_id]
            joined = participant.model_copy()

        logger.info("User joined: %s (%s)", username, conn_id)

        # The joiner gets its list before anyone hears about the join.
        await self.send(conn_id, UsersList(self_id=conn_id, users=others))
        await self.broadcast(UserJoined(user=joined), exclude=conn_id)
        return joined

    async def leave(self, conn_id: str) -> Optional[Participant]:
        """Remove the participant for *conn_id*; a no-op if it never joined or already left."""
        with self._lock:
            participant = self._participants.pop(conn_id, None)
            if participant is not None:
                self._departed.add(conn_id)
        if participant is None:
            return None

        logger.info("User left: %s (%s)", participant.username, conn_id)
        await self._announce_left(participant)
        return participant

    async def _announce_left(self, participant: Participant) -> None:
        await self.broadcast(UserLeft(id=participant.id, username=participant.username))

    async def set_status(self, conn_id: str, change: str) -> bool:
        """Apply a mute/unmute/speaking/stop-speaking *change* and announce it to everyone."""
        status, event = STATUS_TRANSITIONS[change]
        with self._lock:
            participant = self._participants.get(conn_id)
            if participant is None:
                return False
            participant.status = status
            participant.last_activity = now_millis()

        logger.debug("Status of %s is now %s", conn_id, status.value)
        await self.broadcast(UserStatusChanged(type=event, id=conn_id))
        return True

    # ---------------------------------------------------------------------
    # Delivery helpers
    # ---------------------------------------------------------------------

    async def send(self, conn_id: str, message: OutboundMessage) -> SendResult:
        return await self.registry.send(conn_id, message.to_wire())

    async def broadcast(self, message: OutboundMessage, exclude: Optional[str] = None) -> int:
        """Send *message* to every open connection except *exclude*.

        Sends run concurrently and each failure stays with its target.
        Returns the number of successful deliveries.
        """
        payload = message.to_wire()
        targets = list(self.registry.for_each_open(exclude=exclude))
        if not targets:
            return 0
        results = await asyncio.gather(
            *(self.registry.send_to(cid, conn, payload) for cid, conn in targets)
        )
        return sum(1 for r in results if r is SendResult.SENT)


__all__ = ["STATUS_TRANSITIONS", "RoomState"]
