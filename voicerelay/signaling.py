"""Inbound message dispatch and WebRTC signaling relay.

Every text frame a client sends lands in :func:`handle_ws_message`. The
frame is parsed against the inbound schemas and routed by ``type`` to
the room lifecycle methods or to :func:`relay_signal`. Nothing in here
ever answers a client with an error: frames that do not parse, carry an
unknown ``type`` or come from a connection that has not joined are
simply dropped so one misbehaving peer cannot disturb the others.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Union

from pydantic import ValidationError

from .logging_config import get_logger
from .registry import SendResult
from .schemas import (
    IceSignal,
    JoinMessage,
    LeaveMessage,
    RelayedSignal,
    SdpSignal,
    StatusMessage,
    inbound_adapter,
)

if TYPE_CHECKING:
    from .room import RoomState

logger = get_logger(__name__)


def parse_message(text: str):
    """Validate a raw frame; returns the typed message or ``None`` if it is unusable."""
    try:
        return inbound_adapter.validate_json(text)
    except ValidationError as e:
        # Only the first error is interesting; frames come from untrusted peers.
        first = e.errors()[0] if e.error_count() else {}
        if first.get("type") == "json_invalid":
            logger.warning("Dropping unparsable frame: %s", first.get("msg"))
        else:
            logger.debug("Dropping invalid frame: %s", first.get("msg"))
        return None


async def relay_signal(room: "RoomState", sender_id: str, msg: Union[SdpSignal, IceSignal]) -> SendResult:
    """Forward an offer/answer/ICE frame to ``msg.to``.

    ``from`` is always the sender's own connection id. The payload is
    copied through untouched, and only if the sender supplied it.
    """
    target = room.registry.lookup(msg.to)
    if target is None or not target.is_open:
        logger.debug("Relay target %s unavailable for %s from %s", msg.to, msg.type, sender_id)
        return SendResult.NOT_FOUND if target is None else SendResult.NOT_OPEN

    fields = {"type": msg.type, "from_": sender_id, "to": msg.to}
    if isinstance(msg, SdpSignal):
        if "sdp" in msg.model_fields_set:
            fields["sdp"] = msg.sdp
    elif "candidate" in msg.model_fields_set:
        fields["candidate"] = msg.candidate

    relayed = RelayedSignal(**fields)
    return await room.registry.send_to(msg.to, target, relayed.to_wire())


async def handle_ws_message(room: "RoomState", conn_id: str, text: str) -> None:
    msg = parse_message(text)
    if msg is None:
        return

    if isinstance(msg, JoinMessage):
        await room.join(conn_id, msg.username)
    elif isinstance(msg, LeaveMessage):
        await room.leave(conn_id)
    elif isinstance(msg, StatusMessage):
        if not await room.set_status(conn_id, msg.type):
            logger.debug("Ignoring %s from unjoined connection %s", msg.type, conn_id)
    elif isinstance(msg, (SdpSignal, IceSignal)):
        await relay_signal(room, conn_id, msg)


__all__ = [
    "parse_message",
    "relay_signal",
    "handle_ws_message",
]
