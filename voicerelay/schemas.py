"""Pydantic data schemas for the voice room wire protocol.

This module centralises the participant record and every message
envelope exchanged over the signaling socket so that the room logic and
the transport share a single definition of the JSON frames.
"""
from __future__ import annotations

import time
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


def now_millis() -> int:
    """Current wall-clock time as integer epoch milliseconds."""
    return int(time.time() * 1000)


# -----------------------------
# Runtime
# -----------------------------

class ParticipantStatus(str, Enum):
    ONLINE = "online"
    MUTED = "muted"
    SPEAKING = "speaking"


class Participant(BaseModel):
    """Presence record of a joined user, keyed by its connection id."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    username: str
    status: ParticipantStatus = ParticipantStatus.ONLINE
    last_activity: int = Field(default_factory=now_millis, alias="lastActivity")


# -----------------------------
# Inbound (client -> server)
# -----------------------------

class JoinMessage(BaseModel):
    type: Literal["join"]
    username: str


class LeaveMessage(BaseModel):
    type: Literal["leave"]


class StatusMessage(BaseModel):
    """mute / unmute / speaking / stop-speaking carry no payload."""

    type: Literal["mute", "unmute", "speaking", "stop-speaking"]


class SdpSignal(BaseModel):
    type: Literal["webrtc-offer", "webrtc-answer"]
    to: str
    sdp: Any = None


class IceSignal(BaseModel):
    type: Literal["webrtc-ice"]
    to: str
    candidate: Any = None


InboundMessage = Annotated[
    Union[JoinMessage, LeaveMessage, StatusMessage, SdpSignal, IceSignal],
    Field(discriminator="type"),
]

inbound_adapter: TypeAdapter[InboundMessage] = TypeAdapter(InboundMessage)


# -----------------------------
# Outbound (server -> client)
# -----------------------------

class OutboundMessage(BaseModel):
    """Base for server frames; always serialised with wire aliases."""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> str:
        return self.model_dump_json(by_alias=True)


class UsersList(OutboundMessage):
    type: Literal["users-list"] = "users-list"
    self_id: str = Field(alias="selfId")
    users: List[Participant]


class UserJoined(OutboundMessage):
    type: Literal["user-joined"] = "user-joined"
    user: Participant


class UserLeft(OutboundMessage):
    type: Literal["user-left"] = "user-left"
    id: str
    username: str


class UserStatusChanged(OutboundMessage):
    type: Literal["user-muted", "user-unmuted", "user-speaking", "user-stopped-speaking"]
    id: str


class RelayedSignal(OutboundMessage):
    """A signaling frame forwarded verbatim to its target.

    Only the payload key the sender actually supplied is emitted, so
    ``to_wire`` drops unset fields here.
    """

    type: Literal["webrtc-offer", "webrtc-answer", "webrtc-ice"]
    from_: str = Field(alias="from")
    to: str
    sdp: Optional[Any] = None
    candidate: Optional[Any] = None

    def to_wire(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_unset=True)


__all__ = [
    "now_millis",
    # runtime
    "ParticipantStatus",
    "Participant",
    # inbound
    "JoinMessage",
    "LeaveMessage",
    "StatusMessage",
    "SdpSignal",
    "IceSignal",
    "InboundMessage",
    "inbound_adapter",
    # outbound
    "OutboundMessage",
    "UsersList",
    "UserJoined",
    "UserLeft",
    "UserStatusChanged",
    "RelayedSignal",
]
