"""Shared fixtures: an in-memory connection double and a fresh room per test."""

import asyncio
import json
from typing import Any, Dict, List

import pytest

from voicerelay.registry import ConnectionRegistry
from voicerelay.room import RoomState


class FakeConnection:
    """Records every frame sent to it; can be closed, made slow or made to fail."""

    def __init__(self, fail: bool = False, delay: float = 0.0) -> None:
        self.open = True
        self.fail = fail
        self.delay = delay
        self.sent: List[str] = []

    @property
    def is_open(self) -> bool:
        return self.open

    async def send_text(self, text: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ConnectionError("peer went away")
        self.sent.append(text)

    @property
    def messages(self) -> List[Dict[str, Any]]:
        return [json.loads(t) for t in self.sent]

    def of_type(self, msg_type: str) -> List[Dict[str, Any]]:
        return [m for m in self.messages if m.get("type") == msg_type]

    def clear(self) -> None:
        self.sent.clear()


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry(send_timeout=1.0)


@pytest.fixture
def room(registry: ConnectionRegistry) -> RoomState:
    return RoomState(registry)


@pytest.fixture
def connect(room: RoomState):
    """Open a fake connection on the room under the given id."""

    def _connect(conn_id: str, **kwargs) -> FakeConnection:
        conn = FakeConnection(**kwargs)
        room.on_connect(conn_id, conn)
        return conn

    return _connect


@pytest.fixture
def send(room: RoomState):
    """Deliver an inbound frame (dict or raw text) from *conn_id*."""

    async def _send(conn_id: str, message) -> None:
        text = message if isinstance(message, str) else json.dumps(message)
        await room.on_message(conn_id, text)

    return _send


@pytest.fixture
def make_connection():
    return FakeConnection
