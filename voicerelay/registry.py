"""Connection registry: connection id -> live sendable handle.

The registry is pure transport plumbing. It knows nothing about
participants; ``RoomState`` keeps ids only and resolves them here when it
needs to deliver a frame.
"""
from __future__ import annotations

import asyncio
from enum import Enum
from threading import Lock
from typing import Dict, Iterator, List, Optional, Protocol, Tuple

from .logging_config import get_logger

logger = get_logger(__name__)


class Connection(Protocol):
    """Anything that can push a text frame to one remote peer."""

    @property
    def is_open(self) -> bool: ...

    async def send_text(self, text: str) -> None: ...


class SendResult(str, Enum):
    SENT = "sent"
    NOT_OPEN = "not-open"
    NOT_FOUND = "not-found"
    FAILED = "failed"


class ConnectionRegistry:
    """Owns the open connection handles, keyed by connection id."""

    def __init__(self, send_timeout: Optional[float] = 5.0):
        self._connections: Dict[str, Connection] = {}
        self._lock = Lock()
        self.send_timeout = send_timeout

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, conn_id: object) -> bool:
        with self._lock:
            return conn_id in self._connections

    # -------------------- Table management -------------------- #

    def register(self, conn_id: str, connection: Connection) -> None:
        with self._lock:
            self._connections[conn_id] = connection
        logger.debug("Registered connection %s", conn_id)

    def lookup(self, conn_id: str) -> Optional[Connection]:
        with self._lock:
            return self._connections.get(conn_id)

    def unregister(self, conn_id: str) -> Optional[Connection]:
        """Drop *conn_id*; returns the removed handle, or ``None`` if already gone."""
        with self._lock:
            connection = self._connections.pop(conn_id, None)
        if connection is not None:
            logger.debug("Unregistered connection %s", conn_id)
        return connection

    def for_each_open(self, exclude: Optional[str] = None) -> Iterator[Tuple[str, Connection]]:
        """Yield ``(id, handle)`` for every open connection except *exclude*.

        The table is copied under the lock before the first item is
        produced, so callers may await between items while other tasks
        register or drop connections.
        """
        with self._lock:
            snapshot: List[Tuple[str, Connection]] = list(self._connections.items())
        for conn_id, connection in snapshot:
            if conn_id == exclude or not connection.is_open:
                continue
            yield conn_id, connection

    # -------------------- Delivery -------------------- #

    async def send(self, conn_id: str, payload: str) -> SendResult:
        """Deliver *payload* to one connection. Never raises."""
        connection = self.lookup(conn_id)
        if connection is None:
            return SendResult.NOT_FOUND
        return await self.send_to(conn_id, connection, payload)

    async def send_to(self, conn_id: str, connection: Connection, payload: str) -> SendResult:
        if not connection.is_open:
            logger.debug("Skipping send to closed connection %s", conn_id)
            return SendResult.NOT_OPEN
        try:
            if self.send_timeout:
                await asyncio.wait_for(connection.send_text(payload), timeout=self.send_timeout)
            else:
                await connection.send_text(payload)
        except asyncio.TimeoutError:
            logger.warning("Send to %s timed out after %.1fs", conn_id, self.send_timeout)
            return SendResult.FAILED
        except Exception as e:
            logger.warning("Send to %s failed: %s", conn_id, e)
            return SendResult.FAILED
        return SendResult.SENT


__all__ = ["Connection", "SendResult", "ConnectionRegistry"]
