from __future__ import annotations

import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState

from ..logging_config import get_logger
from ..room import RoomState

logger = get_logger(__name__)


class WebSocketConnection:
    """Adapts a Starlette ``WebSocket`` to the registry's ``Connection`` protocol."""

    def __init__(self, ws: WebSocket):
        self.ws = ws

    @property
    def is_open(self) -> bool:
        return (
            self.ws.client_state == WebSocketState.CONNECTED
            and self.ws.application_state == WebSocketState.CONNECTED
        )

    async def send_text(self, text: str) -> None:
        await self.ws.send_text(text)


def new_connection_id() -> str:
    return uuid.uuid4().hex


async def voice_chat_endpoint(ws: WebSocket):
    room: RoomState = ws.app.state.room
    await ws.accept()
    conn_id = new_connection_id()
    room.on_connect(conn_id, WebSocketConnection(ws))

    try:
        while True:
            message = await ws.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            text = message.get("text")
            if text is None:
                logger.debug("Ignoring binary frame from %s", conn_id)
                continue
            await room.on_message(conn_id, text)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        await room.on_transport_error(conn_id, e)
        try:
            await ws.close(code=1011)
        except Exception as close_err:
            logger.debug("Error closing WebSocket %s: %s", conn_id, close_err)
    finally:
        # Also reached when the server cancels this task; a no-op after a transport error.
        await room.on_disconnect(conn_id)


def build_router(ws_path: str = "/voice-chat") -> APIRouter:
    router = APIRouter(prefix="", tags=["ws"])
    router.add_api_websocket_route(ws_path, voice_chat_endpoint)
    return router


__all__ = ["WebSocketConnection", "new_connection_id", "voice_chat_endpoint", "build_router"]
