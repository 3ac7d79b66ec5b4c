from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .config import Settings
from .logging_config import get_logger
from .registry import ConnectionRegistry
from .room import RoomState
from .routers import pages as pages_router
from .routers import websockets as ws_router
from .routers.pages import NO_CACHE_HEADERS, STATIC_DIR

logger = get_logger(__name__)


# Static assets for the bundled client page, never cached by the browser.
class NoCacheStaticFiles(StaticFiles):
    async def get_response(self, path: str, scope):  # type: ignore[override]
        response = await super().get_response(path, scope)
        response.headers.update(NO_CACHE_HEADERS)
        return response


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application with its own registry and room."""
    settings = settings or Settings.from_env()

    app = FastAPI(title="voicerelay")
    app.state.settings = settings
    app.state.registry = ConnectionRegistry(send_timeout=settings.send_timeout)
    app.state.room = RoomState(app.state.registry)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(pages_router.router)
    app.include_router(ws_router.build_router(settings.ws_path))
    app.mount("/static", NoCacheStaticFiles(directory=STATIC_DIR), name="static")

    logger.info("voicerelay application initialised (signaling at %s)", settings.ws_path)
    return app


__all__ = ["NoCacheStaticFiles", "create_app"]
