from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse

STATIC_DIR = Path(__file__).resolve().parent.parent / "static"
INDEX_FILE = STATIC_DIR / "index.html"

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

router = APIRouter(prefix="", tags=["pages"])


@router.get("/", include_in_schema=False)
@router.get("/chat", include_in_schema=False)
async def chat_page():
    return FileResponse(INDEX_FILE, media_type="text/html", headers=NO_CACHE_HEADERS)


@router.get("/health")
async def health(request: Request):
    room = request.app.state.room
    return {
        "status": "ok",
        "connections": len(room.registry),
        "participants": len(room),
    }


__all__ = ["STATIC_DIR", "INDEX_FILE", "NO_CACHE_HEADERS", "router"]
