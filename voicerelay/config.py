"""Runtime settings loaded from environment variables."""
from __future__ import annotations

import os
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "VOICERELAY_"


class Settings(BaseModel):
    """Server settings. None of these change the signaling protocol itself."""

    host: str = Field(default="0.0.0.0", description="Bind host address")
    port: int = Field(default=8080, ge=1, le=65535, description="Bind port")
    ws_path: str = Field(default="/voice-chat", description="Signaling WebSocket path")
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"], description="CORS origins")
    send_timeout: float = Field(default=5.0, gt=0, description="Per-peer send timeout in seconds")
    log_level: str = Field(default="INFO", description="Root log level")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")

    @field_validator("ws_path")
    @classmethod
    def _leading_slash(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("ws_path must start with '/'")
        return v

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _split_origins(cls, v):
        if isinstance(v, str):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper()

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ``VOICERELAY_*`` plus ``LOG_LEVEL``/``LOG_FILE``.

        Unset variables fall back to the field defaults.
        """
        raw = {
            "host": os.getenv(f"{ENV_PREFIX}HOST"),
            "port": os.getenv(f"{ENV_PREFIX}PORT"),
            "ws_path": os.getenv(f"{ENV_PREFIX}WS_PATH"),
            "allowed_origins": os.getenv(f"{ENV_PREFIX}ALLOWED_ORIGINS"),
            "send_timeout": os.getenv(f"{ENV_PREFIX}SEND_TIMEOUT"),
            "log_level": os.getenv("LOG_LEVEL"),
            "log_file": os.getenv("LOG_FILE"),
        }
        return cls(**{k: v for k, v in raw.items() if v is not None})


__all__ = ["ENV_PREFIX", "Settings"]
