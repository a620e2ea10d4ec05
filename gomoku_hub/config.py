"""Runtime settings read from the environment (and a local ``.env`` file)."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    cors_origins: list[str]
    board_size: int = 15
    waiting_room_ttl: float = 60 * 60  # seconds
    playing_room_ttl: float = 2 * 60 * 60
    sweep_interval: float = 5 * 60
    reconnect_grace: float = 30
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000


def load_settings() -> Settings:
    cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:5174")
    return Settings(
        cors_origins=[o.strip() for o in cors_origins.split(",") if o.strip()],
        board_size=int(os.getenv("BOARD_SIZE", "15")),
        waiting_room_ttl=float(os.getenv("WAITING_ROOM_TTL", str(60 * 60))),
        playing_room_ttl=float(os.getenv("PLAYING_ROOM_TTL", str(2 * 60 * 60))),
        sweep_interval=float(os.getenv("SWEEP_INTERVAL", str(5 * 60))),
        reconnect_grace=float(os.getenv("RECONNECT_GRACE", "30")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


settings = load_settings()
