from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Optional

from canvas_studio.app.errors import ConfigError

def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"Invalid number for env var {name}: {raw!r}") from e

def _get_optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"Invalid integer for env var {name}: {raw!r}") from e
    if value < 1:
        raise ConfigError(f"{name} must be >= 1, got {value}")
    return value

@dataclass(frozen=True)
class Settings:
    # Collaborator API (projects / assets / generation / chat)
    api_base_url: str
    api_token: Optional[str]
    http_timeout_s: float

    # Mongo (optional document-store project gateway)
    mongo_uri: Optional[str]
    mongo_db: str

    # Job polling
    poll_interval_ms: float
    max_polls: Optional[int]

    # Canvas
    default_insert_x: float
    default_insert_y: float

    log_level: str

    @property
    def poll_interval_s(self) -> float:
        return self.poll_interval_ms / 1000.0

def load_settings() -> Settings:
    poll_interval_ms = _get_float("POLL_INTERVAL_MS", 1000.0)
    if poll_interval_ms < 0:
        raise ConfigError(f"POLL_INTERVAL_MS must be >= 0, got {poll_interval_ms}")

    return Settings(
        api_base_url=os.getenv("API_BASE_URL", "http://localhost:5000/api"),
        api_token=os.getenv("API_TOKEN") or None,
        http_timeout_s=_get_float("HTTP_TIMEOUT_S", 10.0),
        mongo_uri=os.getenv("MONGO_URI") or None,
        mongo_db=os.getenv("MONGO_DB", "canvas_studio"),
        poll_interval_ms=poll_interval_ms,
        max_polls=_get_optional_int("MAX_POLLS"),
        default_insert_x=_get_float("DEFAULT_INSERT_X", 50.0),
        default_insert_y=_get_float("DEFAULT_INSERT_Y", 50.0),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
