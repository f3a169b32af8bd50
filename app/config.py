from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from app.infra.redis_client import get_redis_url

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r, using %s", name, raw, default)
        return default
    return value


def get_log_level() -> str:
    return os.environ.get("PLAYGROUND_LOG_LEVEL", "INFO").strip().upper() or "INFO"


@dataclass(frozen=True, slots=True)
class Settings:
    state_backend: str
    state_file: Path
    redis_url: str
    state_key: str
    persist_timeout_s: float
    lock_timeout_s: float


def load_settings() -> Settings:
    backend = os.environ.get("PLAYGROUND_STATE_BACKEND", "file").strip().casefold()
    if backend not in {"file", "redis"}:
        raise ValueError(f"Unknown PLAYGROUND_STATE_BACKEND: {backend!r} (expected 'file' or 'redis')")

    return Settings(
        state_backend=backend,
        state_file=Path(os.environ.get("PLAYGROUND_STATE_FILE", "data/state.json")),
        redis_url=get_redis_url(),
        state_key=os.environ.get("PLAYGROUND_STATE_KEY", "playground:state"),
        persist_timeout_s=_env_float("PLAYGROUND_PERSIST_TIMEOUT_S", 2.0),
        lock_timeout_s=_env_float("PLAYGROUND_LOCK_TIMEOUT_S", 5.0),
    )
