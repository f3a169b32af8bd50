from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

import redis
from pydantic import ValidationError

from app.api.models import PersistedState
from app.config import Settings
from app.infra.redis_client import create_redis

logger = logging.getLogger(__name__)


class SnapshotStoreError(RuntimeError):
    pass


class SnapshotStore(Protocol):
    """Durable home of the state snapshot. Blocking I/O; callers run it off the event loop."""

    def read(self) -> str | None:  # pragma: no cover
        ...

    def write(self, payload: str) -> None:  # pragma: no cover
        ...


class FileSnapshotStore:
    """JSON file on disk.

    Writes go to a temp file in the same directory and are moved into place with
    os.replace, so a reader sees either the old snapshot or the new one.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def read(self) -> str | None:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise SnapshotStoreError(f"Cannot read {self.path}: {e}") from e

    def write(self, payload: str) -> None:
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as fh:
                tmp_name = fh.name
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise SnapshotStoreError(f"Cannot write {self.path}: {e}") from e
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)


class RedisSnapshotStore:
    """Snapshot kept under a single redis key (SET is atomic)."""

    def __init__(self, *, r: redis.Redis, key: str = "playground:state") -> None:
        self.r = r
        self.key = key

    def read(self) -> str | None:
        try:
            raw = self.r.get(self.key)
        except redis.RedisError as e:
            raise SnapshotStoreError(f"Cannot read redis key {self.key}: {e}") from e
        if raw is None:
            return None
        if isinstance(raw, bytes):
            return raw.decode("utf-8")
        return str(raw)

    def write(self, payload: str) -> None:
        try:
            self.r.set(self.key, payload)
        except redis.RedisError as e:
            raise SnapshotStoreError(f"Cannot write redis key {self.key}: {e}") from e


def encode_snapshot(state: PersistedState) -> str:
    return state.model_dump_json(indent=2)


def decode_snapshot(raw: str) -> PersistedState | None:
    """Parse a stored snapshot; None if it's not a usable snapshot at all."""

    try:
        return PersistedState.model_validate_json(raw)
    except ValidationError as e:
        logger.warning("Persisted state is malformed (%d error(s)): %s", e.error_count(), e.errors()[:3])
        return None


def create_store(settings: Settings) -> SnapshotStore:
    if settings.state_backend == "redis":
        return RedisSnapshotStore(r=create_redis(settings.redis_url), key=settings.state_key)
    return FileSnapshotStore(settings.state_file)
