from __future__ import annotations

import json
from pathlib import Path

import fakeredis
import pytest
import redis

from app.api.models import PersistedState
from app.config import load_settings
from app.persistence import (
    FileSnapshotStore,
    RedisSnapshotStore,
    SnapshotStoreError,
    create_store,
    decode_snapshot,
    encode_snapshot,
)


def test_file_store_missing_file_reads_none(tmp_path: Path) -> None:
    assert FileSnapshotStore(tmp_path / "nope.json").read() is None


def test_file_store_write_creates_parents_and_leaves_no_temp_files(tmp_path: Path) -> None:
    path = tmp_path / "a" / "b" / "state.json"
    store = FileSnapshotStore(path)

    store.write('{"version": 1}')
    store.write('{"version": 1, "game": null}')

    assert store.read() == '{"version": 1, "game": null}'
    assert [p.name for p in path.parent.iterdir()] == ["state.json"]


def test_file_store_write_failure_raises_store_error(tmp_path: Path) -> None:
    # Parent "directory" is a regular file, so nothing can be written under it.
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    store = FileSnapshotStore(blocker / "state.json")

    with pytest.raises(SnapshotStoreError):
        store.write("{}")


def test_file_store_read_failure_raises_store_error(tmp_path: Path) -> None:
    # Reading a directory is an OSError other than FileNotFoundError.
    with pytest.raises(SnapshotStoreError):
        FileSnapshotStore(tmp_path).read()


def test_redis_store_round_trip() -> None:
    r = fakeredis.FakeRedis(decode_responses=True)
    store = RedisSnapshotStore(r=r, key="test:state")

    assert store.read() is None
    store.write('{"version": 1}')

    assert store.read() == '{"version": 1}'
    assert r.get("test:state") == '{"version": 1}'


class _BrokenRedis:
    def get(self, key: str) -> None:
        raise redis.ConnectionError("down")

    def set(self, key: str, value: str) -> None:
        raise redis.ConnectionError("down")


def test_redis_store_errors_are_store_errors() -> None:
    store = RedisSnapshotStore(r=_BrokenRedis(), key="k")  # type: ignore[arg-type]

    with pytest.raises(SnapshotStoreError):
        store.read()
    with pytest.raises(SnapshotStoreError):
        store.write("{}")


def test_encode_decode_snapshot() -> None:
    state = PersistedState(features={"lights": {"on": True}}, game={"name": "g1", "settings": {"x": 1}})

    raw = encode_snapshot(state)

    assert json.loads(raw)["version"] == 1
    assert decode_snapshot(raw) == state


@pytest.mark.parametrize("raw", ["not json", "[]", '"state"', '{"features": [1, 2]}', '{"game": "g1"}'])
def test_decode_malformed_snapshot_is_none(raw: str) -> None:
    assert decode_snapshot(raw) is None


def test_decode_tolerates_missing_portions() -> None:
    only_game = decode_snapshot('{"game": {"name": "g1"}}')
    only_features = decode_snapshot('{"features": {"lights": {"on": true}}}')

    assert only_game is not None and only_game.features is None
    assert only_features is not None and only_features.game is None


def test_create_store_follows_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("PLAYGROUND_STATE_BACKEND", "file")
    monkeypatch.setenv("PLAYGROUND_STATE_FILE", str(tmp_path / "s.json"))
    store = create_store(load_settings())
    assert isinstance(store, FileSnapshotStore)
    assert store.path == tmp_path / "s.json"

    monkeypatch.setenv("PLAYGROUND_STATE_BACKEND", "redis")
    monkeypatch.setenv("PLAYGROUND_STATE_KEY", "pg:test")
    store = create_store(load_settings())
    assert isinstance(store, RedisSnapshotStore)
    assert store.key == "pg:test"
