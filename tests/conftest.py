from __future__ import annotations

import os
from pathlib import Path

import pytest


@pytest.fixture(scope="session", autouse=True)
def _load_dotenv_for_tests() -> None:
    """Load repo .env for local runs (PyCharm/CLI).

    In CI, we *don't* auto-load `.env` by default so a developer's local
    REDIS_URL or state path can't leak into the test run.
    Opt-in with: PLAYGROUND_LOAD_DOTENV_FOR_TESTS=1
    """

    if os.environ.get("CI") and os.environ.get("PLAYGROUND_LOAD_DOTENV_FOR_TESTS") != "1":
        return

    env_path = Path(__file__).resolve().parents[1] / ".env"
    if env_path.exists():
        from dotenv import load_dotenv

        load_dotenv(dotenv_path=env_path, override=False)


@pytest.fixture()
def state_path(tmp_path: Path) -> Path:
    return tmp_path / "state" / "state.json"


@pytest.fixture()
def store(state_path: Path):
    from app.persistence import FileSnapshotStore

    return FileSnapshotStore(state_path)


@pytest.fixture()
def manager(store):
    """A StateManager over a fresh file store. Not loaded yet: tests await load_state() themselves."""

    from app.state_manager import StateManager

    return StateManager(store=store, persist_timeout_s=2.0, lock_timeout_s=2.0)


@pytest.fixture()
def client_and_manager(state_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Shared fixture for API tests: a TestClient whose startup loaded state from a temp file."""

    from fastapi.testclient import TestClient

    from app.main import app
    from app.runtime.singleton import get_state_manager, reset_state_manager_for_tests

    monkeypatch.setenv("PLAYGROUND_STATE_BACKEND", "file")
    monkeypatch.setenv("PLAYGROUND_STATE_FILE", str(state_path))
    reset_state_manager_for_tests()

    with TestClient(app) as c:
        yield c, get_state_manager()
    reset_state_manager_for_tests()
