from __future__ import annotations

from app.config import Settings, load_settings
from app.persistence import SnapshotStore, create_store
from app.state_manager import StateManager


_MANAGER: StateManager | None = None


def init_state_manager(*, settings: Settings | None = None, store: SnapshotStore | None = None) -> StateManager:
    """Create the process-wide StateManager once and cache it.

    Safe to call multiple times; subsequent calls return the already created instance.
    """

    global _MANAGER
    if _MANAGER is None:
        settings = settings or load_settings()
        _MANAGER = StateManager(
            store=store if store is not None else create_store(settings),
            persist_timeout_s=settings.persist_timeout_s,
            lock_timeout_s=settings.lock_timeout_s,
        )
    return _MANAGER


def reset_state_manager_for_tests() -> None:
    """Drop the cached StateManager so tests can start from a fresh store."""

    global _MANAGER
    _MANAGER = None


def get_state_manager() -> StateManager:
    if _MANAGER is None:
        raise RuntimeError("State manager not initialized. Call init_state_manager() at startup.")
    return _MANAGER
