from __future__ import annotations

from app.runtime.singleton import get_state_manager as _get_state_manager
from app.state_manager import StateManager


def get_state_manager() -> StateManager:
    return _get_state_manager()
