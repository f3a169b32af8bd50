from __future__ import annotations

import logging

from app.runtime.singleton import get_state_manager, init_state_manager

logger = logging.getLogger(__name__)


async def init_state_for_app() -> bool:
    manager = init_state_manager()
    loaded = await manager.load_state()
    logger.info("Successfully loaded state" if loaded else "Failed to load state, using defaults")
    return loaded


async def flush_state_for_app() -> bool:
    flushed = await get_state_manager().flush()
    if not flushed:
        logger.warning("Shutting down with state writes still pending")
    return flushed
