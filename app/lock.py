from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class EntityBusyError(ValueError):
    pass


@asynccontextmanager
async def entity_lock(lock: asyncio.Lock, *, entity: str, timeout_s: float) -> AsyncIterator[None]:
    """Serialize mutations of one entity (features, game, snapshot writes).

    Waiting is bounded: if the lock isn't free within `timeout_s`, the caller
    gets EntityBusyError instead of queueing forever.
    """

    try:
        await asyncio.wait_for(lock.acquire(), timeout=timeout_s)
    except TimeoutError as e:
        raise EntityBusyError(f"{entity} is busy") from e
    try:
        yield
    finally:
        lock.release()
