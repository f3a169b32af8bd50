from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from app.api.models import FeatureName, FeatureState, Game, PersistedState
from app.features import FeatureRegistry
from app.game_session import GameSession
from app.lock import EntityBusyError, entity_lock
from app.persistence import SnapshotStore, SnapshotStoreError, decode_snapshot, encode_snapshot
from app.results import OpResult, Outcome

logger = logging.getLogger(__name__)


class StateManager:
    """Owner of the feature registry and the game session.

    Every mutation runs as validate -> mutate -> persist while holding the lock of
    the entity it touches (features or game). Reads never lock: both entities
    swap immutable values by reference, so a read sees the state before or after
    a mutation and nothing in between.

    Until `load_state()` has run, reads serve compiled-in defaults and mutations
    are rejected with `not_ready`.
    """

    def __init__(
        self,
        *,
        store: SnapshotStore,
        registry: FeatureRegistry | None = None,
        session: GameSession | None = None,
        persist_timeout_s: float = 2.0,
        lock_timeout_s: float = 5.0,
    ) -> None:
        self._store = store
        self._features = registry if registry is not None else FeatureRegistry()
        self._game = session if session is not None else GameSession()
        self._persist_timeout_s = persist_timeout_s
        self._lock_timeout_s = lock_timeout_s

        self._features_lock = asyncio.Lock()
        self._game_lock = asyncio.Lock()
        self._pending_write: asyncio.Future[None] | None = None
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    # --- reads ---

    def get_all_features(self) -> dict[FeatureName, FeatureState]:
        return self._features.get_all()

    def get_feature_state(self, name: str) -> FeatureState | None:
        return self._features.get_state(name)

    def get_current_game(self) -> Game | None:
        return self._game.get_current()

    def snapshot(self) -> PersistedState:
        return PersistedState(features=self._features.dump(), game=self._game.dump())

    # --- mutations ---

    async def change_feature(self, name: str, state: Any) -> OpResult:
        return await self._mutate(
            self._features_lock, f"feature '{name}'", lambda: self._features.change(name, state)
        )

    async def reset_features(self) -> OpResult:
        return await self._mutate(self._features_lock, "features", self._features.reset)

    async def start_game(self, game: Any) -> OpResult:
        return await self._mutate(self._game_lock, "game", lambda: self._game.start(game))

    async def update_game(self, game: Any) -> OpResult:
        return await self._mutate(self._game_lock, "game", lambda: self._game.update(game))

    async def stop_game(self) -> OpResult:
        return await self._mutate(self._game_lock, "game", self._game.stop)

    async def _mutate(self, lock: asyncio.Lock, entity: str, op: Callable[[], OpResult]) -> OpResult:
        if not self._ready:
            return OpResult.rejected(Outcome.not_ready, "State has not been loaded yet")

        try:
            async with entity_lock(lock, entity=entity, timeout_s=self._lock_timeout_s):
                result = op()
                if not result.ok:
                    logger.info("Rejected %s mutation (%s): %s", entity, result.outcome.value, result.detail)
                    return result
                return result.with_persisted(await self._persist())
        except EntityBusyError as e:
            logger.warning("Rejected %s mutation: %s", entity, e)
            return OpResult.rejected(Outcome.busy, str(e))

    async def _persist(self) -> bool:
        """Queue a write of the current snapshot and wait for it (bounded).

        Writes form a chain: each one starts only after the previous one has
        finished, including one whose caller already gave up on it. A write
        that timed out therefore can never land on top of a newer snapshot.
        Failure is logged and reported; memory stays authoritative.
        """

        payload = encode_snapshot(self.snapshot())
        write = asyncio.ensure_future(self._write_after(self._pending_write, payload))
        write.add_done_callback(_log_write_failure)
        self._pending_write = write

        try:
            await asyncio.wait_for(asyncio.shield(write), timeout=self._persist_timeout_s)
        except TimeoutError:
            logger.warning("Saving state timed out after %.1fs; the write stays queued", self._persist_timeout_s)
            return False
        except SnapshotStoreError:
            return False
        return True

    async def _write_after(self, previous: asyncio.Future[None] | None, payload: str) -> None:
        if previous is not None and not previous.done():
            await asyncio.wait({previous})
        await asyncio.to_thread(self._store.write, payload)

    async def flush(self, timeout_s: float | None = None) -> bool:
        """Wait for queued snapshot writes. True if storage caught up with the last save."""

        write = self._pending_write
        if write is None:
            return True
        try:
            await asyncio.wait_for(asyncio.shield(write), timeout=timeout_s or self._persist_timeout_s)
        except (TimeoutError, SnapshotStoreError):
            return False
        return True

    # --- startup ---

    async def load_state(self) -> bool:
        """Populate state from the store.

        Returns True iff an existing snapshot was found and parsed. Anything
        else (no snapshot, unreadable storage, malformed data) leaves defaults
        in place and returns False.
        """

        snapshot: PersistedState | None = None
        try:
            async with (
                entity_lock(self._features_lock, entity="features", timeout_s=self._lock_timeout_s),
                entity_lock(self._game_lock, entity="game", timeout_s=self._lock_timeout_s),
            ):
                raw: str | None = None
                try:
                    raw = await asyncio.wait_for(asyncio.to_thread(self._store.read), timeout=self._persist_timeout_s)
                    if raw is None:
                        logger.info("No persisted state found, using defaults")
                except TimeoutError:
                    logger.warning("Reading state timed out after %.1fs, using defaults", self._persist_timeout_s)
                except SnapshotStoreError as e:
                    logger.warning("Reading state failed, using defaults: %s", e)

                snapshot = decode_snapshot(raw) if raw is not None else None

                self._features.restore(snapshot.features if snapshot else None)
                self._game.restore(snapshot.game if snapshot else None)
                self._ready = True
        except EntityBusyError as e:
            logger.warning("Cannot load state while a mutation is running: %s", e)
            return False

        return snapshot is not None


def _log_write_failure(write: asyncio.Future[None]) -> None:
    if write.cancelled():
        return
    e = write.exception()
    if e is not None:
        logger.warning("Saving state failed: %s", e)
