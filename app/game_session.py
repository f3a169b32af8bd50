from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError
from statemachine.exceptions import TransitionNotAllowed

from app.api.models import Game
from app.features import describe_validation_error
from app.fsm import GameSessionFSM
from app.results import OpResult, Outcome

logger = logging.getLogger(__name__)


def parse_game(raw: Any) -> Game:
    if isinstance(raw, Game):
        return raw
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    return Game.model_validate(raw)


class GameSession:
    """Holds at most one running game.

    The FSM decides whether a transition is legal; the game itself is only
    replaced after the FSM accepted it, so a rejected call leaves everything as it was.
    """

    def __init__(self, game: Game | None = None) -> None:
        self._game = game
        self._fsm = GameSessionFSM(active=game is not None)

    @property
    def is_active(self) -> bool:
        return self._fsm.has_game

    def get_current(self) -> Game | None:
        if self._game is None:
            return None
        return self._game.model_copy(deep=True)

    def start(self, proposed: Any) -> OpResult:
        try:
            game = parse_game(proposed)
        except ValidationError as e:
            return OpResult.rejected(Outcome.invalid, describe_validation_error(e))

        try:
            self._fsm.start_game()
        except TransitionNotAllowed:
            running = self._game.name if self._game else "?"
            return OpResult.rejected(Outcome.conflict, f"Game '{running}' is already running; stop it first")

        self._game = game
        return OpResult.applied()

    def update(self, proposed: Any) -> OpResult:
        if self._game is None:
            return OpResult.rejected(Outcome.conflict, "No game is running")

        try:
            game = parse_game(proposed)
        except ValidationError as e:
            return OpResult.rejected(Outcome.invalid, describe_validation_error(e))

        if game.name != self._game.name:
            return OpResult.rejected(
                Outcome.conflict,
                f"Game '{self._game.name}' is running; cannot update '{game.name}'",
            )

        try:
            self._fsm.update_game()
        except TransitionNotAllowed:
            return OpResult.rejected(Outcome.conflict, "No game is running")

        self._game = game
        return OpResult.applied()

    def stop(self) -> OpResult:
        try:
            self._fsm.stop_game()
        except TransitionNotAllowed:
            return OpResult.rejected(Outcome.conflict, "No game is running")

        self._game = None
        return OpResult.applied()

    def restore(self, raw: Mapping[str, Any] | None) -> None:
        game: Game | None = None
        if raw is not None:
            try:
                game = parse_game(raw)
            except ValidationError as e:
                logger.warning("Persisted game is invalid, starting idle: %s", describe_validation_error(e))

        self._game = game
        self._fsm = GameSessionFSM(active=game is not None)

    def dump(self) -> dict[str, Any] | None:
        if self._game is None:
            return None
        return self._game.model_dump(mode="json")
