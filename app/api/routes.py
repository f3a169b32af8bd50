from __future__ import annotations

from typing import Any, NoReturn

from fastapi import APIRouter, Body, Depends, HTTPException, status

from app.api.deps import get_state_manager
from app.api.models import (
    FeatureOut,
    FeatureResponse,
    FeaturesResponse,
    GameResponse,
    MessageResponse,
)
from app.results import OpResult, Outcome
from app.state_manager import StateManager

router = APIRouter()


def _raise_rejected(result: OpResult, message: str, **extra: Any) -> NoReturn:
    # Not-ready and lock contention are server-side conditions; everything else is the client's input.
    if result.outcome in (Outcome.not_ready, Outcome.busy):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_400_BAD_REQUEST
    raise HTTPException(
        status_code=code,
        detail={"message": message, "reason": result.outcome.value, "detail": result.detail, **extra},
    )


@router.get("/healthcheck")
async def healthcheck(manager: StateManager = Depends(get_state_manager)) -> dict[str, object]:
    return {"status": "ok", "ready": manager.ready}


@router.get("/features", response_model=FeaturesResponse)
async def list_features_route(manager: StateManager = Depends(get_state_manager)) -> FeaturesResponse:
    features = {name.value: state.model_dump(mode="json") for name, state in manager.get_all_features().items()}
    return FeaturesResponse(message="Retrieved all Features", features=features)


@router.get("/features/{name}", response_model=FeatureResponse)
async def get_feature_route(name: str, manager: StateManager = Depends(get_state_manager)) -> FeatureResponse:
    state = manager.get_feature_state(name)
    if state is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "Feature not found", "feature": {"name": name, "state": None}},
        )
    return FeatureResponse(
        message="Retrieved Feature",
        feature=FeatureOut(name=name, state=state.model_dump(mode="json")),
    )


@router.put("/features/{name}", response_model=FeatureResponse)
async def change_feature_route(
    name: str,
    body: Any = Body(...),
    manager: StateManager = Depends(get_state_manager),
) -> FeatureResponse:
    result = await manager.change_feature(name, body)
    if not result.ok:
        _raise_rejected(result, "Could not Change Feature", feature={"name": name, "state": body})

    state = manager.get_feature_state(name)
    return FeatureResponse(
        message="Changed Feature",
        feature=FeatureOut(name=name, state=state.model_dump(mode="json") if state else None),
    )


@router.delete("/features", response_model=MessageResponse, status_code=status.HTTP_202_ACCEPTED)
async def reset_features_route(manager: StateManager = Depends(get_state_manager)) -> MessageResponse:
    result = await manager.reset_features()
    if not result.ok:
        _raise_rejected(result, "Features could not be reset")
    return MessageResponse(message="Reset all features")


@router.get("/games", response_model=GameResponse)
async def get_game_route(manager: StateManager = Depends(get_state_manager)) -> GameResponse:
    return GameResponse(message="Got CurrentGame", game=manager.get_current_game())


@router.post("/games", response_model=GameResponse)
async def start_game_route(
    body: Any = Body(...),
    manager: StateManager = Depends(get_state_manager),
) -> GameResponse:
    result = await manager.start_game(body)
    if not result.ok:
        _raise_rejected(result, "Game could not be started")
    return GameResponse(message="Game started", game=manager.get_current_game())


@router.put("/games", response_model=GameResponse, status_code=status.HTTP_202_ACCEPTED)
async def update_game_route(
    body: Any = Body(...),
    manager: StateManager = Depends(get_state_manager),
) -> GameResponse:
    result = await manager.update_game(body)
    if not result.ok:
        _raise_rejected(result, "Game could not be changed")
    return GameResponse(message="Game modified", game=manager.get_current_game())


@router.delete("/games", response_model=MessageResponse, status_code=status.HTTP_202_ACCEPTED)
async def stop_game_route(manager: StateManager = Depends(get_state_manager)) -> MessageResponse:
    result = await manager.stop_game()
    if not result.ok:
        _raise_rejected(result, "Game could not be stopped")
    return MessageResponse(message="Game stopped")
