from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, JsonValue, StringConstraints


class FeatureName(StrEnum):
    lights = "lights"
    music = "music"
    fountain = "fountain"
    carousel = "carousel"


class FeatureState(BaseModel):
    """Base for every feature's state.

    Subclasses are the per-feature acceptance rule: a payload is valid for a
    feature iff it validates against that feature's model. All fields are
    required so a change always carries the complete state.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, strict=True)

    on: bool


class LightsState(FeatureState):
    brightness: int = Field(..., ge=0, le=100)
    color: str = Field(..., pattern=r"^#[0-9a-fA-F]{6}$")


class MusicState(FeatureState):
    volume: int = Field(..., ge=0, le=100)
    # None means "whatever is queued"; an empty name is never valid.
    playlist: Annotated[str, StringConstraints(min_length=1, max_length=200)] | None


class FountainState(FeatureState):
    pattern: Literal["steady", "pulse", "wave"]
    height_cm: int = Field(..., ge=10, le=500)


class CarouselState(FeatureState):
    speed_rpm: float = Field(..., ge=0, le=6)
    direction: Literal["clockwise", "counterclockwise"]


class Game(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
    settings: dict[str, JsonValue] = Field(default_factory=dict)


class PersistedState(BaseModel):
    """Durable snapshot layout.

    Both portions are kept as raw JSON so that loading can restore each one
    independently; a bad game entry must not cost us the feature states.
    """

    version: int = 1
    features: dict[str, Any] | None = None
    game: dict[str, Any] | None = None


class FeatureOut(BaseModel):
    name: str
    state: dict[str, Any] | None = None


class FeaturesResponse(BaseModel):
    message: str
    features: dict[str, dict[str, Any]]


class FeatureResponse(BaseModel):
    message: str
    feature: FeatureOut


class GameResponse(BaseModel):
    message: str
    game: Game | None = None


class MessageResponse(BaseModel):
    message: str
