from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from app.api.models import (
    CarouselState,
    FeatureName,
    FeatureState,
    FountainState,
    LightsState,
    MusicState,
)
from app.results import OpResult, Outcome

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """The compiled-in feature table is broken. Fatal at startup."""


def describe_validation_error(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


@dataclass(frozen=True, slots=True)
class FeatureDefinition:
    """One known feature: its state schema and its factory default."""

    name: FeatureName
    state_model: type[FeatureState]
    default: Mapping[str, Any]

    def parse(self, raw: Any) -> FeatureState:
        """Validate `raw` against this feature's model. Raises ValidationError."""

        if isinstance(raw, BaseModel):
            raw = raw.model_dump()
        return self.state_model.model_validate(raw)


DEFAULT_FEATURES: tuple[FeatureDefinition, ...] = (
    FeatureDefinition(
        name=FeatureName.lights,
        state_model=LightsState,
        default={"on": False, "brightness": 100, "color": "#ffffff"},
    ),
    FeatureDefinition(
        name=FeatureName.music,
        state_model=MusicState,
        default={"on": False, "volume": 50, "playlist": None},
    ),
    FeatureDefinition(
        name=FeatureName.fountain,
        state_model=FountainState,
        default={"on": False, "pattern": "steady", "height_cm": 100},
    ),
    FeatureDefinition(
        name=FeatureName.carousel,
        state_model=CarouselState,
        default={"on": False, "speed_rpm": 3.0, "direction": "clockwise"},
    ),
)


def build_definition_table(definitions: Iterable[FeatureDefinition]) -> dict[FeatureName, FeatureDefinition]:
    table: dict[FeatureName, FeatureDefinition] = {}
    for d in definitions:
        if d.name in table:
            raise ConfigurationError(f"Duplicate feature definition: {d.name}")
        table[d.name] = d

    missing = [n.value for n in FeatureName if n not in table]
    if missing:
        raise ConfigurationError(f"Feature table is missing: {', '.join(missing)}")
    return table


def resolve_feature_name(name: str) -> FeatureName | None:
    try:
        return FeatureName(name)
    except ValueError:
        return None


class FeatureRegistry:
    """Current state of every known feature.

    The key set is always exactly `FeatureName`. Mutations swap the whole mapping
    by reference, so a reader holding the previous mapping never sees a half-applied change.
    """

    def __init__(self, definitions: Iterable[FeatureDefinition] = DEFAULT_FEATURES) -> None:
        self._definitions = build_definition_table(definitions)
        self._states: dict[FeatureName, FeatureState] = self._default_states()

    def _default_states(self) -> dict[FeatureName, FeatureState]:
        states: dict[FeatureName, FeatureState] = {}
        for name, d in self._definitions.items():
            try:
                states[name] = d.parse(d.default)
            except ValidationError as e:
                raise ConfigurationError(
                    f"Default state for '{name}' is invalid: {describe_validation_error(e)}"
                ) from e
        return states

    def get_all(self) -> dict[FeatureName, FeatureState]:
        return dict(self._states)

    def get_state(self, name: str) -> FeatureState | None:
        fname = resolve_feature_name(name)
        if fname is None:
            return None
        return self._states[fname]

    def change(self, name: str, proposed: Any) -> OpResult:
        fname = resolve_feature_name(name)
        if fname is None:
            return OpResult.rejected(Outcome.not_found, f"Unknown feature '{name}'")

        try:
            state = self._definitions[fname].parse(proposed)
        except ValidationError as e:
            return OpResult.rejected(Outcome.invalid, describe_validation_error(e))

        self._states = {**self._states, fname: state}
        return OpResult.applied()

    def reset(self) -> OpResult:
        try:
            defaults = self._default_states()
        except ConfigurationError as e:
            logger.error("Feature defaults are corrupt: %s", e)
            return OpResult.rejected(Outcome.invalid, str(e))

        self._states = defaults
        return OpResult.applied()

    def restore(self, raw: Mapping[str, Any] | None) -> None:
        """Replace all states from a persisted mapping.

        Unknown names are dropped; missing or invalid entries get the feature default.
        """

        states = self._default_states()
        for key, value in (raw or {}).items():
            fname = resolve_feature_name(key)
            if fname is None:
                logger.warning("Dropping persisted state for unknown feature '%s'", key)
                continue
            try:
                states[fname] = self._definitions[fname].parse(value)
            except ValidationError as e:
                logger.warning(
                    "Persisted state for '%s' is invalid, using default: %s",
                    fname.value,
                    describe_validation_error(e),
                )
        self._states = states

    def dump(self) -> dict[str, dict[str, Any]]:
        return {name.value: state.model_dump(mode="json") for name, state in self._states.items()}
