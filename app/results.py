from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum


class Outcome(StrEnum):
    applied = "applied"
    not_found = "not_found"
    invalid = "invalid"
    conflict = "conflict"
    not_ready = "not_ready"
    busy = "busy"


@dataclass(frozen=True, slots=True)
class OpResult:
    """Result of a state mutation.

    - `ok`: the boolean contract the HTTP layer cares about.
    - `outcome`: why it failed, so callers (and tests) can tell a conflict from bad input.
    - `persisted`: whether the follow-up save reached storage; None if no save was attempted.
    """

    outcome: Outcome
    detail: str = ""
    persisted: bool | None = None

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.applied

    @staticmethod
    def applied(detail: str = "") -> "OpResult":
        return OpResult(outcome=Outcome.applied, detail=detail)

    @staticmethod
    def rejected(outcome: Outcome, detail: str) -> "OpResult":
        if outcome == Outcome.applied:
            raise ValueError("A rejection needs a failure outcome")
        return OpResult(outcome=outcome, detail=detail)

    def with_persisted(self, persisted: bool) -> "OpResult":
        return replace(self, persisted=persisted)
