"""
Data models for the trip planner system.

This module defines the persisted Plan record, the specialist outcome types
(Contribution and Failure) and the read-only PlanContext projection handed
to specialists.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(UTC)


class PlanStatus(str, Enum):
    """Lifecycle status of a plan."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    AWAITING_USER_INPUT = "awaiting_user_input"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PlanStatus.COMPLETED, PlanStatus.FAILED)

    def can_transition_to(self, target: "PlanStatus") -> bool:
        """Whether the state machine allows moving from this status to target."""
        return target in _TRANSITIONS[self]


_TRANSITIONS: dict[PlanStatus, frozenset[PlanStatus]] = {
    PlanStatus.PENDING: frozenset(
        {PlanStatus.PENDING, PlanStatus.IN_PROGRESS, PlanStatus.FAILED}
    ),
    PlanStatus.IN_PROGRESS: frozenset(
        {
            PlanStatus.IN_PROGRESS,
            PlanStatus.AWAITING_USER_INPUT,
            PlanStatus.COMPLETED,
            PlanStatus.FAILED,
        }
    ),
    PlanStatus.AWAITING_USER_INPUT: frozenset(
        {
            PlanStatus.AWAITING_USER_INPUT,
            PlanStatus.IN_PROGRESS,
            PlanStatus.COMPLETED,
            PlanStatus.FAILED,
        }
    ),
    PlanStatus.COMPLETED: frozenset({PlanStatus.COMPLETED}),
    PlanStatus.FAILED: frozenset({PlanStatus.FAILED}),
}


class SpecialistKind(str, Enum):
    """Facets of a plan, one per specialist. Declaration order is merge order."""

    FLIGHTS = "flights"
    HOTELS = "hotels"
    ACTIVITIES = "activities"
    DESTINATION = "destination"
    BUDGET = "budget"
    ITINERARY = "itinerary"


FIRST_WAVE: tuple[SpecialistKind, ...] = (
    SpecialistKind.FLIGHTS,
    SpecialistKind.HOTELS,
    SpecialistKind.ACTIVITIES,
    SpecialistKind.DESTINATION,
)
SECOND_WAVE: tuple[SpecialistKind, ...] = (
    SpecialistKind.BUDGET,
    SpecialistKind.ITINERARY,
)
REQUIRED_FOR_FINALIZE: tuple[SpecialistKind, ...] = (
    SpecialistKind.FLIGHTS,
    SpecialistKind.HOTELS,
    SpecialistKind.BUDGET,
    SpecialistKind.ITINERARY,
)


class Contribution(BaseModel):
    """A specialist's typed output for a given turn."""

    kind: SpecialistKind
    turn: int = Field(ge=0)
    data: dict[str, Any] = Field(default_factory=dict)
    summary: str = ""
    clarification: str | None = Field(
        default=None, description="Question the user must answer before finalizing"
    )
    produced_at: datetime = Field(default_factory=utc_now)


class Failure(BaseModel):
    """A specialist's failure to contribute for a given turn."""

    kind: SpecialistKind
    turn: int = Field(ge=0)
    reason: str
    retryable: bool = False


SpecialistOutcome = Contribution | Failure


class TurnInput(BaseModel):
    """One user input supplied through `continue`."""

    number: int = Field(ge=1)
    user_input: str
    received_at: datetime = Field(default_factory=utc_now)


class PlanWarning(BaseModel):
    """A specialist failure absorbed into the plan."""

    kind: SpecialistKind
    turn: int
    message: str
    retryable: bool = False
    recorded_at: datetime = Field(default_factory=utc_now)


class PlanError(BaseModel):
    """Terminal failure descriptor."""

    code: str
    message: str
    kinds: list[SpecialistKind] = Field(default_factory=list)


class Plan(BaseModel):
    """The persisted record of one user's trip-planning session."""

    plan_id: str
    user_id: str
    goal: str
    status: PlanStatus = PlanStatus.PENDING
    turn: int = 0
    turns: list[TurnInput] = Field(default_factory=list)
    contributions: dict[SpecialistKind, Contribution] = Field(default_factory=dict)
    warnings: list[PlanWarning] = Field(default_factory=list)
    clarification: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = None
    processing_duration: float = 0.0
    error: PlanError | None = None
    revision: int = 0

    def contribution(self, kind: SpecialistKind) -> Contribution | None:
        return self.contributions.get(kind)

    def missing(self, kinds: tuple[SpecialistKind, ...]) -> list[SpecialistKind]:
        return [kind for kind in kinds if kind not in self.contributions]

    def to_context(self, finalizing: bool = False) -> "PlanContext":
        """Project the plan into the read-only view given to specialists."""
        return PlanContext(
            plan_id=self.plan_id,
            goal=self.goal,
            turn=self.turn,
            inputs=tuple(t.user_input for t in self.turns),
            contributions={
                kind: c.model_copy(deep=True) for kind, c in self.contributions.items()
            },
            finalizing=finalizing,
        )


class PlanContext(BaseModel):
    """Read-only projection of a Plan handed to specialists."""

    model_config = ConfigDict(frozen=True)

    plan_id: str
    goal: str
    turn: int
    inputs: tuple[str, ...] = ()
    contributions: dict[SpecialistKind, Contribution] = Field(default_factory=dict)
    finalizing: bool = False

    def contribution(self, kind: SpecialistKind) -> Contribution | None:
        return self.contributions.get(kind)

    def with_outcomes(self, outcomes: dict[SpecialistKind, SpecialistOutcome]) -> "PlanContext":
        """A new context with successful outcomes layered over the current ones."""
        contributions = dict(self.contributions)
        for kind, outcome in outcomes.items():
            if isinstance(outcome, Contribution):
                contributions[kind] = outcome
        return self.model_copy(update={"contributions": contributions})

    @property
    def texts(self) -> tuple[str, ...]:
        """Goal followed by every turn input, oldest first."""
        return (self.goal, *self.inputs)
