"""
Specialist contract for the trip planner system.

Every specialist exposes a `kind` tag and one coroutine,
`run(context) -> Contribution | Failure`. Specialists are independent
classes; the `specialist_run` decorator gives each `run` the same failure
semantics without a shared base class.
"""

import asyncio
import functools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from trip_planner.data.models import (
    Contribution,
    Failure,
    PlanContext,
    SpecialistKind,
    SpecialistOutcome,
)
from trip_planner.utils.error_handling import APIError, SpecialistError
from trip_planner.utils.logging import AgentLogger

RETRYABLE_ERRORS = (APIError, ConnectionError, TimeoutError)


@runtime_checkable
class SpecialistAgent(Protocol):
    """Capability shared by the six specialist variants."""

    kind: SpecialistKind

    async def run(self, context: PlanContext) -> SpecialistOutcome: ...


@dataclass
class AgentConfig:
    """Configuration for a specialist."""

    name: str
    description: str = ""
    max_options: int = 3


RunFunction = Callable[[Any, PlanContext], Awaitable[SpecialistOutcome]]


def specialist_run(func: RunFunction) -> RunFunction:
    """
    Wrap a specialist's `run` so that errors become Failures.

    SpecialistError keeps its own retryable flag; collaborator API errors,
    connection errors and timeouts are retryable; cancellation propagates.
    """

    @functools.wraps(func)
    async def wrapper(self: Any, context: PlanContext) -> SpecialistOutcome:
        log: AgentLogger = self.logger.for_plan(context.plan_id)
        try:
            outcome = await func(self, context)
        except asyncio.CancelledError:
            raise
        except SpecialistError as e:
            log.warning(f"{self.kind.value} failed: {e.message}")
            return Failure(
                kind=self.kind, turn=context.turn, reason=e.message, retryable=e.retryable
            )
        except RETRYABLE_ERRORS as e:
            log.warning(f"{self.kind.value} hit a transient error: {e!s}")
            return Failure(kind=self.kind, turn=context.turn, reason=str(e), retryable=True)
        except Exception as e:
            log.error(f"{self.kind.value} raised unexpectedly: {e!r}")
            return Failure(
                kind=self.kind,
                turn=context.turn,
                reason=f"Unexpected error: {e!s}",
                retryable=False,
            )

        log.info(f"{self.kind.value} contributed for turn {context.turn}")
        return outcome

    return wrapper


def contribution(
    kind: SpecialistKind,
    context: PlanContext,
    data: dict[str, Any],
    summary: str,
    clarification: str | None = None,
) -> Contribution:
    """Build a contribution tagged with the context's turn."""
    return Contribution(
        kind=kind,
        turn=context.turn,
        data=data,
        summary=summary,
        clarification=clarification,
    )


def cost_of(context: PlanContext, kind: SpecialistKind) -> float | None:
    """Total cost reported by another specialist's latest contribution."""
    found = context.contribution(kind)
    if found is None:
        return None
    return float(found.data.get("total_cost", 0.0))
