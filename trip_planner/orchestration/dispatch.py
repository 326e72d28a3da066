"""
Parallel specialist dispatch for the trip planner system.

Each wave runs its specialists concurrently with asyncio; every specialist
call is bounded by its per-kind timeout and retried while it reports a
retryable failure. Waves run one after another, and a gated wave is skipped
when the plan has nothing for it to build on.
"""

import asyncio
import time
from collections.abc import Iterable
from dataclasses import dataclass, field

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from trip_planner.config import OrchestratorConfig
from trip_planner.data.models import (
    Contribution,
    Failure,
    PlanContext,
    SpecialistKind,
    SpecialistOutcome,
)
from trip_planner.orchestration.registry import AgentRegistry, Wave
from trip_planner.utils.logging import get_logger

logger = get_logger(__name__)


def _is_retryable(outcome: SpecialistOutcome) -> bool:
    return isinstance(outcome, Failure) and outcome.retryable


def _last_outcome(retry_state: RetryCallState) -> SpecialistOutcome:
    return retry_state.outcome.result()


def _log_retry(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome.result()
    logger.warning(
        f"Retrying {outcome.kind.value} after attempt {retry_state.attempt_number}: "
        f"{outcome.reason}"
    )


@dataclass
class DispatchResult:
    """Outcomes of one request's waves."""

    outcomes: dict[SpecialistKind, SpecialistOutcome] = field(default_factory=dict)
    duration: float = 0.0
    skipped_waves: list[int] = field(default_factory=list)

    @property
    def failures(self) -> dict[SpecialistKind, Failure]:
        return {
            kind: outcome
            for kind, outcome in self.outcomes.items()
            if isinstance(outcome, Failure)
        }

    @property
    def contributions(self) -> dict[SpecialistKind, Contribution]:
        return {
            kind: outcome
            for kind, outcome in self.outcomes.items()
            if isinstance(outcome, Contribution)
        }


class Dispatcher:
    """
    Runs waves of specialists against a plan context.

    `dispatch_count` counts every specialist invocation, retries included.
    """

    def __init__(self, agents: AgentRegistry, settings: OrchestratorConfig):
        self.agents = agents
        self.settings = settings
        self.dispatch_count = 0

    async def run_waves(self, waves: Iterable[Wave], context: PlanContext) -> DispatchResult:
        """
        Execute waves in order, feeding each wave the outcomes of the ones before.

        Args:
            waves: Waves selected for this request
            context: Snapshot of the plan the request started from

        Returns:
            Outcomes per kind plus the wall time spent dispatching
        """
        result = DispatchResult()
        started = time.monotonic()
        for wave in waves:
            current = context.with_outcomes(result.outcomes)
            if wave.requires and not any(
                current.contribution(kind) for kind in wave.requires
            ):
                logger.info(
                    f"Skipping wave {wave.number} for plan {context.plan_id}: "
                    "no contributions to build on"
                )
                result.skipped_waves.append(wave.number)
                continue
            result.outcomes.update(await self.run_wave(wave, current))
        result.duration = time.monotonic() - started
        return result

    async def run_wave(
        self, wave: Wave, context: PlanContext
    ) -> dict[SpecialistKind, SpecialistOutcome]:
        """Run every specialist in the wave concurrently and collect all outcomes."""
        logger.info(
            f"Dispatching wave {wave.number} for plan {context.plan_id}: "
            f"{', '.join(kind.value for kind in wave.kinds)}"
        )
        outcomes = await asyncio.gather(
            *(self._run_specialist(kind, context) for kind in wave.kinds)
        )
        for outcome in outcomes:
            if isinstance(outcome, Failure):
                logger.warning(
                    f"{outcome.kind.value} failed for plan {context.plan_id}: "
                    f"{outcome.reason}"
                )
        return dict(zip(wave.kinds, outcomes, strict=True))

    async def _run_specialist(
        self, kind: SpecialistKind, context: PlanContext
    ) -> SpecialistOutcome:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.specialist_max_attempts),
            wait=wait_exponential(
                multiplier=self.settings.specialist_retry_min_wait,
                min=self.settings.specialist_retry_min_wait,
                max=self.settings.specialist_retry_max_wait,
            ),
            retry=retry_if_result(_is_retryable),
            retry_error_callback=_last_outcome,
            before_sleep=_log_retry,
        )
        return await retrying(self._attempt, kind, context)

    async def _attempt(self, kind: SpecialistKind, context: PlanContext) -> SpecialistOutcome:
        try:
            agent = self.agents.get(kind)
        except KeyError as e:
            logger.error(f"Cannot dispatch {kind.value}: {e.args[0]}")
            return Failure(
                kind=kind, turn=context.turn, reason=str(e.args[0]), retryable=False
            )
        timeout = self.settings.timeout_for(kind.value)
        self.dispatch_count += 1
        try:
            outcome = await asyncio.wait_for(agent.run(context), timeout=timeout)
        except TimeoutError:
            return Failure(
                kind=kind,
                turn=context.turn,
                reason=f"Timed out after {timeout:g}s",
                retryable=True,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Specialist {kind.value} raised: {e!r}")
            return Failure(
                kind=kind,
                turn=context.turn,
                reason=f"Unexpected error: {e!s}",
                retryable=False,
            )

        if not isinstance(outcome, Contribution | Failure) or outcome.kind != kind:
            return Failure(
                kind=kind,
                turn=context.turn,
                reason=f"Specialist returned an invalid outcome: {outcome!r}",
                retryable=False,
            )
        return outcome
