"""
Plan orchestration for the trip planner system.

The orchestrator drives a plan through its lifecycle across independent
requests. Each request loads the plan, selects the specialist waves for the
plan's phase, dispatches them against a read-only snapshot, and writes the
merged result back with a compare-and-swap keyed on the turn it read. When
the write loses a race the plan is re-read and only the outcomes this
request computed are applied again.
"""

from collections.abc import Callable

from pydantic import BaseModel, Field
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random,
)

from trip_planner.config import OrchestratorConfig
from trip_planner.data.models import (
    REQUIRED_FOR_FINALIZE,
    Contribution,
    Failure,
    Plan,
    PlanError,
    PlanStatus,
    SpecialistKind,
    TurnInput,
    utc_now,
)
from trip_planner.data.plan_store import PlanStore
from trip_planner.orchestration.classification import (
    AspectClassifier,
    KeywordAspectClassifier,
)
from trip_planner.orchestration.dispatch import Dispatcher, DispatchResult
from trip_planner.orchestration.merge import merge_outcomes, retag
from trip_planner.orchestration.registry import (
    AgentRegistry,
    reconciliation_waves,
    select,
)
from trip_planner.utils.error_handling import (
    ConcurrentModificationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from trip_planner.utils.helpers import generate_plan_id, truncate_text
from trip_planner.utils.logging import get_logger

logger = get_logger(__name__)

# Errors reported to the caller as-is; anything else raised while merging or
# persisting fails the plan.
CALLER_ERRORS = (
    ValidationError,
    NotFoundError,
    InvalidStateError,
    ConflictError,
    ConcurrentModificationError,
)

ESSENTIAL_KINDS = (SpecialistKind.FLIGHTS, SpecialistKind.HOTELS)


class PlanSummary(BaseModel):
    """Status summary returned by start and continue."""

    plan_id: str
    status: PlanStatus
    turn: int
    message: str
    contributions: dict[SpecialistKind, str] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    clarification: str | None = None

    @classmethod
    def from_plan(cls, plan: Plan, message: str) -> "PlanSummary":
        return cls(
            plan_id=plan.plan_id,
            status=plan.status,
            turn=plan.turn,
            message=message,
            contributions={
                kind: contribution.summary
                for kind, contribution in plan.contributions.items()
            },
            warnings=[
                f"{w.kind.value}: {w.message}"
                for w in plan.warnings
                if w.turn == plan.turn
            ],
            clarification=plan.clarification,
        )


def _ensure_active(plan: Plan, operation: str) -> None:
    if plan.status.is_terminal:
        raise InvalidStateError(
            f"Cannot {operation} plan {plan.plan_id}: plan is {plan.status.value}"
        )
    if plan.status == PlanStatus.PENDING:
        raise InvalidStateError(
            f"Cannot {operation} plan {plan.plan_id}: initial planning has not finished"
        )


def _essentials_failed(result: DispatchResult) -> bool:
    return all(isinstance(result.outcomes.get(k), Failure) for k in ESSENTIAL_KINDS)


def _log_write_conflict(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception()
    logger.warning(f"{error} (write attempt {retry_state.attempt_number})")


class TripOrchestrator:
    """
    State machine behind start, continue, status and finalize.

    The orchestrator holds no plan state between requests; everything it
    knows about a plan is read from the store at the start of a request.
    """

    def __init__(
        self,
        store: PlanStore,
        agents: AgentRegistry,
        classifier: AspectClassifier | None = None,
        settings: OrchestratorConfig | None = None,
    ):
        self.store = store
        self.settings = settings or OrchestratorConfig()
        self.classifier = classifier or KeywordAspectClassifier()
        self.dispatcher = Dispatcher(agents, self.settings)

    @property
    def dispatch_count(self) -> int:
        """Specialist invocations made by this orchestrator."""
        return self.dispatcher.dispatch_count

    async def start(self, goal: str, user_id: str) -> PlanSummary:
        """
        Create a plan and run the initial specialist waves.

        Args:
            goal: Free-form description of the trip
            user_id: Owner of the plan

        Returns:
            Summary of the plan after the first merge

        Raises:
            ValidationError: If goal or user_id is blank
        """
        if not goal or not goal.strip():
            raise ValidationError("goal must not be empty")
        if not user_id or not user_id.strip():
            raise ValidationError("user_id must not be empty")

        plan = Plan(plan_id=generate_plan_id(), user_id=user_id, goal=goal.strip())
        self.store.create(plan)
        logger.info(
            f"Created plan {plan.plan_id} for {user_id}: {truncate_text(plan.goal, 80)}"
        )
        waves = select(plan.status, plan.turn)

        def begin(current: Plan) -> Plan:
            current.status = PlanStatus.IN_PROGRESS
            return current

        plan = await self._persist(plan.plan_id, plan.turn, begin)
        if plan.status == PlanStatus.FAILED:
            return PlanSummary.from_plan(plan, plan.error.message)
        logger.info(f"Plan {plan.plan_id}: pending -> in_progress")

        try:
            result = await self.dispatcher.run_waves(waves, plan.to_context())
        except Exception as e:
            plan = self._abort(plan.plan_id, e)
            return PlanSummary.from_plan(plan, self._describe(plan))
        fatal = _essentials_failed(result)

        def apply(current: Plan) -> Plan:
            merge_outcomes(current, retag(result.outcomes, current.turn))
            current.processing_duration += result.duration
            if fatal:
                current.status = PlanStatus.FAILED
                current.clarification = None
                current.error = PlanError(
                    code="specialists_failed",
                    message="Neither flights nor hotels could be planned",
                    kinds=list(ESSENTIAL_KINDS),
                )
            return current

        plan = await self._persist(plan.plan_id, plan.turn, apply)
        return PlanSummary.from_plan(plan, self._describe(plan))

    async def continue_plan(self, plan_id: str, user_input: str) -> PlanSummary:
        """
        Add a user input as a new turn and refresh the stale contributions.

        Raises:
            ValidationError: If user_input is blank
            NotFoundError: If the plan does not exist
            InvalidStateError: If the plan is terminal or still pending
            ConcurrentModificationError: If the write kept losing races
        """
        if not user_input or not user_input.strip():
            raise ValidationError("user_input must not be empty")
        user_input = user_input.strip()

        plan = self.store.get(plan_id)
        _ensure_active(plan, "continue")

        changed = await self.classifier.classify(user_input)
        logger.info(
            f"Plan {plan_id} turn {plan.turn + 1} affects: "
            f"{', '.join(sorted(k.value for k in changed)) or 'nothing upstream'}"
        )

        staged = plan.model_copy(deep=True)
        staged.turn = plan.turn + 1
        staged.turns.append(TurnInput(number=staged.turn, user_input=user_input))
        waves = select(plan.status, staged.turn, changed)
        try:
            result = await self.dispatcher.run_waves(waves, staged.to_context())
        except Exception as e:
            plan = self._abort(plan_id, e)
            return PlanSummary.from_plan(plan, self._describe(plan))
        received_at = staged.turns[-1].received_at

        def apply(current: Plan) -> Plan:
            _ensure_active(current, "continue")
            current.turn += 1
            current.turns.append(
                TurnInput(
                    number=current.turn, user_input=user_input, received_at=received_at
                )
            )
            merge_outcomes(current, retag(result.outcomes, current.turn))
            current.processing_duration += result.duration
            return current

        plan = await self._persist(plan_id, plan.turn, apply)
        return PlanSummary.from_plan(plan, self._describe(plan))

    async def status(self, plan_id: str) -> Plan:
        """
        Read-only snapshot of a plan.

        Raises:
            NotFoundError: If the plan does not exist
        """
        return self.store.get(plan_id)

    async def finalize(self, plan_id: str) -> Plan:
        """
        Reconcile budget and itinerary one last time and complete the plan.

        A budget failure, or a budget that still needs the user's answer,
        blocks completion; the reconciliation results are saved either way.

        Raises:
            NotFoundError: If the plan does not exist
            InvalidStateError: If the plan cannot be completed
            ConcurrentModificationError: If the plan moved to a newer turn
                while reconciling
        """
        plan = self.store.get(plan_id)
        _ensure_active(plan, "finalize")
        missing = plan.missing(REQUIRED_FOR_FINALIZE)
        if missing:
            raise InvalidStateError(
                f"Cannot finalize plan {plan_id}: missing "
                f"{', '.join(k.value for k in missing)}"
            )

        try:
            result = await self.dispatcher.run_waves(
                reconciliation_waves(), plan.to_context(finalizing=True)
            )
        except Exception as e:
            return self._abort(plan_id, e)
        budget = result.outcomes.get(SpecialistKind.BUDGET)
        blocker = None
        if isinstance(budget, Failure):
            blocker = f"budget specialist failed: {budget.reason}"
        elif isinstance(budget, Contribution) and budget.clarification:
            blocker = budget.clarification

        def apply(current: Plan) -> Plan:
            _ensure_active(current, "finalize")
            merge_outcomes(current, retag(result.outcomes, current.turn))
            current.processing_duration += result.duration
            if blocker is None:
                current.status = PlanStatus.COMPLETED
                current.completed_at = utc_now()
                current.clarification = None
            return current

        # Reconciliation is only valid for the turn it read; a newer turn
        # surfaces as a conflict instead of being overwritten.
        plan = await self._persist(plan_id, plan.turn, apply, reapply=False)
        if blocker is not None and plan.status != PlanStatus.FAILED:
            logger.info(f"Plan {plan_id} not finalized: {blocker}")
            raise InvalidStateError(f"Cannot finalize plan {plan_id}: {blocker}")
        logger.info(f"Plan {plan_id}: -> {plan.status.value}")
        return plan

    async def _persist(
        self,
        plan_id: str,
        expected_turn: int,
        apply: Callable[[Plan], Plan],
        reapply: bool = True,
    ) -> Plan:
        """Commit a mutation; an unexpected fault fails the plan instead of escaping."""
        try:
            return await self._commit(plan_id, expected_turn, apply, reapply)
        except CALLER_ERRORS:
            raise
        except Exception as e:
            logger.exception(f"Internal fault while saving plan {plan_id}: {e!s}")
            return self._record_failure(plan_id, e)

    async def _commit(
        self,
        plan_id: str,
        expected_turn: int,
        apply: Callable[[Plan], Plan],
        reapply: bool = True,
    ) -> Plan:
        expected = expected_turn
        attempts = self.settings.max_write_attempts if reapply else 1
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_random(min=0, max=0.05),
            retry=retry_if_exception_type(ConcurrentModificationError),
            before_sleep=_log_write_conflict,
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    expected = self.store.get(plan_id).turn
                plan = self.store.update(plan_id, apply, expected)
        return plan

    def _abort(self, plan_id: str, error: Exception) -> Plan:
        """Fail the plan after a fault escaped specialist dispatch."""
        logger.exception(f"Dispatch for plan {plan_id} aborted: {error!s}")
        return self._record_failure(plan_id, error)

    def _record_failure(self, plan_id: str, error: Exception) -> Plan:
        current = self.store.get(plan_id)
        if current.status.is_terminal:
            raise error

        def fail(plan: Plan) -> Plan:
            plan.status = PlanStatus.FAILED
            plan.clarification = None
            plan.error = PlanError(code="internal_error", message=str(error))
            return plan

        return self.store.update(plan_id, fail, current.turn)

    def _describe(self, plan: Plan) -> str:
        if plan.status == PlanStatus.FAILED:
            return plan.error.message if plan.error else "Planning failed"
        if plan.status == PlanStatus.AWAITING_USER_INPUT:
            return plan.clarification or "Waiting for more details"
        ready = len(plan.contributions)
        return f"{ready} of {len(SpecialistKind)} plan sections ready"
