"""
Merging specialist outcomes into a plan.

Contributions are accepted per kind on a last-writer-wins basis keyed by
turn; failures become warnings and leave the previous contribution in
place. Outcomes are applied in the fixed kind order so the merge is
deterministic.
"""

from collections.abc import Mapping

from trip_planner.data.models import (
    Contribution,
    Failure,
    Plan,
    PlanStatus,
    PlanWarning,
    SpecialistKind,
    SpecialistOutcome,
)
from trip_planner.utils.error_handling import StaleContributionError
from trip_planner.utils.logging import get_logger

logger = get_logger(__name__)


def is_accepted(plan: Plan, contribution: Contribution) -> bool:
    """Whether the plan would accept the contribution."""
    if contribution.turn < plan.turn:
        return False
    existing = plan.contribution(contribution.kind)
    return existing is None or contribution.turn >= existing.turn


def accept_contribution(plan: Plan, contribution: Contribution) -> None:
    """
    Store a contribution on the plan.

    Raises:
        StaleContributionError: If the contribution was computed for an older turn
    """
    if not is_accepted(plan, contribution):
        existing = plan.contribution(contribution.kind)
        latest = max(plan.turn, existing.turn if existing else 0)
        raise StaleContributionError(
            f"Rejected {contribution.kind.value} contribution for turn "
            f"{contribution.turn}; plan is at turn {latest}"
        )
    plan.contributions[contribution.kind] = contribution


def retag(
    outcomes: Mapping[SpecialistKind, SpecialistOutcome], turn: int
) -> dict[SpecialistKind, SpecialistOutcome]:
    """Copies of the outcomes tagged with the turn they are merged into."""
    return {
        kind: outcome.model_copy(update={"turn": turn})
        for kind, outcome in outcomes.items()
    }


def pending_clarification(plan: Plan) -> str | None:
    """Questions raised by the plan's current contributions, in kind order."""
    questions = [
        contribution.clarification
        for kind in SpecialistKind
        if (contribution := plan.contribution(kind)) and contribution.clarification
    ]
    return "\n".join(questions) if questions else None


def merge_outcomes(
    plan: Plan, outcomes: Mapping[SpecialistKind, SpecialistOutcome]
) -> Plan:
    """
    Apply a request's outcomes to the plan in place.

    Contributions replace the kind's previous value; failures are recorded
    as warnings. A non-terminal plan then moves to awaiting_user_input if any
    current contribution asks the user a question, and to in_progress
    otherwise.

    Raises:
        StaleContributionError: If any contribution is older than the plan
    """
    for kind in SpecialistKind:
        outcome = outcomes.get(kind)
        if outcome is None:
            continue
        if isinstance(outcome, Failure):
            plan.warnings.append(
                PlanWarning(
                    kind=kind,
                    turn=outcome.turn,
                    message=outcome.reason,
                    retryable=outcome.retryable,
                )
            )
            logger.info(f"Absorbed {kind.value} failure on plan {plan.plan_id}")
        else:
            accept_contribution(plan, outcome)

    if not plan.status.is_terminal:
        plan.clarification = pending_clarification(plan)
        plan.status = (
            PlanStatus.AWAITING_USER_INPUT
            if plan.clarification
            else PlanStatus.IN_PROGRESS
        )
    return plan
