"""Tests for merging specialist outcomes into a plan."""

import pytest

from trip_planner.data.models import (
    Contribution,
    Failure,
    PlanStatus,
    SpecialistKind,
)
from trip_planner.orchestration.merge import (
    accept_contribution,
    is_accepted,
    merge_outcomes,
    pending_clarification,
    retag,
)
from trip_planner.utils.error_handling import StaleContributionError

FLIGHTS = SpecialistKind.FLIGHTS
HOTELS = SpecialistKind.HOTELS
BUDGET = SpecialistKind.BUDGET


def _contribution(kind, turn, **kwargs):
    return Contribution(kind=kind, turn=turn, summary=f"{kind.value}@{turn}", **kwargs)


@pytest.fixture
def in_progress(plan):
    plan.status = PlanStatus.IN_PROGRESS
    return plan


def test_newer_turn_replaces_contribution(in_progress):
    accept_contribution(in_progress, _contribution(FLIGHTS, 0))
    in_progress.turn = 1
    accept_contribution(in_progress, _contribution(FLIGHTS, 1))
    assert in_progress.contribution(FLIGHTS).turn == 1


def test_same_turn_is_last_writer_wins(in_progress):
    accept_contribution(in_progress, _contribution(FLIGHTS, 0, data={"v": 1}))
    accept_contribution(in_progress, _contribution(FLIGHTS, 0, data={"v": 2}))
    assert in_progress.contribution(FLIGHTS).data == {"v": 2}


def test_older_turn_is_rejected_after_newer_write(in_progress):
    in_progress.turn = 3
    accept_contribution(in_progress, _contribution(HOTELS, 3))

    stale = _contribution(HOTELS, 2)
    assert not is_accepted(in_progress, stale)
    with pytest.raises(StaleContributionError):
        accept_contribution(in_progress, stale)
    assert in_progress.contribution(HOTELS).turn == 3


def test_contribution_below_plan_turn_is_rejected(in_progress):
    in_progress.turn = 2
    with pytest.raises(StaleContributionError):
        accept_contribution(in_progress, _contribution(BUDGET, 1))
    assert in_progress.contribution(BUDGET) is None


def test_kinds_are_independent(in_progress):
    in_progress.turn = 1
    accept_contribution(in_progress, _contribution(FLIGHTS, 1))
    assert is_accepted(in_progress, _contribution(HOTELS, 1))


def test_failure_keeps_previous_value_and_records_warning(in_progress):
    previous = _contribution(HOTELS, 0)
    in_progress.contributions[HOTELS] = previous
    in_progress.turn = 1

    merge_outcomes(
        in_progress,
        {HOTELS: Failure(kind=HOTELS, turn=1, reason="upstream down", retryable=True)},
    )

    assert in_progress.contribution(HOTELS) == previous
    assert len(in_progress.warnings) == 1
    warning = in_progress.warnings[0]
    assert warning.kind == HOTELS
    assert warning.turn == 1
    assert warning.retryable


def test_clarification_moves_plan_to_awaiting(in_progress):
    merge_outcomes(
        in_progress,
        {
            FLIGHTS: _contribution(FLIGHTS, 0),
            BUDGET: _contribution(BUDGET, 0, clarification="What is your budget?"),
        },
    )
    assert in_progress.status == PlanStatus.AWAITING_USER_INPUT
    assert in_progress.clarification == "What is your budget?"


def test_answered_clarification_returns_to_in_progress(in_progress):
    in_progress.status = PlanStatus.AWAITING_USER_INPUT
    in_progress.contributions[BUDGET] = _contribution(
        BUDGET, 0, clarification="What is your budget?"
    )
    in_progress.turn = 1

    merge_outcomes(in_progress, {BUDGET: _contribution(BUDGET, 1)})

    assert in_progress.status == PlanStatus.IN_PROGRESS
    assert in_progress.clarification is None


def test_pending_plan_moves_to_in_progress(plan):
    merge_outcomes(plan, {FLIGHTS: _contribution(FLIGHTS, 0)})
    assert plan.status == PlanStatus.IN_PROGRESS


def test_terminal_status_is_left_alone(in_progress):
    in_progress.status = PlanStatus.COMPLETED
    merge_outcomes(in_progress, {BUDGET: _contribution(BUDGET, 0, clarification="?")})
    assert in_progress.status == PlanStatus.COMPLETED


def test_merge_applies_kinds_in_fixed_order(in_progress):
    outcomes = {
        BUDGET: Failure(kind=BUDGET, turn=0, reason="b"),
        FLIGHTS: Failure(kind=FLIGHTS, turn=0, reason="f"),
        HOTELS: Failure(kind=HOTELS, turn=0, reason="h"),
    }
    merge_outcomes(in_progress, outcomes)
    assert [w.kind for w in in_progress.warnings] == [FLIGHTS, HOTELS, BUDGET]


def test_retag_moves_outcomes_to_a_new_turn():
    outcomes = {
        FLIGHTS: _contribution(FLIGHTS, 1),
        HOTELS: Failure(kind=HOTELS, turn=1, reason="down"),
    }
    retagged = retag(outcomes, 2)
    assert {o.turn for o in retagged.values()} == {2}
    assert outcomes[FLIGHTS].turn == 1


def test_pending_clarification_joins_questions(in_progress):
    in_progress.contributions[HOTELS] = _contribution(HOTELS, 0, clarification="Which area?")
    in_progress.contributions[BUDGET] = _contribution(BUDGET, 0, clarification="Budget?")
    assert pending_clarification(in_progress) == "Which area?\nBudget?"
