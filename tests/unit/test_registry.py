"""Tests for wave selection and the agent registry."""

import pytest

from trip_planner.data.models import FIRST_WAVE, SECOND_WAVE, PlanStatus, SpecialistKind
from trip_planner.orchestration.registry import (
    AgentRegistry,
    build_default_agents,
    reconciliation_waves,
    select,
)

from tests.unit.specialist_doubles import ScriptedAgent


def test_start_runs_both_waves():
    waves = select(PlanStatus.PENDING, 0)
    assert [w.number for w in waves] == [1, 2]
    assert waves[0].kinds == FIRST_WAVE
    assert waves[0].requires == ()
    assert waves[1].kinds == SECOND_WAVE
    assert waves[1].requires == FIRST_WAVE


def test_continue_runs_affected_kinds_in_fixed_order():
    waves = select(
        PlanStatus.IN_PROGRESS,
        2,
        {SpecialistKind.DESTINATION, SpecialistKind.FLIGHTS},
    )
    assert waves[0].kinds == (SpecialistKind.FLIGHTS, SpecialistKind.DESTINATION)
    assert waves[1].kinds == SECOND_WAVE


def test_continue_without_affected_kinds_still_reruns_budget_and_itinerary():
    waves = select(PlanStatus.AWAITING_USER_INPUT, 1, set())
    assert len(waves) == 1
    assert waves[0].kinds == SECOND_WAVE


def test_second_wave_kinds_are_not_doubled():
    waves = select(PlanStatus.IN_PROGRESS, 1, {SpecialistKind.BUDGET})
    assert [w.kinds for w in waves] == [SECOND_WAVE]


@pytest.mark.parametrize("status", [PlanStatus.COMPLETED, PlanStatus.FAILED])
def test_terminal_plans_select_nothing(status):
    assert select(status, 3, set(FIRST_WAVE)) == []


def test_reconciliation_waves():
    waves = reconciliation_waves()
    assert len(waves) == 1
    assert waves[0].kinds == (SpecialistKind.BUDGET, SpecialistKind.ITINERARY)


def test_registry_lookup():
    agent = ScriptedAgent(SpecialistKind.HOTELS)
    registry = AgentRegistry([agent])
    assert registry.get(SpecialistKind.HOTELS) is agent
    assert SpecialistKind.HOTELS in registry
    with pytest.raises(KeyError):
        registry.get(SpecialistKind.FLIGHTS)


def test_register_replaces_existing_agent():
    registry = AgentRegistry([ScriptedAgent(SpecialistKind.BUDGET)])
    replacement = ScriptedAgent(SpecialistKind.BUDGET)
    registry.register(replacement)
    assert registry.get(SpecialistKind.BUDGET) is replacement


def test_default_agents_cover_every_kind(travel_data, knowledge, settings):
    registry = build_default_agents(travel_data, knowledge, settings)
    assert registry.kinds == tuple(SpecialistKind)
