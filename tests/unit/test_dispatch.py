"""Tests for parallel specialist dispatch."""

import asyncio
import time

import pytest

from trip_planner.data.models import Contribution, Failure, PlanStatus, SpecialistKind
from trip_planner.orchestration.dispatch import Dispatcher
from trip_planner.orchestration.registry import AgentRegistry, Wave, select

from tests.unit.specialist_doubles import ScriptedAgent, fail, ok

FLIGHTS = SpecialistKind.FLIGHTS
HOTELS = SpecialistKind.HOTELS
BUDGET = SpecialistKind.BUDGET


def _dispatcher(agents, settings):
    return Dispatcher(AgentRegistry(agents), settings)


async def test_wave_runs_specialists_concurrently(make_context, settings):
    agents = [ScriptedAgent(kind, delay=0.2) for kind in (FLIGHTS, HOTELS)]
    dispatcher = _dispatcher(agents, settings)

    started = time.monotonic()
    outcomes = await dispatcher.run_wave(Wave(1, (FLIGHTS, HOTELS)), make_context())

    assert time.monotonic() - started < 0.35
    assert set(outcomes) == {FLIGHTS, HOTELS}
    assert dispatcher.dispatch_count == 2


async def test_second_wave_sees_first_wave_outputs(make_context, scripted_agents, settings):
    dispatcher = _dispatcher(scripted_agents.values(), settings)

    result = await dispatcher.run_waves(select(PlanStatus.PENDING, 0), make_context())

    budget_context = scripted_agents[BUDGET].calls[0]
    assert budget_context.contribution(FLIGHTS) is not None
    assert budget_context.contribution(HOTELS) is not None
    assert set(result.contributions) == set(SpecialistKind)
    assert result.duration >= 0


async def test_gated_wave_skipped_without_contributions(make_context, scripted_agents, settings):
    for kind in (FLIGHTS, HOTELS, SpecialistKind.ACTIVITIES, SpecialistKind.DESTINATION):
        scripted_agents[kind].script = lambda context, kind=kind: fail(kind, context)
    dispatcher = _dispatcher(scripted_agents.values(), settings)

    result = await dispatcher.run_waves(select(PlanStatus.PENDING, 0), make_context())

    assert result.skipped_waves == [2]
    assert scripted_agents[BUDGET].calls == []
    assert len(result.failures) == 4


async def test_gated_wave_runs_on_prior_contributions(make_context, scripted_agents, settings):
    prior = Contribution(kind=FLIGHTS, turn=0, data={"total_cost": 640.0})
    dispatcher = _dispatcher(scripted_agents.values(), settings)
    waves = [Wave(2, (BUDGET,), requires=(FLIGHTS, HOTELS))]

    result = await dispatcher.run_waves(
        waves, make_context(inputs=["more"], contributions={FLIGHTS: prior})
    )

    assert isinstance(result.outcomes[BUDGET], Contribution)


async def test_timeout_becomes_retryable_failure(make_context, settings):
    settings.specialist_timeouts["hotels"] = 0.05
    settings.specialist_max_attempts = 1
    dispatcher = _dispatcher([ScriptedAgent(HOTELS, delay=1.0)], settings)

    outcomes = await dispatcher.run_wave(Wave(1, (HOTELS,)), make_context())

    outcome = outcomes[HOTELS]
    assert isinstance(outcome, Failure)
    assert outcome.retryable
    assert "Timed out" in outcome.reason


async def test_retryable_failure_is_retried(make_context, settings):
    agent = ScriptedAgent(
        FLIGHTS,
        script=[
            lambda context: fail(FLIGHTS, context, retryable=True),
            lambda context: ok(FLIGHTS, context),
        ],
    )
    dispatcher = _dispatcher([agent], settings)

    outcomes = await dispatcher.run_wave(Wave(1, (FLIGHTS,)), make_context())

    assert isinstance(outcomes[FLIGHTS], Contribution)
    assert len(agent.calls) == 2
    assert dispatcher.dispatch_count == 2


async def test_retries_are_bounded(make_context, settings):
    settings.specialist_max_attempts = 3
    agent = ScriptedAgent(FLIGHTS, script=lambda context: fail(FLIGHTS, context, retryable=True))
    dispatcher = _dispatcher([agent], settings)

    outcomes = await dispatcher.run_wave(Wave(1, (FLIGHTS,)), make_context())

    assert isinstance(outcomes[FLIGHTS], Failure)
    assert len(agent.calls) == 3


async def test_non_retryable_failure_is_not_retried(make_context, settings):
    agent = ScriptedAgent(FLIGHTS, script=lambda context: fail(FLIGHTS, context))
    dispatcher = _dispatcher([agent], settings)

    await dispatcher.run_wave(Wave(1, (FLIGHTS,)), make_context())

    assert len(agent.calls) == 1


async def test_escaping_exception_becomes_failure(make_context, settings):
    def explode(context):
        raise RuntimeError("kaboom")

    dispatcher = _dispatcher([ScriptedAgent(HOTELS, script=explode)], settings)

    outcomes = await dispatcher.run_wave(Wave(1, (HOTELS,)), make_context())

    assert isinstance(outcomes[HOTELS], Failure)
    assert not outcomes[HOTELS].retryable
    assert "kaboom" in outcomes[HOTELS].reason


async def test_outcome_of_wrong_kind_is_rejected(make_context, settings):
    agent = ScriptedAgent(HOTELS, script=lambda context: ok(FLIGHTS, context))
    dispatcher = _dispatcher([agent], settings)

    outcomes = await dispatcher.run_wave(Wave(1, (HOTELS,)), make_context())

    assert isinstance(outcomes[HOTELS], Failure)


async def test_one_failure_does_not_cancel_the_wave(make_context, settings):
    agents = [
        ScriptedAgent(FLIGHTS, script=lambda context: fail(FLIGHTS, context)),
        ScriptedAgent(HOTELS, delay=0.05),
    ]
    dispatcher = _dispatcher(agents, settings)

    outcomes = await dispatcher.run_wave(Wave(1, (FLIGHTS, HOTELS)), make_context())

    assert isinstance(outcomes[FLIGHTS], Failure)
    assert isinstance(outcomes[HOTELS], Contribution)


async def test_cancellation_propagates(make_context, settings):
    dispatcher = _dispatcher([ScriptedAgent(HOTELS, delay=0.5)], settings)
    task = asyncio.create_task(dispatcher.run_wave(Wave(1, (HOTELS,)), make_context()))
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


async def test_unregistered_kind_becomes_failure(make_context, settings):
    dispatcher = _dispatcher([ScriptedAgent(FLIGHTS)], settings)

    outcomes = await dispatcher.run_wave(Wave(1, (FLIGHTS, HOTELS)), make_context())

    assert isinstance(outcomes[FLIGHTS], Contribution)
    assert isinstance(outcomes[HOTELS], Failure)
    assert not outcomes[HOTELS].retryable
    assert "hotels" in outcomes[HOTELS].reason
    assert dispatcher.dispatch_count == 1
