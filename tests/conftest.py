"""
Pytest configuration for the Trip Planner system tests.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from trip_planner.config import SPECIALIST_KINDS, OrchestratorConfig
from trip_planner.data.models import Plan, PlanContext, SpecialistKind
from trip_planner.data.plan_store import InMemoryPlanStore
from trip_planner.orchestration.classification import KeywordAspectClassifier
from trip_planner.orchestration.orchestrator import TripOrchestrator
from trip_planner.orchestration.registry import AgentRegistry, build_default_agents
from trip_planner.services.knowledge_base import StaticKnowledgeBase
from trip_planner.services.travel_data import StaticTravelData
from trip_planner.utils import LogLevel, setup_logging

from tests.unit.specialist_doubles import ScriptedAgent


@pytest.fixture(scope="session", autouse=True)
def setup_test_logging():
    """Set up logging for tests."""
    setup_logging(LogLevel.DEBUG)


@pytest.fixture
def settings():
    """Orchestrator settings without backoff delays."""
    return OrchestratorConfig(
        specialist_timeouts=dict.fromkeys(SPECIALIST_KINDS, 1.0),
        specialist_max_attempts=2,
        specialist_retry_min_wait=0.0,
        specialist_retry_max_wait=0.0,
        max_write_attempts=3,
    )


@pytest.fixture
def store():
    return InMemoryPlanStore()


@pytest.fixture
def travel_data():
    return StaticTravelData()


@pytest.fixture
def knowledge():
    return StaticKnowledgeBase()


@pytest.fixture
def scripted_agents():
    """One ScriptedAgent per kind, all succeeding."""
    return {kind: ScriptedAgent(kind) for kind in SpecialistKind}


@pytest.fixture
def scripted_registry(scripted_agents):
    return AgentRegistry(scripted_agents.values())


@pytest.fixture
def orchestrator(store, scripted_registry, settings):
    """Orchestrator over scripted specialists and an in-memory store."""
    return TripOrchestrator(
        store=store,
        agents=scripted_registry,
        classifier=KeywordAspectClassifier(),
        settings=settings,
    )


@pytest.fixture
def live_orchestrator(store, travel_data, knowledge, settings):
    """Orchestrator over the real specialists and static catalogs."""
    return TripOrchestrator(
        store=store,
        agents=build_default_agents(travel_data, knowledge, settings),
        classifier=KeywordAspectClassifier(),
        settings=settings,
    )


@pytest.fixture
def make_context():
    """Build a PlanContext from a goal, inputs and prior contributions."""

    def _make(goal="5-day Paris trip, $3000 budget", inputs=(), contributions=None, turn=None):
        return PlanContext(
            plan_id="plan-test",
            goal=goal,
            turn=len(inputs) if turn is None else turn,
            inputs=tuple(inputs),
            contributions=contributions or {},
        )

    return _make


@pytest.fixture
def plan():
    return Plan(plan_id="plan-test", user_id="user-1", goal="5-day Paris trip")


@pytest.fixture
def mock_gemini_client():
    """Mock Gemini client for testing."""
    mock_client = MagicMock()

    mock_response = MagicMock()
    mock_response.text = '["hotels"]'

    mock_client.aio = MagicMock()
    mock_client.aio.models = MagicMock()
    mock_client.aio.models.generate_content = AsyncMock(return_value=mock_response)

    return mock_client
