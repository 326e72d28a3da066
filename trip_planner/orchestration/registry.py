"""
Specialist registry for the trip planner system.

`select` decides which specialists run, in which waves, for a given plan
phase. `AgentRegistry` maps each specialist kind to the instance that
serves it.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from trip_planner.agents.accommodation import AccommodationAgent
from trip_planner.agents.activity_planning import ActivityPlanningAgent
from trip_planner.agents.base import SpecialistAgent
from trip_planner.agents.budget_management import BudgetManagementAgent
from trip_planner.agents.destination_research import DestinationResearchAgent
from trip_planner.agents.flight_search import FlightSearchAgent
from trip_planner.agents.itinerary import ItineraryAgent
from trip_planner.config import OrchestratorConfig
from trip_planner.data.models import FIRST_WAVE, SECOND_WAVE, PlanStatus, SpecialistKind
from trip_planner.services.knowledge_base import KnowledgeSource
from trip_planner.services.travel_data import TravelDataSource
from trip_planner.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Wave:
    """
    A batch of specialists dispatched in parallel.

    When `requires` is set, the wave only runs if the plan holds at least one
    contribution of those kinds once the earlier waves have resolved.
    """

    number: int
    kinds: tuple[SpecialistKind, ...]
    requires: tuple[SpecialistKind, ...] = ()


def _ordered(kinds: Iterable[SpecialistKind]) -> tuple[SpecialistKind, ...]:
    wanted = set(kinds)
    return tuple(kind for kind in SpecialistKind if kind in wanted)


def select(
    status: PlanStatus, turn: int, changed_aspects: Iterable[SpecialistKind] = ()
) -> list[Wave]:
    """
    Ordered waves to dispatch for a plan in the given phase.

    Args:
        status: Current plan status
        turn: Current plan turn
        changed_aspects: First-wave kinds affected by the latest user input

    Returns:
        Waves in dispatch order; empty for terminal plans
    """
    if status.is_terminal:
        return []

    if status == PlanStatus.PENDING and turn == 0:
        first = FIRST_WAVE
    else:
        first = _ordered(k for k in changed_aspects if k in FIRST_WAVE)

    waves = []
    if first:
        waves.append(Wave(number=1, kinds=first))
    waves.append(Wave(number=2, kinds=SECOND_WAVE, requires=FIRST_WAVE))
    return waves


def reconciliation_waves() -> list[Wave]:
    """The final Budget/Itinerary pass run by finalize."""
    return [Wave(number=2, kinds=SECOND_WAVE, requires=FIRST_WAVE)]


class AgentRegistry:
    """
    Central registry for accessing specialist instances.

    Dispatch looks specialists up here, so tests can register doubles for any
    kind.
    """

    def __init__(self, agents: Iterable[SpecialistAgent] = ()):
        self._agents: dict[SpecialistKind, SpecialistAgent] = {}
        for agent in agents:
            self.register(agent)

    def register(self, agent: SpecialistAgent) -> None:
        logger.debug(f"Registering specialist: {agent.kind.value} ({agent.__class__.__name__})")
        self._agents[agent.kind] = agent

    def get(self, kind: SpecialistKind) -> SpecialistAgent:
        """
        Get the specialist serving a kind.

        Raises:
            KeyError: If no specialist is registered for the kind
        """
        if kind not in self._agents:
            raise KeyError(f"No specialist registered for '{kind.value}'")
        return self._agents[kind]

    def __contains__(self, kind: SpecialistKind) -> bool:
        return kind in self._agents

    @property
    def kinds(self) -> tuple[SpecialistKind, ...]:
        return _ordered(self._agents)


def build_default_agents(
    travel_data: TravelDataSource,
    knowledge: KnowledgeSource,
    settings: OrchestratorConfig | None = None,
) -> AgentRegistry:
    """Register all six default specialists."""
    settings = settings or OrchestratorConfig()
    registry = AgentRegistry(
        [
            FlightSearchAgent(travel_data),
            AccommodationAgent(travel_data),
            ActivityPlanningAgent(travel_data),
            DestinationResearchAgent(knowledge),
            BudgetManagementAgent(
                daily_allowance=settings.daily_allowance,
                default_currency=settings.default_currency,
            ),
            ItineraryAgent(),
        ]
    )
    logger.info("Default specialists registered")
    return registry
