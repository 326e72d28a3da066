"""
Specialist agents for the trip planner system.

Each specialist is an independent class exposing a `kind` and an async
`run(context)` that returns a Contribution or a Failure.
"""

from trip_planner.agents.accommodation import AccommodationAgent
from trip_planner.agents.activity_planning import ActivityPlanningAgent
from trip_planner.agents.base import AgentConfig, SpecialistAgent
from trip_planner.agents.brief import TripBrief, build_brief
from trip_planner.agents.budget_management import BudgetManagementAgent
from trip_planner.agents.destination_research import DestinationResearchAgent
from trip_planner.agents.flight_search import FlightSearchAgent
from trip_planner.agents.itinerary import ItineraryAgent

__all__ = [
    "AccommodationAgent",
    "ActivityPlanningAgent",
    "AgentConfig",
    "BudgetManagementAgent",
    "DestinationResearchAgent",
    "FlightSearchAgent",
    "ItineraryAgent",
    "SpecialistAgent",
    "TripBrief",
    "build_brief",
]
