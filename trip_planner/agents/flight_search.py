"""
Flight Search specialist for the trip planner system.

Finds round-trip options to the destination through the travel-data
collaborator and selects the one that best fits the brief.
"""

from typing import Any

from trip_planner.agents.base import AgentConfig, contribution, specialist_run
from trip_planner.agents.brief import build_brief
from trip_planner.data.models import PlanContext, SpecialistKind, SpecialistOutcome
from trip_planner.services.travel_data import TravelDataSource
from trip_planner.utils.error_handling import SpecialistError
from trip_planner.utils.logging import AgentLogger


class FlightSearchAgent:
    """
    Specialist for transportation to and from the destination.

    This agent is responsible for:
    1. Querying flight inventory for the destination
    2. Honouring nonstop preferences stated by the user
    3. Ranking options by price and duration
    4. Reporting the selected fare for all travelers
    """

    kind = SpecialistKind.FLIGHTS

    def __init__(self, travel_data: TravelDataSource, config: AgentConfig | None = None):
        self.travel_data = travel_data
        self.config = config or AgentConfig(
            name="Flight Search",
            description="Finds and ranks round-trip flights to the destination",
        )
        self.logger = AgentLogger(self.config.name)

    @property
    def name(self) -> str:
        return self.config.name

    @specialist_run
    async def run(self, context: PlanContext) -> SpecialistOutcome:
        brief = build_brief(context.texts)
        if not brief.destination:
            raise SpecialistError("No destination stated; cannot search flights")

        self.logger.log_api_request(
            "travel_data", "flights", {"destination": brief.destination}
        )
        results = await self.travel_data.search_flights(
            brief.destination, origin=brief.origin, travelers=brief.travelers
        )
        if brief.nonstop_only:
            nonstop = [r for r in results if r.get("nonstop")]
            results = nonstop or results
        if not results:
            raise SpecialistError(f"No flights found to {brief.destination}")

        options = self._rank(results)[: self.config.max_options]
        selected = options[0]
        total_cost = float(selected["price"]) * brief.travelers

        return contribution(
            self.kind,
            context,
            data={
                "destination": brief.destination,
                "origin": brief.origin,
                "travelers": brief.travelers,
                "options": options,
                "selected": selected,
                "total_cost": total_cost,
                "currency": brief.currency,
            },
            summary=(
                f"{selected['airline']} to {brief.destination} for "
                f"{total_cost:.0f} {brief.currency} "
                f"({'nonstop' if selected.get('nonstop') else 'with connection'})"
            ),
        )

    def _rank(self, results: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Cheapest first, shorter trip breaks ties."""
        return sorted(
            results,
            key=lambda r: (float(r.get("price", 0)), r.get("duration_minutes", 0)),
        )
