"""
Activity Planning specialist for the trip planner system.

Picks things to do at the destination, favouring the interests the user has
mentioned, and sizes the selection to the length of the trip.
"""

from typing import Any

from trip_planner.agents.base import AgentConfig, contribution, specialist_run
from trip_planner.agents.brief import TripBrief, build_brief
from trip_planner.data.models import PlanContext, SpecialistKind, SpecialistOutcome
from trip_planner.services.travel_data import TravelDataSource
from trip_planner.utils.error_handling import SpecialistError
from trip_planner.utils.logging import AgentLogger

ACTIVITIES_PER_DAY = 2


class ActivityPlanningAgent:
    """Specialist for activities and attractions."""

    kind = SpecialistKind.ACTIVITIES

    def __init__(self, travel_data: TravelDataSource, config: AgentConfig | None = None):
        self.travel_data = travel_data
        self.config = config or AgentConfig(
            name="Activity Planning",
            description="Selects activities matched to the traveler's interests",
        )
        self.logger = AgentLogger(self.config.name)

    @property
    def name(self) -> str:
        return self.config.name

    @specialist_run
    async def run(self, context: PlanContext) -> SpecialistOutcome:
        brief = build_brief(context.texts)
        if not brief.destination:
            raise SpecialistError("No destination stated; cannot plan activities")

        results = await self.travel_data.search_activities(
            brief.destination, interests=brief.interests or None
        )
        if not results:
            raise SpecialistError(f"No activities found in {brief.destination}")

        selected = self._select(results, brief)
        per_person = sum(float(a.get("price", 0)) for a in selected)
        total_cost = per_person * brief.travelers

        return contribution(
            self.kind,
            context,
            data={
                "destination": brief.destination,
                "interests": brief.interests,
                "selected": selected,
                "total_cost": total_cost,
                "currency": brief.currency,
            },
            summary=(
                f"{len(selected)} activities in {brief.destination} "
                f"for {total_cost:.0f} {brief.currency}"
            ),
        )

    def _select(self, results: list[dict[str, Any]], brief: TripBrief) -> list[dict[str, Any]]:
        limit = brief.trip_days * ACTIVITIES_PER_DAY
        # Stable sort keeps catalog order within each group
        ranked = sorted(
            results, key=lambda a: 0 if a.get("category") in brief.interests else 1
        )
        return ranked[:limit]
