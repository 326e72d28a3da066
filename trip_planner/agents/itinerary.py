"""
Itinerary specialist for the trip planner system.

Lays the selected flight, hotel and activities out day by day.
"""

from typing import Any

from trip_planner.agents.activity_planning import ACTIVITIES_PER_DAY
from trip_planner.agents.base import AgentConfig, contribution, specialist_run
from trip_planner.agents.brief import build_brief
from trip_planner.data.models import PlanContext, SpecialistKind, SpecialistOutcome
from trip_planner.utils.error_handling import SpecialistError
from trip_planner.utils.logging import AgentLogger


def _selected(context: PlanContext, kind: SpecialistKind) -> Any:
    found = context.contribution(kind)
    return found.data.get("selected") if found else None


class ItineraryAgent:
    """Specialist that assembles the day-by-day plan."""

    kind = SpecialistKind.ITINERARY

    def __init__(self, config: AgentConfig | None = None):
        self.config = config or AgentConfig(
            name="Itinerary",
            description="Builds a day-by-day schedule from the other contributions",
        )
        self.logger = AgentLogger(self.config.name)

    @property
    def name(self) -> str:
        return self.config.name

    @specialist_run
    async def run(self, context: PlanContext) -> SpecialistOutcome:
        brief = build_brief(context.texts)
        if not brief.destination:
            raise SpecialistError("No destination stated; cannot build an itinerary")

        flight = _selected(context, SpecialistKind.FLIGHTS)
        hotel = _selected(context, SpecialistKind.HOTELS)
        activities = list(_selected(context, SpecialistKind.ACTIVITIES) or [])

        days = []
        for number in range(1, brief.trip_days + 1):
            day: dict[str, Any] = {"day": number, "activities": []}
            if number == 1:
                day["title"] = f"Arrive in {brief.destination}"
                if flight:
                    day["arrival"] = f"{flight['airline']} lands at {flight.get('arrive', 'TBD')}"
                if hotel:
                    day["check_in"] = hotel["name"]
            elif number == brief.trip_days:
                day["title"] = f"Depart {brief.destination}"
            else:
                day["title"] = f"Explore {brief.destination}"

            # Arrival and departure days hold one activity
            slots = 1 if number in (1, brief.trip_days) else ACTIVITIES_PER_DAY
            day["activities"] = [a["name"] for a in activities[:slots]]
            activities = activities[slots:]
            days.append(day)

        return contribution(
            self.kind,
            context,
            data={
                "destination": brief.destination,
                "hotel": hotel["name"] if hotel else None,
                "flight": flight["id"] if flight else None,
                "days": days,
                "unscheduled": [a["name"] for a in activities],
            },
            summary=f"{len(days)}-day itinerary for {brief.destination}",
        )
