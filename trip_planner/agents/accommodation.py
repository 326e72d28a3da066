"""
Accommodation specialist for the trip planner system.

Selects lodging for the length of the stay, preferring the hotel style the
user asked for and otherwise the best rating per unit of price.
"""

from typing import Any

from trip_planner.agents.base import AgentConfig, contribution, specialist_run
from trip_planner.agents.brief import build_brief
from trip_planner.data.models import PlanContext, SpecialistKind, SpecialistOutcome
from trip_planner.services.travel_data import TravelDataSource
from trip_planner.utils.error_handling import SpecialistError
from trip_planner.utils.logging import AgentLogger


class AccommodationAgent:
    """Specialist for lodging at the destination."""

    kind = SpecialistKind.HOTELS

    def __init__(self, travel_data: TravelDataSource, config: AgentConfig | None = None):
        self.travel_data = travel_data
        self.config = config or AgentConfig(
            name="Accommodation",
            description="Chooses lodging that matches the stated hotel style",
        )
        self.logger = AgentLogger(self.config.name)

    @property
    def name(self) -> str:
        return self.config.name

    @specialist_run
    async def run(self, context: PlanContext) -> SpecialistOutcome:
        brief = build_brief(context.texts)
        if not brief.destination:
            raise SpecialistError("No destination stated; cannot search hotels")

        results = await self.travel_data.search_hotels(
            brief.destination, nights=brief.nights, style=brief.hotel_style
        )
        if not results:
            raise SpecialistError(f"No hotels found in {brief.destination}")

        options = self._rank(results, brief.hotel_style)[: self.config.max_options]
        selected = options[0]
        # Rooms are shared by two travelers
        rooms = (brief.travelers + 1) // 2
        total_cost = float(selected["nightly_rate"]) * brief.nights * rooms

        style_note = ""
        if brief.hotel_style and selected.get("style") != brief.hotel_style:
            style_note = f" (no {brief.hotel_style} option available)"

        return contribution(
            self.kind,
            context,
            data={
                "destination": brief.destination,
                "nights": brief.nights,
                "rooms": rooms,
                "requested_style": brief.hotel_style,
                "options": options,
                "selected": selected,
                "total_cost": total_cost,
                "currency": brief.currency,
            },
            summary=(
                f"{selected['name']} in {selected.get('neighborhood', brief.destination)}, "
                f"{brief.nights} nights for {total_cost:.0f} {brief.currency}{style_note}"
            ),
        )

    def _rank(
        self, results: list[dict[str, Any]], style: str | None
    ) -> list[dict[str, Any]]:
        def value(hotel: dict[str, Any]) -> float:
            return float(hotel.get("rating", 0)) / max(float(hotel["nightly_rate"]), 1.0)

        ranked = sorted(results, key=value, reverse=True)
        if style:
            matching = [h for h in ranked if h.get("style") == style]
            ranked = matching + [h for h in ranked if h.get("style") != style]
        return ranked
