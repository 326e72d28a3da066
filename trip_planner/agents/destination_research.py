"""
Destination Research specialist for the trip planner system.

Collects practical notes about the destination from the knowledge
collaborator.
"""

from trip_planner.agents.base import AgentConfig, contribution, specialist_run
from trip_planner.agents.brief import build_brief
from trip_planner.data.models import PlanContext, SpecialistKind, SpecialistOutcome
from trip_planner.services.knowledge_base import KnowledgeSource
from trip_planner.utils.error_handling import SpecialistError
from trip_planner.utils.logging import AgentLogger


class DestinationResearchAgent:
    """
    Specialist for destination facts.

    Notes are retrieved with a free-text query built from the destination and
    the traveler's interests, so a change of interests refreshes them.
    """

    kind = SpecialistKind.DESTINATION

    def __init__(self, knowledge: KnowledgeSource, config: AgentConfig | None = None):
        self.knowledge = knowledge
        self.config = config or AgentConfig(
            name="Destination Research",
            description="Gathers practical facts about the destination",
            max_options=5,
        )
        self.logger = AgentLogger(self.config.name)

    @property
    def name(self) -> str:
        return self.config.name

    @specialist_run
    async def run(self, context: PlanContext) -> SpecialistOutcome:
        brief = build_brief(context.texts)
        if not brief.destination:
            raise SpecialistError("No destination stated; nothing to research")

        query = f"Travel tips for {brief.destination}"
        if brief.interests:
            query += f" for travelers interested in {', '.join(brief.interests)}"
        passages = await self.knowledge.retrieve(query, limit=self.config.max_options)

        notes = [
            {"title": p.get("title", ""), "text": p.get("text", "")} for p in passages
        ]
        summary = (
            f"{len(notes)} notes on {brief.destination}"
            if notes
            else f"No notes available for {brief.destination}"
        )
        return contribution(
            self.kind,
            context,
            data={"destination": brief.destination, "query": query, "notes": notes},
            summary=summary,
        )
