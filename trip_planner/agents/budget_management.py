"""
Budget Management specialist for the trip planner system.

This module implements the specialist that totals the costs reported by the
flight, hotel and activity specialists, adds a daily allowance for food and
local transport, and checks the total against the user's stated budget.
"""

from dataclasses import dataclass
from enum import Enum

from trip_planner.agents.base import AgentConfig, contribution, cost_of, specialist_run
from trip_planner.agents.brief import build_brief
from trip_planner.data.models import PlanContext, SpecialistKind, SpecialistOutcome
from trip_planner.utils.error_handling import SpecialistError
from trip_planner.utils.logging import AgentLogger


class ExpenseCategory(str, Enum):
    """Categories of travel expenses."""

    FLIGHTS = "flights"
    ACCOMMODATION = "accommodation"
    ACTIVITIES = "activities"
    DAILY = "daily"


@dataclass
class BudgetItem:
    """A single line of the breakdown."""

    category: ExpenseCategory
    amount: float
    currency: str

    @property
    def formatted_amount(self) -> str:
        """Get the formatted amount with currency symbol."""
        if self.currency == "USD":
            return f"${self.amount:.2f}"
        elif self.currency == "EUR":
            return f"€{self.amount:.2f}"
        else:
            return f"{self.amount:.2f} {self.currency}"


class BudgetManagementAgent:
    """
    Specialist for trip costs.

    The agent is responsible for:
    1. Building a cost breakdown from the other specialists' contributions
    2. Comparing the total against the stated budget
    3. Asking the user for a budget, or for a trade-off, when it cannot settle one
    """

    kind = SpecialistKind.BUDGET

    def __init__(
        self,
        daily_allowance: float = 70.0,
        default_currency: str = "USD",
        config: AgentConfig | None = None,
    ):
        self.daily_allowance = daily_allowance
        self.default_currency = default_currency
        self.config = config or AgentConfig(
            name="Budget Management",
            description="Totals trip costs and enforces the stated budget",
        )
        self.logger = AgentLogger(self.config.name)

    @property
    def name(self) -> str:
        return self.config.name

    @specialist_run
    async def run(self, context: PlanContext) -> SpecialistOutcome:
        flights = cost_of(context, SpecialistKind.FLIGHTS)
        hotels = cost_of(context, SpecialistKind.HOTELS)
        if flights is None and hotels is None:
            raise SpecialistError("No flight or hotel costs to budget against")

        brief = build_brief(context.texts)
        currency = brief.currency if brief.budget is not None else self.default_currency
        items = [
            BudgetItem(ExpenseCategory.FLIGHTS, flights or 0.0, currency),
            BudgetItem(ExpenseCategory.ACCOMMODATION, hotels or 0.0, currency),
            BudgetItem(
                ExpenseCategory.ACTIVITIES,
                cost_of(context, SpecialistKind.ACTIVITIES) or 0.0,
                currency,
            ),
            BudgetItem(
                ExpenseCategory.DAILY,
                self.daily_allowance * brief.trip_days * brief.travelers,
                currency,
            ),
        ]
        total_cost = round(sum(item.amount for item in items), 2)
        breakdown = {item.category.value: item.amount for item in items}

        clarification = None
        if brief.budget is None:
            remaining = None
            within_budget = None
            clarification = (
                f"The trip is estimated at {total_cost:.0f} {currency}. "
                "What total budget should the plan respect?"
            )
        else:
            remaining = round(brief.budget - total_cost, 2)
            within_budget = remaining >= 0
            if not within_budget:
                clarification = (
                    f"The estimated cost of {total_cost:.0f} {currency} exceeds the "
                    f"{brief.budget:.0f} {currency} budget. Raise the budget or choose "
                    "cheaper options?"
                )

        missing = [
            kind.value
            for kind, cost in (
                (SpecialistKind.FLIGHTS, flights),
                (SpecialistKind.HOTELS, hotels),
            )
            if cost is None
        ]
        summary = f"Estimated total {total_cost:.0f} {currency}"
        if brief.budget is not None:
            summary += f" against a {brief.budget:.0f} {currency} budget"
        if missing:
            summary += f" (excluding {', '.join(missing)})"

        return contribution(
            self.kind,
            context,
            data={
                "total_budget": brief.budget,
                "total_cost": total_cost,
                "breakdown": breakdown,
                "remaining": remaining,
                "within_budget": within_budget,
                "currency": currency,
                "missing": missing,
            },
            summary=summary,
            clarification=clarification,
        )
