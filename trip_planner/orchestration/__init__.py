"""
Orchestration package for the trip planner system.

This package holds the plan state machine, wave selection, parallel
specialist dispatch, merging, and change classification for follow-up turns.
"""

from trip_planner.orchestration.classification import (
    AspectClassifier,
    GeminiAspectClassifier,
    KeywordAspectClassifier,
)
from trip_planner.orchestration.dispatch import Dispatcher, DispatchResult
from trip_planner.orchestration.merge import (
    accept_contribution,
    is_accepted,
    merge_outcomes,
)
from trip_planner.orchestration.orchestrator import PlanSummary, TripOrchestrator
from trip_planner.orchestration.registry import (
    AgentRegistry,
    Wave,
    build_default_agents,
    reconciliation_waves,
    select,
)

__all__ = [
    "AgentRegistry",
    "AspectClassifier",
    "DispatchResult",
    "Dispatcher",
    "GeminiAspectClassifier",
    "KeywordAspectClassifier",
    "PlanSummary",
    "TripOrchestrator",
    "Wave",
    "accept_contribution",
    "build_default_agents",
    "is_accepted",
    "merge_outcomes",
    "reconciliation_waves",
    "select",
]
