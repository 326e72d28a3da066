"""
Utility modules for the Trip Planner system.
"""

from trip_planner.config import LogLevel
from trip_planner.utils.error_handling import (
    APIError,
    ConcurrentModificationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    SpecialistError,
    TripPlannerError,
    ValidationError,
    with_retry,
)
from trip_planner.utils.helpers import generate_id, generate_plan_id, truncate_text
from trip_planner.utils.logging import AgentLogger, get_logger, setup_logging

__all__ = [
    "APIError",
    "AgentLogger",
    "ConcurrentModificationError",
    "ConflictError",
    "InvalidStateError",
    "LogLevel",
    "NotFoundError",
    "SpecialistError",
    "TripPlannerError",
    "ValidationError",
    "generate_id",
    "generate_plan_id",
    "get_logger",
    "setup_logging",
    "truncate_text",
    "with_retry",
]
