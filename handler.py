"""
AWS Lambda handler for the trip planner.

Entry point for the request gateway. Routes events by "action" field to the
orchestrator and returns JSON-ready responses. Each invocation builds its
own orchestrator; all plan state lives in the plan store.
"""

import asyncio
from typing import Any

from trip_planner.config import config
from trip_planner.data.dynamodb import DynamoDBClient
from trip_planner.data.plan_store import DynamoDBPlanStore
from trip_planner.orchestration.classification import (
    AspectClassifier,
    GeminiAspectClassifier,
    KeywordAspectClassifier,
)
from trip_planner.orchestration.orchestrator import TripOrchestrator
from trip_planner.orchestration.registry import build_default_agents
from trip_planner.services.knowledge_base import (
    KnowledgeBaseAPI,
    KnowledgeSource,
    StaticKnowledgeBase,
)
from trip_planner.services.travel_data import (
    StaticTravelData,
    TravelDataAPI,
    TravelDataSource,
)
from trip_planner.utils.error_handling import TripPlannerError, ValidationError
from trip_planner.utils.logging import get_logger, setup_logging
from trip_planner.utils.rate_limiting import initialize_rate_limiting

logger = get_logger(__name__)

setup_logging(config.system.log_level)
initialize_rate_limiting()


def _extract_user_id(user_id_raw: str) -> str:
    """Extract user ID from USER#123 format."""
    if user_id_raw.startswith("USER#"):
        return user_id_raw[5:]
    return user_id_raw


def _get_store() -> DynamoDBPlanStore:
    db = DynamoDBClient(
        table_name=config.api.plans_table_name,
        endpoint_url=config.api.dynamodb_endpoint,
        region=config.api.aws_region,
    )
    return DynamoDBPlanStore(db)


def _get_travel_data() -> TravelDataSource:
    if config.api.travel_data_api_url:
        return TravelDataAPI(
            config.api.travel_data_api_url, api_key=config.api.travel_data_api_key
        )
    return StaticTravelData()


def _get_knowledge() -> KnowledgeSource:
    if config.api.knowledge_base_url:
        return KnowledgeBaseAPI(
            config.api.knowledge_base_url, api_key=config.api.knowledge_base_api_key
        )
    return StaticKnowledgeBase()


def _get_classifier() -> AspectClassifier:
    if config.api.gemini_api_key:
        return GeminiAspectClassifier(api_key=config.api.gemini_api_key)
    return KeywordAspectClassifier()


def _get_orchestrator() -> TripOrchestrator:
    agents = build_default_agents(
        _get_travel_data(), _get_knowledge(), config.orchestrator
    )
    return TripOrchestrator(
        store=_get_store(),
        agents=agents,
        classifier=_get_classifier(),
        settings=config.orchestrator,
    )


def route_event(event: dict[str, Any]) -> tuple[str, dict[str, Any]]:
    """Parse event and extract action + parameters."""
    action = event.get("action", "unknown")
    params: dict[str, Any] = {}

    user_id_raw = event.get("userId") or event.get("user_id") or ""
    if user_id_raw:
        params["user_id"] = _extract_user_id(user_id_raw)

    params["plan_id"] = event.get("planId") or event.get("plan_id")
    params["goal"] = event.get("goal", "")
    params["user_input"] = event.get("userInput") or event.get("user_input") or ""

    return action, params


def _require_plan_id(params: dict[str, Any]) -> str:
    if not params.get("plan_id"):
        raise ValidationError("plan_id is required")
    return params["plan_id"]


async def _handle_start(
    orchestrator: TripOrchestrator, params: dict[str, Any]
) -> dict[str, Any]:
    summary = await orchestrator.start(params["goal"], params.get("user_id", ""))
    return {
        "plan_id": summary.plan_id,
        "status": summary.status.value,
        "message": summary.message,
    }


async def _handle_continue(
    orchestrator: TripOrchestrator, params: dict[str, Any]
) -> dict[str, Any]:
    summary = await orchestrator.continue_plan(
        _require_plan_id(params), params["user_input"]
    )
    response = {
        "plan_id": summary.plan_id,
        "status": summary.status.value,
        "turn": summary.turn,
        "message": summary.message,
    }
    if summary.contributions:
        response["contributions"] = {
            kind.value: text for kind, text in summary.contributions.items()
        }
    return response


async def _handle_status(
    orchestrator: TripOrchestrator, params: dict[str, Any]
) -> dict[str, Any]:
    plan = await orchestrator.status(_require_plan_id(params))
    return {
        "plan_id": plan.plan_id,
        "status": plan.status.value,
        "plan": plan.model_dump(mode="json"),
    }


async def _handle_finalize(
    orchestrator: TripOrchestrator, params: dict[str, Any]
) -> dict[str, Any]:
    plan = await orchestrator.finalize(_require_plan_id(params))
    return {
        "plan_id": plan.plan_id,
        "status": plan.status.value,
        "plan": plan.model_dump(mode="json"),
    }


# Action handlers map
_HANDLERS = {
    "start": _handle_start,
    "continue": _handle_continue,
    "status": _handle_status,
    "finalize": _handle_finalize,
}


def error_response(error: Exception) -> dict[str, Any]:
    """Map an exception onto the gateway's error shape."""
    if isinstance(error, TripPlannerError):
        return {
            "error": error.code,
            "message": error.message,
            "retryable": error.retryable,
        }
    return {"error": "internal_error", "message": str(error), "retryable": False}


async def async_handler(
    event: dict[str, Any], orchestrator: TripOrchestrator | None = None
) -> dict[str, Any]:
    """Main async handler."""
    action, params = route_event(event)

    handler_fn = _HANDLERS.get(action)
    if not handler_fn:
        return error_response(ValidationError(f"Unknown action: {action}"))

    try:
        return await handler_fn(orchestrator or _get_orchestrator(), params)
    except TripPlannerError as e:
        logger.warning(f"{action} rejected: {e.code}: {e.message}")
        return error_response(e)
    except Exception as e:
        logger.exception(f"Error handling {action}: {e}")
        return error_response(e)


def handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """Lambda entry point (sync wrapper)."""
    return asyncio.run(async_handler(event))
