"""
Main entry point for the Trip Planner application.

Provides a CLI for driving plans locally. Interactive mode keeps plans in
memory for the life of the process; the one-shot actions work against the
DynamoDB plan store so a plan can be continued from a later invocation.
"""

import argparse
import asyncio
import json
import sys
from typing import Any

from trip_planner.config import config, initialize_config
from trip_planner.data.dynamodb import DynamoDBClient
from trip_planner.data.plan_store import DynamoDBPlanStore, InMemoryPlanStore, PlanStore
from trip_planner.orchestration.classification import (
    GeminiAspectClassifier,
    KeywordAspectClassifier,
)
from trip_planner.orchestration.orchestrator import TripOrchestrator
from trip_planner.orchestration.registry import build_default_agents
from trip_planner.services.knowledge_base import KnowledgeBaseAPI, StaticKnowledgeBase
from trip_planner.services.travel_data import StaticTravelData, TravelDataAPI
from trip_planner.utils.error_handling import TripPlannerError
from trip_planner.utils.logging import get_logger, setup_logging
from trip_planner.utils.rate_limiting import initialize_rate_limiting

logger = get_logger(__name__)

EXIT_COMMANDS = ("quit", "exit", "q")


def setup_argparse() -> argparse.ArgumentParser:
    """
    Set up the argument parser for the CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(description="Multi-turn trip planner")
    parser.add_argument(
        "action",
        nargs="?",
        choices=["interactive", "start", "continue", "status", "finalize"],
        default="interactive",
        help="Operation to run (default: interactive session)",
    )
    parser.add_argument("--goal", type=str, help="Trip goal for start")
    parser.add_argument("--user-id", type=str, default="local-user")
    parser.add_argument("--plan-id", type=str, help="Plan to continue, inspect or finalize")
    parser.add_argument("--input", dest="user_input", type=str, help="Follow-up input")

    system_group = parser.add_argument_group("System Configuration")
    system_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Set the logging level",
    )
    system_group.add_argument("--log-file", type=str, help="Path to write log file (optional)")
    system_group.add_argument("--config", type=str, help="Path to custom configuration file")
    system_group.add_argument(
        "--init-db",
        action="store_true",
        help="Initialize DynamoDB table if it doesn't exist",
    )
    return parser


def build_orchestrator(store: PlanStore) -> TripOrchestrator:
    """Wire the orchestrator with collaborators chosen from configuration."""
    api = config.api
    travel_data = (
        TravelDataAPI(api.travel_data_api_url, api.travel_data_api_key)
        if api.travel_data_api_url
        else StaticTravelData()
    )
    knowledge = (
        KnowledgeBaseAPI(api.knowledge_base_url, api.knowledge_base_api_key)
        if api.knowledge_base_url
        else StaticKnowledgeBase()
    )
    classifier = (
        GeminiAspectClassifier(api_key=api.gemini_api_key)
        if api.gemini_api_key
        else KeywordAspectClassifier()
    )
    return TripOrchestrator(
        store=store,
        agents=build_default_agents(travel_data, knowledge, config.orchestrator),
        classifier=classifier,
        settings=config.orchestrator,
    )


def _print(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


async def run_action(orchestrator: TripOrchestrator, args: argparse.Namespace) -> None:
    """Run a single operation and print its result."""
    if args.action == "start":
        summary = await orchestrator.start(args.goal or "", args.user_id)
        _print(summary.model_dump(mode="json"))
    elif args.action == "continue":
        summary = await orchestrator.continue_plan(args.plan_id or "", args.user_input or "")
        _print(summary.model_dump(mode="json"))
    elif args.action == "status":
        plan = await orchestrator.status(args.plan_id or "")
        _print(plan.model_dump(mode="json"))
    elif args.action == "finalize":
        plan = await orchestrator.finalize(args.plan_id or "")
        _print(plan.model_dump(mode="json"))


async def interactive_session(orchestrator: TripOrchestrator, args: argparse.Namespace) -> None:
    """Start a plan and keep refining it from stdin until it is finalized."""
    goal = args.goal or input("Where would you like to go? ").strip()
    summary = await orchestrator.start(goal, args.user_id)
    print(f"\nPlan {summary.plan_id}: {summary.status.value}")
    print(summary.message)
    for kind, text in summary.contributions.items():
        print(f"  {kind.value}: {text}")

    print("\nType a change, 'status', 'finalize' or 'quit'.")
    while True:
        line = input("> ").strip()
        if not line:
            continue
        if line.lower() in EXIT_COMMANDS:
            break
        try:
            if line.lower() == "status":
                plan = await orchestrator.status(summary.plan_id)
                _print(plan.model_dump(mode="json"))
            elif line.lower() == "finalize":
                plan = await orchestrator.finalize(summary.plan_id)
                print(f"Plan {plan.plan_id} {plan.status.value}")
                break
            else:
                update = await orchestrator.continue_plan(summary.plan_id, line)
                print(f"Turn {update.turn}: {update.status.value} - {update.message}")
                for warning in update.warnings:
                    print(f"  warning: {warning}")
        except TripPlannerError as e:
            print(f"{e.code}: {e.message}")


def main() -> int:
    """Main entry point for the CLI."""
    args = setup_argparse().parse_args()
    setup_logging(args.log_level, args.log_file)
    initialize_config(args.config)
    initialize_rate_limiting()

    if args.action == "interactive":
        orchestrator = build_orchestrator(InMemoryPlanStore())
        runner = interactive_session(orchestrator, args)
    else:
        db = DynamoDBClient(
            table_name=config.api.plans_table_name,
            region=config.api.aws_region,
            endpoint_url=config.api.dynamodb_endpoint,
        )
        if args.init_db:
            db.create_table_if_not_exists()
        runner = run_action(build_orchestrator(DynamoDBPlanStore(db)), args)

    try:
        asyncio.run(runner)
    except TripPlannerError as e:
        _print({"error": e.code, "message": e.message, "retryable": e.retryable})
        return 1
    except (KeyboardInterrupt, EOFError):
        print("\nGoodbye!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
