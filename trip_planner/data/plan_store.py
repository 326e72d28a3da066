"""
Durable persistence for Plan records.

The store offers create, get and a compare-and-swap update keyed on the
plan's turn counter. Every update also checks the revision read inside the
store so that two writers at the same turn cannot both win.
"""

import threading
from collections.abc import Callable
from typing import Protocol

from boto3.dynamodb.conditions import Attr

from trip_planner.data.dynamodb import ConditionFailed, DynamoDBClient
from trip_planner.data.models import Plan, utc_now
from trip_planner.utils.error_handling import (
    ConcurrentModificationError,
    ConflictError,
    NotFoundError,
    PlanIntegrityError,
)
from trip_planner.utils.logging import get_logger

logger = get_logger(__name__)

PlanMutator = Callable[[Plan], Plan]


class PlanStore(Protocol):
    """Read/write operations the orchestrator needs from persistence."""

    def create(self, plan: Plan) -> None: ...

    def get(self, plan_id: str) -> Plan: ...

    def update(self, plan_id: str, mutator: PlanMutator, expected_turn: int) -> Plan: ...


def apply_mutation(current: Plan, mutator: PlanMutator, expected_turn: int) -> Plan:
    """
    Run a mutator against a private copy of the stored plan and check the
    result against the plan invariants.

    Args:
        current: Plan as currently stored
        mutator: Function returning the updated plan
        expected_turn: Turn the caller last read

    Returns:
        The updated plan with revision and updated_at advanced

    Raises:
        ConcurrentModificationError: If the stored turn is not expected_turn
        PlanIntegrityError: If the mutator broke an invariant
    """
    if current.turn != expected_turn:
        raise ConcurrentModificationError(current.plan_id, expected_turn, current.turn)

    updated = mutator(current.model_copy(deep=True))

    for field_name in ("plan_id", "user_id", "goal", "created_at"):
        if getattr(updated, field_name) != getattr(current, field_name):
            raise PlanIntegrityError(f"Plan field '{field_name}' is immutable")
    if updated.turn < current.turn:
        raise PlanIntegrityError(
            f"Turn may not decrease ({current.turn} -> {updated.turn})"
        )
    if len(updated.turns) < len(current.turns) or any(
        a != b for a, b in zip(current.turns, updated.turns, strict=False)
    ):
        raise PlanIntegrityError("Turn inputs are append-only")
    if not current.status.can_transition_to(updated.status):
        raise PlanIntegrityError(
            f"Illegal status transition {current.status.value} -> {updated.status.value}"
        )

    updated.revision = current.revision + 1
    updated.updated_at = utc_now()
    return updated


class InMemoryPlanStore:
    """Process-local store used for tests and local runs."""

    def __init__(self):
        self._records: dict[str, str] = {}
        self._lock = threading.Lock()

    def create(self, plan: Plan) -> None:
        with self._lock:
            if plan.plan_id in self._records:
                raise ConflictError(plan.plan_id)
            self._records[plan.plan_id] = plan.model_dump_json()
        logger.debug(f"Created plan {plan.plan_id}")

    def get(self, plan_id: str) -> Plan:
        with self._lock:
            record = self._records.get(plan_id)
        if record is None:
            raise NotFoundError(plan_id)
        return Plan.model_validate_json(record)

    def update(self, plan_id: str, mutator: PlanMutator, expected_turn: int) -> Plan:
        with self._lock:
            record = self._records.get(plan_id)
            if record is None:
                raise NotFoundError(plan_id)
            updated = apply_mutation(
                Plan.model_validate_json(record), mutator, expected_turn
            )
            self._records[plan_id] = updated.model_dump_json()
        return updated


class DynamoDBPlanStore:
    """
    Plan store backed by a DynamoDB table keyed on `plan_id`.

    The plan body is stored as a JSON document next to the `Turn` and
    `Revision` attributes the conditional writes test against.
    """

    def __init__(self, db: DynamoDBClient):
        self.db = db

    def _to_item(self, plan: Plan) -> dict:
        return {
            "plan_id": plan.plan_id,
            "user_id": plan.user_id,
            "EntityType": "Plan",
            "Status": plan.status.value,
            "Turn": plan.turn,
            "Revision": plan.revision,
            "Data": plan.model_dump_json(),
            "Metadata": {
                "createdAt": plan.created_at.isoformat(),
                "updatedAt": plan.updated_at.isoformat(),
            },
        }

    def create(self, plan: Plan) -> None:
        try:
            self.db.put_item(
                self._to_item(plan), condition=Attr("plan_id").not_exists()
            )
        except ConditionFailed as e:
            raise ConflictError(plan.plan_id) from e
        logger.debug(f"Created plan {plan.plan_id} in {self.db.table_name}")

    def get(self, plan_id: str) -> Plan:
        item = self.db.get_item(plan_id)
        if not item:
            raise NotFoundError(plan_id)
        return Plan.model_validate_json(item["Data"])

    def update(self, plan_id: str, mutator: PlanMutator, expected_turn: int) -> Plan:
        current = self.get(plan_id)
        updated = apply_mutation(current, mutator, expected_turn)
        condition = Attr("Turn").eq(expected_turn) & Attr("Revision").eq(
            current.revision
        )
        try:
            self.db.put_item(self._to_item(updated), condition=condition)
        except ConditionFailed as e:
            logger.info(f"Conditional write on plan {plan_id} lost a race")
            raise ConcurrentModificationError(plan_id, expected_turn) from e
        return updated
