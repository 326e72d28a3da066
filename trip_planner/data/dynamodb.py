"""
DynamoDB table client.

Supports both DynamoDB Local (development) and AWS DynamoDB (production).
Set DYNAMODB_ENDPOINT env var for local, omit for AWS.
"""

from typing import Any

import boto3
from boto3.dynamodb.conditions import ConditionBase
from botocore.exceptions import ClientError

from trip_planner.utils.logging import get_logger

logger = get_logger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


class ConditionFailed(Exception):
    """A conditional write was rejected by DynamoDB."""


class DynamoDBClient:
    """Client for a DynamoDB table with a single hash key."""

    def __init__(
        self,
        table_name: str,
        region: str = "us-west-2",
        endpoint_url: str | None = None,
        hash_key: str = "plan_id",
    ):
        self.table_name = table_name
        self.hash_key = hash_key
        kwargs: dict[str, Any] = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
            logger.info(f"Using DynamoDB Local at {endpoint_url}")

        resource = boto3.resource("dynamodb", **kwargs)
        self.table = resource.Table(table_name)

    def put_item(
        self, item: dict[str, Any], condition: ConditionBase | None = None
    ) -> None:
        """
        Put an item into the table, optionally guarded by a condition.

        Raises:
            ConditionFailed: If the condition does not hold
        """
        kwargs: dict[str, Any] = {"Item": item}
        if condition is not None:
            kwargs["ConditionExpression"] = condition
        try:
            self.table.put_item(**kwargs)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == CONDITIONAL_CHECK_FAILED:
                raise ConditionFailed(str(e)) from e
            raise

    def get_item(self, key: str, consistent: bool = True) -> dict[str, Any] | None:
        """Get a single item by hash key."""
        response = self.table.get_item(
            Key={self.hash_key: key}, ConsistentRead=consistent
        )
        return response.get("Item")

    def create_table_if_not_exists(self) -> None:
        """Create the table (for DynamoDB Local development)."""
        try:
            self.table.load()
            logger.info(f"Table {self.table_name} already exists")
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") != "ResourceNotFoundException":
                raise
            self.table.meta.client.create_table(
                TableName=self.table_name,
                KeySchema=[{"AttributeName": self.hash_key, "KeyType": "HASH"}],
                AttributeDefinitions=[
                    {"AttributeName": self.hash_key, "AttributeType": "S"}
                ],
                BillingMode="PAY_PER_REQUEST",
            )
            logger.info(f"Created table {self.table_name}")
