"""
DynamoDB implementation of ResourceStateRepository.

All DynamoDB-specific concerns live here — boto3 resource setup, table
bootstrapping, number conversion, pagination — keeping the service layer
storage-agnostic.

Table schema
────────────
  Table name    : lightsail_resource_state  (configurable via DYNAMODB_TABLE_NAME)
  Partition key : resource_id  (String)

The table is created automatically on first use when it does not already
exist.
"""

import json
import logging
from decimal import Decimal
from typing import Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from lightsail_provider.config import settings
from lightsail_provider.dao.base import ResourceStateRepository

logger = logging.getLogger(__name__)


def _to_item(record: dict) -> dict:
    # DynamoDB rejects Python floats; numbers must be Decimal
    return json.loads(json.dumps(record), parse_float=Decimal)


def _from_item(value):
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_item(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_item(v) for v in value]
    return value


class DynamoDBResourceStateRepository(ResourceStateRepository):
    """
    ResourceStateRepository backed by Amazon DynamoDB.

    The boto3 resource and table handle are created lazily on first use so
    that importing this module does not immediately require live AWS
    credentials.
    """

    def __init__(self) -> None:
        self._table = None  # populated on first access via _get_table()

    # ── Internal helpers ──────────────────────────────────────────────────────

    def _build_resource(self):
        """Create a boto3 DynamoDB resource from application settings."""
        kwargs: dict = {"region_name": settings.aws_region}
        if settings.aws_access_key_id:
            kwargs["aws_access_key_id"] = settings.aws_access_key_id
            kwargs["aws_secret_access_key"] = settings.aws_secret_access_key
        if settings.dynamodb_endpoint_url:
            kwargs["endpoint_url"] = settings.dynamodb_endpoint_url
        return boto3.resource("dynamodb", **kwargs)

    def _get_table(self):
        """
        Return the DynamoDB Table handle, creating the table if it does not
        yet exist.  The handle is cached after the first successful call.
        """
        if self._table is not None:
            return self._table

        ddb = self._build_resource()
        table_name = settings.dynamodb_table_name

        try:
            table = ddb.create_table(
                TableName=table_name,
                KeySchema=[{"AttributeName": "resource_id", "KeyType": "HASH"}],
                AttributeDefinitions=[
                    {"AttributeName": "resource_id", "AttributeType": "S"}
                ],
                BillingMode="PAY_PER_REQUEST",
            )
            table.wait_until_exists()
            logger.info("DynamoDB table '%s' created.", table_name)
        except ClientError as exc:
            if exc.response["Error"]["Code"] == "ResourceInUseException":
                table = ddb.Table(table_name)
            else:
                raise

        self._table = table
        return self._table

    # ── ResourceStateRepository interface ─────────────────────────────────────

    def save(self, record: dict) -> None:
        table = self._get_table()
        try:
            table.put_item(Item=_to_item(record))
            logger.info("Saved state for '%s'.", record.get("resource_id"))
        except ClientError as exc:
            logger.error("DynamoDB PutItem failed: %s", exc)
            raise

    def get(self, resource_id: str) -> Optional[dict]:
        table = self._get_table()
        try:
            response = table.get_item(Key={"resource_id": resource_id})
        except ClientError as exc:
            logger.error("DynamoDB GetItem failed for '%s': %s", resource_id, exc)
            raise
        item = response.get("Item")
        return _from_item(item) if item is not None else None

    def list_all(self, resource_type: Optional[str] = None) -> list[dict]:
        """
        Scan the table, following ``LastEvaluatedKey`` until exhausted.
        """
        table = self._get_table()
        scan_kwargs: dict = {}
        if resource_type:
            scan_kwargs["FilterExpression"] = Attr("resource_type").eq(resource_type)
        try:
            response = table.scan(**scan_kwargs)
            items: list[dict] = response.get("Items", [])

            while "LastEvaluatedKey" in response:
                response = table.scan(
                    ExclusiveStartKey=response["LastEvaluatedKey"], **scan_kwargs
                )
                items.extend(response.get("Items", []))

            logger.info("Listed %d state record(s) from DynamoDB.", len(items))
            return [_from_item(item) for item in items]
        except ClientError as exc:
            logger.error("DynamoDB Scan failed: %s", exc)
            raise

    def delete(self, resource_id: str) -> bool:
        """
        ``ReturnValues="ALL_OLD"`` tells us whether the item existed, so the
        boolean result is accurate.
        """
        table = self._get_table()
        try:
            response = table.delete_item(
                Key={"resource_id": resource_id},
                ReturnValues="ALL_OLD",
            )
        except ClientError as exc:
            logger.error("DynamoDB DeleteItem failed for '%s': %s", resource_id, exc)
            raise
        existed = bool(response.get("Attributes"))
        if existed:
            logger.info("Stopped tracking '%s'.", resource_id)
        else:
            logger.debug("Delete called for untracked '%s'.", resource_id)
        return existed
