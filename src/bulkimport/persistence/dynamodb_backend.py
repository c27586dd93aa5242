"""DynamoDB backend implementing the entity, tracker, batch and failure stores."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import uuid4

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from bulkimport.core.exceptions import (
    EntityNotFoundError,
    StaleTrackerError,
    StoreError,
    TrackerNotFoundError,
)
from bulkimport.models.entity import Entity
from bulkimport.models.failure import Failure
from bulkimport.models.tracker import Batch, Tracker, TrackerStatus

ENTITIES_TABLE = "bulkimport-entities"
TRACKERS_TABLE = "bulkimport-trackers"
FAILURES_TABLE = "bulkimport-failures"

_CONDITION_FAILED = "ConditionalCheckFailedException"


def _decode_decimals(item: dict[str, Any]) -> dict[str, Any]:
    """Convert Decimal values in a DynamoDB item to int/float."""
    out: dict[str, Any] = {}
    for k, v in item.items():
        if isinstance(v, Decimal):
            out[k] = int(v) if v == int(v) else float(v)
        elif isinstance(v, dict):
            out[k] = _decode_decimals(v)
        else:
            out[k] = v
    return out


def _strip_keys(item: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in _decode_decimals(item).items() if k not in ("PK", "SK")}


def _is_condition_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == _CONDITION_FAILED


class DynamoDBImportStore:
    """Production import state store backed by DynamoDB.

    Layout (PK / SK):
        entities: ENTITY#<id> / META
        trackers: TRACKER#<id> / META and TRACKER#<id> / BATCH#<number:06d>
        failures: ENTITY#<entity_id> / FAILURE#<created_at>#<id>
    """

    def __init__(self, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None) -> None:
        self._table_suffix = table_suffix
        self._region = region
        self._endpoint_url = endpoint_url
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._ddb = boto3.resource("dynamodb", **kwargs)

    def _table(self, base: str):
        return self._ddb.Table(f"{base}{self._table_suffix}")

    def _get_item(self, table_base: str, pk: str, sk: str) -> dict[str, Any] | None:
        try:
            resp = self._table(table_base).get_item(Key={"PK": pk, "SK": sk})
        except ClientError as exc:
            raise StoreError(f"DynamoDB get failed for {pk}/{sk}: {exc}") from exc
        item = resp.get("Item")
        return _strip_keys(item) if item else None

    def _query(self, table_base: str, pk: str, sk_prefix: str) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": Key("PK").eq(pk) & Key("SK").begins_with(sk_prefix),
        }
        try:
            while True:
                resp = self._table(table_base).query(**kwargs)
                items.extend(_strip_keys(item) for item in resp.get("Items", []))
                if "LastEvaluatedKey" not in resp:
                    return items
                kwargs["ExclusiveStartKey"] = resp["LastEvaluatedKey"]
        except ClientError as exc:
            raise StoreError(f"DynamoDB query failed for {pk}: {exc}") from exc

    def _put(self, table_base: str, item: dict[str, Any], **condition: Any) -> None:
        self._table(table_base).put_item(Item=item, **condition)

    # ---- entities ----

    def save_entity(self, entity: Entity) -> Entity:
        item = {"PK": f"ENTITY#{entity.id}", "SK": "META", **entity.model_dump(mode="json")}
        try:
            self._put(ENTITIES_TABLE, item)
        except ClientError as exc:
            raise StoreError(f"DynamoDB put failed for entity {entity.id!r}: {exc}") from exc
        return entity

    def find_entity(self, entity_id: str) -> Entity:
        item = self._get_item(ENTITIES_TABLE, f"ENTITY#{entity_id}", "META")
        if item is None:
            raise EntityNotFoundError(entity_id)
        return Entity.model_validate(item)

    # ---- trackers ----

    def save_tracker(self, tracker: Tracker) -> Tracker:
        item = {"PK": f"TRACKER#{tracker.id}", "SK": "META", **tracker.model_dump(mode="json")}
        try:
            self._put(TRACKERS_TABLE, item)
        except ClientError as exc:
            raise StoreError(f"DynamoDB put failed for tracker {tracker.id!r}: {exc}") from exc
        return tracker

    def find_tracker(self, tracker_id: str) -> Tracker:
        item = self._get_item(TRACKERS_TABLE, f"TRACKER#{tracker_id}", "META")
        if item is None:
            raise TrackerNotFoundError(tracker_id)
        return Tracker.model_validate(item)

    def update_tracker(self, tracker: Tracker, *, expected_status: TrackerStatus) -> Tracker:
        """Overwrite the tracker only if its stored status is still ``expected_status``."""
        item = {"PK": f"TRACKER#{tracker.id}", "SK": "META", **tracker.model_dump(mode="json")}
        try:
            self._put(
                TRACKERS_TABLE,
                item,
                ConditionExpression="#status = :expected",
                ExpressionAttributeNames={"#status": "status"},
                ExpressionAttributeValues={":expected": expected_status.value},
            )
        except ClientError as exc:
            if _is_condition_failure(exc):
                raise StaleTrackerError(
                    f"Tracker {tracker.id!r} is no longer {expected_status.value}"
                ) from exc
            raise StoreError(f"DynamoDB update failed for tracker {tracker.id!r}: {exc}") from exc
        return tracker

    # ---- batches ----

    def find_or_create_batch(self, tracker_id: str, batch_number: int) -> Batch:
        pk, sk = f"TRACKER#{tracker_id}", f"BATCH#{batch_number:06d}"
        existing = self._get_item(TRACKERS_TABLE, pk, sk)
        if existing is not None:
            return Batch.model_validate(existing)

        batch = Batch(
            id=uuid4().hex,
            tracker_id=tracker_id,
            batch_number=batch_number,
            created_at=datetime.now(timezone.utc),
        )
        try:
            self._put(
                TRACKERS_TABLE,
                {"PK": pk, "SK": sk, **batch.model_dump(mode="json")},
                ConditionExpression="attribute_not_exists(PK)",
            )
        except ClientError as exc:
            if not _is_condition_failure(exc):
                raise StoreError(f"DynamoDB put failed for batch {pk}/{sk}: {exc}") from exc
            # Lost the race against a concurrent creator; theirs wins.
            return Batch.model_validate(self._get_item(TRACKERS_TABLE, pk, sk))
        return batch

    def list_batches(self, tracker_id: str) -> list[Batch]:
        items = self._query(TRACKERS_TABLE, f"TRACKER#{tracker_id}", "BATCH#")
        return [Batch.model_validate(item) for item in items]

    # ---- failures ----

    def create_failure(
        self,
        *,
        entity_id: str,
        pipeline_class: str,
        pipeline_step: str,
        exception_class: str,
        exception_message: str,
        correlation_id: str,
    ) -> Failure:
        failure = Failure(
            id=uuid4().hex,
            entity_id=entity_id,
            pipeline_class=pipeline_class,
            pipeline_step=pipeline_step,
            exception_class=exception_class,
            exception_message=exception_message,
            correlation_id=correlation_id,
            created_at=datetime.now(timezone.utc),
        )
        item = {
            "PK": f"ENTITY#{entity_id}",
            "SK": f"FAILURE#{failure.created_at.isoformat()}#{failure.id}",
            **failure.model_dump(mode="json"),
        }
        try:
            self._put(FAILURES_TABLE, item)
        except ClientError as exc:
            raise StoreError(f"DynamoDB put failed for failure of entity {entity_id!r}: {exc}") from exc
        return failure

    def list_failures(self, entity_id: str) -> list[Failure]:
        items = self._query(FAILURES_TABLE, f"ENTITY#{entity_id}", "FAILURE#")
        return [Failure.model_validate(item) for item in items]
