"""SQS backend implementing IScheduler."""

from __future__ import annotations

import json
import math
from typing import Any

import boto3
from botocore.exceptions import ClientError

from bulkimport.core.exceptions import SchedulerError

PIPELINE_WORKER = "pipeline"
PIPELINE_BATCH_WORKER = "pipeline_batch"

SQS_MAX_DELAY_SECONDS = 900


class SQSScheduler:
    """Production IScheduler sending delayed messages to SQS queues."""

    def __init__(self, pipeline_queue_url: str, batch_queue_url: str,
                 region: str = "us-east-1", endpoint_url: str | None = None) -> None:
        self._pipeline_queue_url = pipeline_queue_url
        self._batch_queue_url = batch_queue_url
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._client = boto3.client("sqs", **kwargs)

    def _send(self, queue_url: str, body: dict[str, Any], delay: float = 0) -> str:
        delay_seconds = min(max(math.ceil(delay), 0), SQS_MAX_DELAY_SECONDS)
        try:
            resp = self._client.send_message(
                QueueUrl=queue_url,
                MessageBody=json.dumps(body),
                DelaySeconds=delay_seconds,
            )
        except ClientError as exc:
            raise SchedulerError(f"SQS send to {queue_url!r} failed: {exc}") from exc
        return resp["MessageId"]

    def schedule_invocation(self, tracker_id: str, entity_id: str, delay: float) -> str:
        return self._send(
            self._pipeline_queue_url,
            {"worker": PIPELINE_WORKER, "args": [tracker_id, entity_id]},
            delay,
        )

    def schedule_batch_invocation(self, batch_id: str) -> str:
        return self._send(
            self._batch_queue_url,
            {"worker": PIPELINE_BATCH_WORKER, "args": [batch_id]},
        )
