"""SQS long-poll loop that feeds pipeline invocations to PipelineWorker."""

from __future__ import annotations

import json
import threading
from typing import Any

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from bulkimport.core.correlation import bind_correlation_id, reset_correlation_id
from bulkimport.importer.worker import PipelineWorker
from bulkimport.orchestration.runtime import run_job
from bulkimport.persistence.sqs_scheduler import PIPELINE_WORKER

logger = structlog.get_logger(__name__)

MAX_VISIBILITY_TIMEOUT = 43200
POLL_ERROR_BACKOFF_SECONDS = 5


def retry_backoff(attempt: int) -> int:
    """Seconds before a failed invocation becomes visible again."""
    return min(attempt ** 4 + 15, MAX_VISIBILITY_TIMEOUT)


class SQSConsumer:
    """Invoking runtime for the pipeline queue.

    Messages are deleted once handled. A message whose invocation raised is
    left on the queue with a backoff visibility timeout so SQS redelivers it;
    ``ApproximateReceiveCount`` is the attempt number.
    """

    def __init__(self, worker: PipelineWorker, queue_url: str, *, max_retries: int = 3,
                 region: str = "us-east-1", endpoint_url: str | None = None,
                 wait_time_seconds: int = 20, max_messages: int = 10) -> None:
        self._worker = worker
        self._queue_url = queue_url
        self._max_retries = max_retries
        self._wait_time_seconds = wait_time_seconds
        self._max_messages = max_messages
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._client = boto3.client("sqs", **kwargs)

    def poll_once(self) -> int:
        resp = self._client.receive_message(
            QueueUrl=self._queue_url,
            MaxNumberOfMessages=self._max_messages,
            WaitTimeSeconds=self._wait_time_seconds,
            AttributeNames=["ApproximateReceiveCount"],
        )
        messages = resp.get("Messages", [])
        for message in messages:
            self.handle(message)
        return len(messages)

    def run_forever(self, stop: threading.Event | None = None) -> None:
        stop = stop or threading.Event()
        logger.info("SQS consumer started", queue_url=self._queue_url)
        while not stop.is_set():
            try:
                self.poll_once()
            except (BotoCoreError, ClientError) as exc:
                logger.error("Receiving from the pipeline queue failed", queue_url=self._queue_url, error=str(exc))
                stop.wait(POLL_ERROR_BACKOFF_SECONDS)

    def handle(self, message: dict[str, Any]) -> None:
        receipt = message["ReceiptHandle"]
        try:
            body = json.loads(message["Body"])
            if body.get("worker") != PIPELINE_WORKER:
                raise ValueError(f"unexpected worker {body.get('worker')!r}")
            tracker_id, entity_id = body["args"][0], body["args"][-1]
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            logger.error("Discarding malformed message", message_id=message.get("MessageId"), error=str(exc))
            self._delete(receipt)
            return

        attempt = int(message.get("Attributes", {}).get("ApproximateReceiveCount", 1))
        token = bind_correlation_id(message["MessageId"])
        try:
            run_job(
                self._worker,
                tracker_id,
                entity_id,
                attempt=attempt,
                max_retries=self._max_retries,
                jid=message["MessageId"],
            )
        except Exception:
            self._backoff(receipt, attempt)
            return
        finally:
            reset_correlation_id(token)

        self._delete(receipt)

    def _backoff(self, receipt: str, attempt: int) -> None:
        try:
            self._client.change_message_visibility(
                QueueUrl=self._queue_url,
                ReceiptHandle=receipt,
                VisibilityTimeout=retry_backoff(attempt),
            )
        except (BotoCoreError, ClientError) as exc:
            # The message reappears after the queue default visibility timeout.
            logger.error("Changing message visibility failed", error=str(exc))

    def _delete(self, receipt: str) -> None:
        try:
            self._client.delete_message(QueueUrl=self._queue_url, ReceiptHandle=receipt)
        except (BotoCoreError, ClientError) as exc:
            logger.error("Deleting handled message failed", error=str(exc))
