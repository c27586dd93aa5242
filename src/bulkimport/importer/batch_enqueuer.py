"""Fans a batched export out into independently scheduled batch jobs."""

from __future__ import annotations

import structlog

from bulkimport.core.protocols import IBatchStore, IScheduler
from bulkimport.models.tracker import Batch, Tracker

logger = structlog.get_logger(__name__)


class BatchEnqueuer:
    def __init__(self, batches: IBatchStore, scheduler: IScheduler) -> None:
        self._batches = batches
        self._scheduler = scheduler

    def enqueue(self, tracker: Tracker, batches_count: int) -> list[Batch]:
        """Find-or-create batches 1..batches_count and schedule one job each.

        Safe to re-run after a partial failure: existing batch rows are reused.
        Does not wait for the batches; finishing the tracker is left to
        whatever observes all batches completing.
        """
        if batches_count < 1:
            raise ValueError(f"batches_count must be >= 1, got {batches_count}")

        enqueued: list[Batch] = []
        for batch_number in range(1, batches_count + 1):
            batch = self._batches.find_or_create_batch(tracker.id, batch_number)
            self._scheduler.schedule_batch_invocation(batch.id)
            enqueued.append(batch)

        logger.info("Batches enqueued", pipeline_tracker_id=tracker.id, batches_count=batches_count)
        return enqueued
