"""Decision algorithm for one invocation of one pipeline tracker."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any, Callable, Optional

from bulkimport.core.config import WorkerConfig
from bulkimport.core.exceptions import (
    PipelineExpiredError,
    PipelineFailedError,
    PipelineFatalError,
)
from bulkimport.core.protocols import IPipeline, IScheduler
from bulkimport.importer.batch_enqueuer import BatchEnqueuer
from bulkimport.importer.export_status import ExportStatusEvaluator
from bulkimport.importer.state_machine import TrackerStateMachine
from bulkimport.models.entity import Entity
from bulkimport.models.export import ExportStatus
from bulkimport.models.results import PipelineFatal, PipelineRetry
from bulkimport.pipelines.context import PipelineContext


class RunOutcome(StrEnum):
    DEFERRED = "deferred"
    LEASE_TAKEN = "lease_taken"
    INACTIVE = "inactive"
    SKIPPED = "skipped"
    RE_ENQUEUED = "re_enqueued"
    BATCHES_ENQUEUED = "batches_enqueued"
    FINISHED = "finished"
    RETRYING = "retrying"
    FAILED = "failed"


class PipelineRunner:
    """Chooses and performs the next action for a tracker.

    In order: skip for a failed entity, fail on a failed or expired export,
    poll again while the export is not ready, fan out a batched export,
    otherwise run the pipeline. Only file-extraction pipelines consult the
    export status at all.

    Raises PipelineError subclasses for fatal outcomes; the caller records them.
    """

    def __init__(
        self,
        *,
        entity: Entity,
        pipeline: IPipeline,
        machine: TrackerStateMachine,
        evaluator: ExportStatusEvaluator,
        batch_enqueuer: BatchEnqueuer,
        scheduler: IScheduler,
        config: WorkerConfig,
        clock: Callable[[], datetime],
        log: Any,
    ) -> None:
        self._entity = entity
        self._pipeline = pipeline
        self._machine = machine
        self._evaluator = evaluator
        self._batch_enqueuer = batch_enqueuer
        self._scheduler = scheduler
        self._config = config
        self._clock = clock
        self._log = log
        self._export_status: Optional[ExportStatus] = None

    # ---- export status ----

    @property
    def file_extraction_pipeline(self) -> bool:
        return self._pipeline.file_extraction

    @property
    def export_status(self) -> ExportStatus:
        if self._export_status is None:
            self._export_status = self._evaluator.evaluate(self._entity, self._pipeline.relation)
        return self._export_status

    def export_failed(self) -> bool:
        return self.file_extraction_pipeline and self.export_status.failed

    def export_started(self) -> bool:
        return self.file_extraction_pipeline and self.export_status.started

    def export_empty(self) -> bool:
        return self.file_extraction_pipeline and self.export_status.empty

    def time_since_tracker_created(self) -> timedelta:
        created_at = self._machine.tracker.created_at or self._entity.created_at
        if created_at is None:
            return timedelta(0)
        return self._clock() - created_at

    def empty_export_timeout(self) -> bool:
        timeout = timedelta(seconds=self._config.empty_export_status_timeout)
        return self.export_empty() and self.time_since_tracker_created() >= timeout

    # ---- decision ----

    def run(self) -> RunOutcome:
        if self._entity.failed:
            return self._skip_tracker()

        if self.export_failed():
            raise PipelineFailedError(
                f"Export from source instance failed: {self.export_status.error}"
            )
        if self.empty_export_timeout():
            raise PipelineExpiredError("Empty export status on source instance")

        if self.export_empty() or self.export_started():
            self.re_enqueue()
            return RunOutcome.RE_ENQUEUED

        if self.file_extraction_pipeline and self.export_status.batched:
            return self._run_batched()

        self._machine.start()
        context = PipelineContext(tracker=self._machine.tracker, entity=self._entity)
        result = self._pipeline.run(context)

        if isinstance(result, PipelineRetry):
            return self._retry_tracker(result)
        if isinstance(result, PipelineFatal):
            raise PipelineFatalError(result.error, source_exception_class=result.exception_class)

        self._machine.finish()
        return RunOutcome.FINISHED

    def _run_batched(self) -> RunOutcome:
        self._machine.start(batched=True)

        batches_count = self.export_status.batches_count
        if batches_count < 1:
            self._machine.finish()
            return RunOutcome.FINISHED

        self._batch_enqueuer.enqueue(self._machine.tracker, batches_count)
        return RunOutcome.BATCHES_ENQUEUED

    def _skip_tracker(self) -> RunOutcome:
        self._log.info("Skipping pipeline due to failed entity")
        self._machine.skip()
        return RunOutcome.SKIPPED

    def _retry_tracker(self, result: PipelineRetry) -> RunOutcome:
        self._log.warning("Retrying pipeline", retry_delay=result.delay, reason=result.reason)
        self._machine.retry()
        self.re_enqueue(result.delay)
        return RunOutcome.RETRYING

    def re_enqueue(self, delay: float | None = None) -> None:
        if delay is None:
            delay = self._config.file_extraction_perform_delay
        tracker = self._machine.tracker
        self._scheduler.schedule_invocation(tracker.id, tracker.entity_id, delay)
        self._log.info("Pipeline re-enqueued", re_enqueue=True, delay=delay)
