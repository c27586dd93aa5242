"""Entry points invoked by the scheduling runtime for one pipeline tracker."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Optional

import structlog

from bulkimport.core.config import WorkerConfig
from bulkimport.core.correlation import bind_correlation_id, current_or_new_id, reset_correlation_id
from bulkimport.core.exceptions import PipelineError
from bulkimport.core.logging import IMPORTER_NAME
from bulkimport.core.protocols import (
    IBatchStore,
    IEntityStore,
    IErrorTracker,
    IExportSource,
    IFailureStore,
    IScheduler,
    ITrackerStore,
)
from bulkimport.importer.batch_enqueuer import BatchEnqueuer
from bulkimport.importer.export_status import ExportStatusEvaluator
from bulkimport.importer.failure_recorder import FailureRecorder
from bulkimport.importer.health import HealthDeferralPolicy
from bulkimport.importer.lease import LeaseGuard
from bulkimport.importer.runner import PipelineRunner, RunOutcome
from bulkimport.importer.state_machine import TrackerStateMachine
from bulkimport.models.entity import Entity
from bulkimport.models.tracker import Tracker
from bulkimport.pipelines.registry import PipelineRegistry

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def log_attributes(entity: Entity, tracker: Tracker, **extra: Any) -> dict[str, Any]:
    return {
        "bulk_import_entity_id": entity.id,
        "bulk_import_id": entity.bulk_import_id,
        "bulk_import_entity_type": entity.source_type.value,
        "source_full_path": entity.source_full_path,
        "pipeline_tracker_id": tracker.id,
        "pipeline_class": tracker.pipeline_name,
        "pipeline_tracker_state": tracker.status.value,
        "source_version": entity.source_version,
        "importer": IMPORTER_NAME,
        **extra,
    }


class PipelineWorker:
    """Drives one pipeline tracker a step further per invocation.

    ``perform`` is called for every scheduled invocation. ``perform_failure``
    is called by the runtime once its own retry budget for an invocation is
    exhausted, and marks the tracker failed.
    """

    def __init__(
        self,
        *,
        entities: IEntityStore,
        trackers: ITrackerStore,
        batches: IBatchStore,
        failures: IFailureStore,
        registry: PipelineRegistry,
        export_source: IExportSource,
        health_policy: HealthDeferralPolicy,
        lease_guard: LeaseGuard,
        scheduler: IScheduler,
        error_tracker: IErrorTracker,
        config: WorkerConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._entities = entities
        self._trackers = trackers
        self._registry = registry
        self._health_policy = health_policy
        self._lease_guard = lease_guard
        self._scheduler = scheduler
        self._config = config or WorkerConfig()
        self._clock = clock
        self._evaluator = ExportStatusEvaluator(export_source)
        self._batch_enqueuer = BatchEnqueuer(batches, scheduler)
        self._failure_recorder = FailureRecorder(failures, error_tracker)

    def perform(self, tracker_id: str, entity_id: str, jid: Optional[str] = None) -> RunOutcome:
        entity = self._entities.find_entity(entity_id)
        tracker = self._trackers.find_tracker(tracker_id)

        token = bind_correlation_id(current_or_new_id())
        try:
            if tracker.is_active() and self._health_policy.should_defer(tracker, entity):
                return self._defer(tracker, entity)

            with self._lease_guard.try_obtain(tracker.id) as obtained:
                if not obtained:
                    return RunOutcome.LEASE_TAKEN
                return self._perform_locked(tracker_id, entity, jid)
        finally:
            reset_correlation_id(token)

    def perform_failure(
        self,
        tracker_id: str,
        entity_id: str,
        exception: BaseException,
        jid: Optional[str] = None,
    ) -> RunOutcome:
        entity = self._entities.find_entity(entity_id)
        tracker = self._trackers.find_tracker(tracker_id)

        token = bind_correlation_id(current_or_new_id())
        try:
            self._fail_tracker(TrackerStateMachine(self._trackers, tracker, jid), entity, exception)
        finally:
            reset_correlation_id(token)
        return RunOutcome.FAILED

    def _perform_locked(self, tracker_id: str, entity: Entity, jid: Optional[str]) -> RunOutcome:
        # Re-read under the lease so a concurrent invocation that already
        # moved the tracker to a terminal status is observed.
        tracker = self._trackers.find_tracker(tracker_id)
        if not tracker.is_active():
            logger.info("Pipeline not active", **log_attributes(entity, tracker))
            return RunOutcome.INACTIVE

        log = logger.bind(**log_attributes(entity, tracker))
        log.info("Pipeline starting")

        machine = TrackerStateMachine(self._trackers, tracker, jid)
        runner = PipelineRunner(
            entity=entity,
            pipeline=self._registry.get(tracker.pipeline_name),
            machine=machine,
            evaluator=self._evaluator,
            batch_enqueuer=self._batch_enqueuer,
            scheduler=self._scheduler,
            config=self._config,
            clock=self._clock,
            log=log,
        )
        try:
            outcome = runner.run()
        except PipelineError as exc:
            self._fail_tracker(machine, entity, exc)
            return RunOutcome.FAILED

        log.info("Pipeline invocation done", outcome=outcome.value, batched=machine.tracker.batched)
        return outcome

    def _defer(self, tracker: Tracker, entity: Entity) -> RunOutcome:
        delay = self._health_policy.delay
        self._scheduler.schedule_invocation(tracker.id, entity.id, delay)
        logger.info(
            "Pipeline deferred on database health signal",
            **log_attributes(entity, tracker, delay=delay),
        )
        return RunOutcome.DEFERRED

    def _fail_tracker(
        self,
        machine: TrackerStateMachine,
        entity: Entity,
        exception: BaseException,
    ) -> None:
        tracker = machine.fail_op()
        payload = log_attributes(entity, tracker)

        logger.error(
            "Pipeline failed",
            exception_class=type(exception).__name__,
            exception_message=str(exception),
            exc_info=exception,
            **payload,
        )

        self._failure_recorder.record(entity, tracker, exception, payload)
