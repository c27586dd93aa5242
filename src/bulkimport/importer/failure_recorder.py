"""Persists failure records and forwards them to error tracking."""

from __future__ import annotations

from typing import Any

from bulkimport.core.correlation import current_or_new_id
from bulkimport.core.protocols import IErrorTracker, IFailureStore
from bulkimport.models.entity import Entity
from bulkimport.models.failure import Failure
from bulkimport.models.tracker import Tracker

PIPELINE_STEP = "pipeline_run"


def exception_class_name(exception: BaseException) -> str:
    # Fatal pipeline results carry the class name reported by the pipeline.
    return getattr(exception, "source_exception_class", None) or type(exception).__name__


class FailureRecorder:
    def __init__(self, failures: IFailureStore, error_tracker: IErrorTracker) -> None:
        self._failures = failures
        self._error_tracker = error_tracker

    def record(
        self,
        entity: Entity,
        tracker: Tracker,
        exception: BaseException,
        extra: dict[str, Any] | None = None,
    ) -> Failure:
        self._error_tracker.track_exception(exception, dict(extra or {}))

        return self._failures.create_failure(
            entity_id=entity.id,
            pipeline_class=tracker.pipeline_name,
            pipeline_step=PIPELINE_STEP,
            exception_class=exception_class_name(exception),
            exception_message=str(exception),
            correlation_id=current_or_new_id(),
        )
