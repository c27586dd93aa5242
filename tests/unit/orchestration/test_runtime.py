"""Tests for run_job's retry-budget handling."""

from __future__ import annotations

import pytest

from bulkimport.core.exceptions import ExportStatusError
from bulkimport.importer.runner import RunOutcome
from bulkimport.models.tracker import TrackerStatus
from bulkimport.orchestration.runtime import run_job
from tests.fakes import FakePipeline


def _raise(context):
    raise ConnectionError("database went away")


@pytest.fixture
def flaky_pipeline(registry):
    pipeline = FakePipeline(side_effect=_raise)
    registry.register("issues_pipeline", pipeline)
    return pipeline


class TestRunJob:
    def test_returns_outcome_on_success(self, worker, entity, make_tracker, registry):
        registry.register("issues_pipeline", FakePipeline())
        tracker = make_tracker()

        assert run_job(worker, tracker.id, entity.id, attempt=1, max_retries=3) == RunOutcome.FINISHED

    def test_reraises_while_retries_remain(self, worker, store, entity, make_tracker, flaky_pipeline):
        tracker = make_tracker()

        for attempt in (1, 2, 3):
            with pytest.raises(ConnectionError):
                run_job(worker, tracker.id, entity.id, attempt=attempt, max_retries=3)

        assert store.find_tracker(tracker.id).status == TrackerStatus.STARTED
        assert store.list_failures(entity.id) == []
        assert len(flaky_pipeline.calls) == 3

    def test_exhausted_retries_fail_tracker_once(
        self, worker, store, error_tracker, entity, make_tracker, flaky_pipeline
    ):
        tracker = make_tracker()

        outcome = run_job(worker, tracker.id, entity.id, attempt=4, max_retries=3, jid="job-9")

        assert outcome == RunOutcome.FAILED
        saved = store.find_tracker(tracker.id)
        assert saved.status == TrackerStatus.FAILED
        assert saved.jid == "job-9"
        [failure] = store.list_failures(entity.id)
        assert failure.exception_class == "ConnectionError"
        assert failure.exception_message == "database went away"
        assert len(error_tracker.tracked) == 1

    def test_missing_records_are_dropped(self, worker, entity):
        assert run_job(worker, "gone", entity.id, attempt=1, max_retries=3) is None

    def test_export_source_errors_use_the_retry_budget(
        self, worker, store, registry, export_source, entity, make_tracker
    ):
        registry.register("uploads_pipeline", FakePipeline(relation="uploads", file_extraction=True))
        tracker = make_tracker(pipeline_name="uploads_pipeline")
        export_source.set_error("uploads", "timed out")

        with pytest.raises(ExportStatusError):
            run_job(worker, tracker.id, entity.id, attempt=1, max_retries=3)
        assert store.find_tracker(tracker.id).status == TrackerStatus.ENQUEUED

        outcome = run_job(worker, tracker.id, entity.id, attempt=4, max_retries=3)

        assert outcome == RunOutcome.FAILED
        [failure] = store.list_failures(entity.id)
        assert failure.exception_class == "ExportStatusError"
        assert failure.exception_message == "timed out"
