"""Health deferral, lease exclusion and the exhausted-retries failure path."""

from __future__ import annotations

import pytest

from bulkimport.core.exceptions import EntityNotFoundError, TrackerNotFoundError
from bulkimport.importer.lease import LeaseGuard
from bulkimport.importer.runner import RunOutcome
from bulkimport.models.tracker import TrackerStatus
from tests.fakes import FakePipeline, MemoryLeaseStore


@pytest.fixture
def pipeline(registry):
    pipeline = FakePipeline(relation="issues")
    registry.register("issues_pipeline", pipeline)
    return pipeline


class TestHealthDeferral:
    def test_defers_when_destination_table_under_load(
        self, worker, store, scheduler, oracle, entity, make_tracker, pipeline
    ):
        oracle.under_load.add(("main", "issues"))
        tracker = make_tracker()

        outcome = worker.perform(tracker.id, entity.id)

        assert outcome == RunOutcome.DEFERRED
        assert scheduler.invocations == [(tracker.id, entity.id, 300)]
        assert oracle.calls == [("main", ["issues"])]
        assert store.find_tracker(tracker.id) == tracker
        assert pipeline.calls == []

    def test_unresolvable_pipeline_checks_default_schema(
        self, worker, scheduler, oracle, entity, make_tracker, registry
    ):
        registry.register("notes_pipeline", FakePipeline(relation="notes"))
        oracle.under_load.add(("main", None))
        tracker = make_tracker(pipeline_name="notes_pipeline")

        assert worker.perform(tracker.id, entity.id) == RunOutcome.DEFERRED
        assert oracle.calls == [("main", [])]

    def test_other_table_under_load_does_not_defer(
        self, worker, oracle, entity, make_tracker, pipeline
    ):
        oracle.under_load.add(("main", "merge_requests"))
        tracker = make_tracker()

        assert worker.perform(tracker.id, entity.id) == RunOutcome.FINISHED

    def test_finished_tracker_is_not_deferred(
        self, worker, scheduler, oracle, entity, make_tracker, pipeline
    ):
        oracle.under_load.add(("main", "issues"))
        tracker = make_tracker(status=TrackerStatus.FINISHED)

        assert worker.perform(tracker.id, entity.id) == RunOutcome.INACTIVE
        assert scheduler.invocations == []
        assert oracle.calls == []


class TestLease:
    def test_held_lease_makes_invocation_a_noop(
        self, worker, store, lease_store, entity, make_tracker, pipeline
    ):
        tracker = make_tracker()
        lease_store.try_acquire(f"bulkimport:pipeline_worker:{tracker.id}", 30)

        assert worker.perform(tracker.id, entity.id) == RunOutcome.LEASE_TAKEN
        assert store.find_tracker(tracker.id) == tracker
        assert pipeline.calls == []

    def test_concurrent_invocation_for_same_tracker_runs_once(
        self, worker, store, entity, make_tracker, pipeline
    ):
        tracker = make_tracker()
        nested: list[RunOutcome] = []

        # A second delivery of the same invocation arrives while the first runs.
        pipeline.side_effect = lambda context: nested.append(worker.perform(tracker.id, entity.id))

        assert worker.perform(tracker.id, entity.id) == RunOutcome.FINISHED
        assert nested == [RunOutcome.LEASE_TAKEN]
        assert len(pipeline.calls) == 1

    def test_lease_is_released_after_run(self, worker, lease_store, entity, make_tracker, pipeline):
        tracker = make_tracker()

        worker.perform(tracker.id, entity.id)

        assert not lease_store.is_held(f"bulkimport:pipeline_worker:{tracker.id}")

    def test_unavailable_lease_store_skips_quietly(
        self, worker, store, lease_store, entity, make_tracker, pipeline
    ):
        lease_store.available = False
        tracker = make_tracker()

        assert worker.perform(tracker.id, entity.id) == RunOutcome.LEASE_TAKEN
        assert pipeline.calls == []

    def test_expired_lease_can_be_taken_over(self):
        now = [0.0]
        lease_store = MemoryLeaseStore(clock=lambda: now[0])
        guard = LeaseGuard(lease_store, timeout=30)
        lease_store.try_acquire(guard.lease_key("tracker-1"), 30)

        with guard.try_obtain("tracker-1") as obtained:
            assert obtained is False

        now[0] = 31.0
        with guard.try_obtain("tracker-1") as obtained:
            assert obtained is True


class TestPerformFailure:
    def test_marks_tracker_failed_and_records_failure(
        self, worker, store, error_tracker, entity, make_tracker
    ):
        tracker = make_tracker(status=TrackerStatus.STARTED)
        exc = TimeoutError("source timed out")

        assert worker.perform_failure(tracker.id, entity.id, exc, jid="job-3") == RunOutcome.FAILED

        saved = store.find_tracker(tracker.id)
        assert saved.status == TrackerStatus.FAILED
        assert saved.jid == "job-3"
        [failure] = store.list_failures(entity.id)
        assert failure.exception_class == "TimeoutError"
        assert failure.exception_message == "source timed out"
        assert failure.correlation_id
        [(tracked, extra)] = error_tracker.tracked
        assert tracked is exc
        assert extra["pipeline_tracker_id"] == tracker.id
        assert extra["importer"] == "bulk_import"


class TestLookups:
    def test_missing_entity_raises_not_found(self, worker, make_tracker):
        tracker = make_tracker()
        with pytest.raises(EntityNotFoundError):
            worker.perform(tracker.id, "nope")

    def test_missing_tracker_raises_not_found(self, worker, entity):
        with pytest.raises(TrackerNotFoundError):
            worker.perform("nope", entity.id)
