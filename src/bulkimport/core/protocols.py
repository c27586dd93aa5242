"""Protocol interfaces for all bulk import coordinator collaborators.

All collaborators are injected through these Protocols: structural typing,
no inheritance required, easy to swap for in-memory fakes in tests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from bulkimport.models.entity import Entity
    from bulkimport.models.failure import Failure
    from bulkimport.models.results import PipelineResult
    from bulkimport.models.tracker import Batch, Tracker, TrackerStatus
    from bulkimport.pipelines.context import PipelineContext


# ---------------------------------------------------------------------------
# Persistence: import state
# ---------------------------------------------------------------------------

@runtime_checkable
class IEntityStore(Protocol):
    """Read access to import entities. Raises EntityNotFoundError on a miss."""

    def find_entity(self, entity_id: str) -> Entity: ...


@runtime_checkable
class ITrackerStore(Protocol):
    """Tracker lookup and conditional status writes."""

    def find_tracker(self, tracker_id: str) -> Tracker: ...

    def update_tracker(
        self,
        tracker: Tracker,
        *,
        expected_status: TrackerStatus,
    ) -> Tracker: ...


@runtime_checkable
class IBatchStore(Protocol):
    """Batch rows of a tracker, keyed by batch number."""

    def find_or_create_batch(self, tracker_id: str, batch_number: int) -> Batch: ...

    def list_batches(self, tracker_id: str) -> list[Batch]: ...


@runtime_checkable
class IFailureStore(Protocol):
    """Append-only failure records."""

    def create_failure(
        self,
        *,
        entity_id: str,
        pipeline_class: str,
        pipeline_step: str,
        exception_class: str,
        exception_message: str,
        correlation_id: str,
    ) -> Failure: ...

    def list_failures(self, entity_id: str) -> list[Failure]: ...


# ---------------------------------------------------------------------------
# Source instance
# ---------------------------------------------------------------------------

@runtime_checkable
class IExportSource(Protocol):
    """Remote source instance exposing relation export statuses."""

    def fetch_relation_status(self, entity: Entity, relation: str) -> Optional[dict[str, Any]]: ...


# ---------------------------------------------------------------------------
# Destination health
# ---------------------------------------------------------------------------

@runtime_checkable
class ISchemaResolver(Protocol):
    """Maps a pipeline and portable type to its destination (schema, table)."""

    def resolve(self, pipeline_name: str, portable_type: str) -> Optional[tuple[str, str]]: ...


@runtime_checkable
class IHealthOracle(Protocol):
    """External health signal for destination database resources."""

    def is_under_load(self, schema: str, tables: list[str]) -> bool: ...


# ---------------------------------------------------------------------------
# Coordination
# ---------------------------------------------------------------------------

@runtime_checkable
class ILeaseStore(Protocol):
    """Exclusive, expiring leases. ``try_acquire`` returns a token or None."""

    def try_acquire(self, key: str, timeout: int) -> Optional[str]: ...

    def release(self, key: str, token: str) -> None: ...


@runtime_checkable
class IScheduler(Protocol):
    """Schedules future worker invocations on the runtime's queues."""

    def schedule_invocation(self, tracker_id: str, entity_id: str, delay: float) -> str: ...

    def schedule_batch_invocation(self, batch_id: str) -> str: ...


@runtime_checkable
class IErrorTracker(Protocol):
    """External error tracking sink."""

    def track_exception(self, exception: BaseException, extra: dict[str, Any]) -> None: ...


# ---------------------------------------------------------------------------
# Pipelines
# ---------------------------------------------------------------------------

@runtime_checkable
class IPipeline(Protocol):
    """A named unit of transformation registered with the coordinator."""

    relation: str
    file_extraction: bool

    def run(self, context: PipelineContext) -> PipelineResult: ...
