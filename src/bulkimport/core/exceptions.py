"""Bulk import exception hierarchy."""

from __future__ import annotations


class BulkImportError(Exception):
    """Base exception for all bulk import errors."""


class PipelineError(BulkImportError):
    """Error during pipeline execution."""


class PipelineFailedError(PipelineError):
    """The source instance reported the export as failed."""


class PipelineExpiredError(PipelineError):
    """The export stayed empty on the source instance for too long."""


class PipelineFatalError(PipelineError):
    """A pipeline reported an unrecoverable error."""

    def __init__(self, message: str, source_exception_class: str | None = None) -> None:
        self.source_exception_class = source_exception_class
        super().__init__(message)


class NotFoundError(BulkImportError):
    """A persisted record does not exist."""


class EntityNotFoundError(NotFoundError):
    def __init__(self, entity_id: str) -> None:
        self.entity_id = entity_id
        super().__init__(f"Entity {entity_id!r} not found")


class TrackerNotFoundError(NotFoundError):
    def __init__(self, tracker_id: str) -> None:
        self.tracker_id = tracker_id
        super().__init__(f"Tracker {tracker_id!r} not found")


class InvalidTransitionError(BulkImportError):
    """A tracker status event is not allowed from the current status."""

    def __init__(self, event: str, status: str) -> None:
        self.event = event
        self.status = status
        super().__init__(f"Cannot {event} tracker in status {status!r}")


class StaleTrackerError(BulkImportError):
    """A conditional status write lost against a concurrent writer."""


class StoreError(BulkImportError):
    """Import state store operation failed."""


class LeaseError(BulkImportError):
    """Lease store operation failed."""


class SchedulerError(BulkImportError):
    """Scheduling a worker invocation failed."""


class ExportStatusError(BulkImportError):
    """Polling the source instance for export status failed."""


class UnknownPipelineError(BulkImportError):
    """No pipeline is registered under the requested name."""


class HealthSignalError(BulkImportError):
    """Reading the destination health signal failed."""
