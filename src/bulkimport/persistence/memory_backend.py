"""In-memory backends for unit tests — dict-backed fakes."""

from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from uuid import uuid4

from bulkimport.core.exceptions import (
    EntityNotFoundError,
    ExportStatusError,
    LeaseError,
    StaleTrackerError,
    TrackerNotFoundError,
)
from bulkimport.models.entity import Entity
from bulkimport.models.failure import Failure
from bulkimport.models.tracker import Batch, Tracker, TrackerStatus


class MemoryImportStore:
    """Dict-backed entity, tracker, batch and failure store."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entities: dict[str, Entity] = {}
        self._trackers: dict[str, Tracker] = {}
        self._batches: dict[tuple[str, int], Batch] = {}
        self._failures: list[Failure] = []

    def save_entity(self, entity: Entity) -> Entity:
        self._entities[entity.id] = entity
        return entity

    def save_tracker(self, tracker: Tracker) -> Tracker:
        self._trackers[tracker.id] = tracker
        return tracker

    def find_entity(self, entity_id: str) -> Entity:
        try:
            return self._entities[entity_id]
        except KeyError:
            raise EntityNotFoundError(entity_id) from None

    def find_tracker(self, tracker_id: str) -> Tracker:
        try:
            return self._trackers[tracker_id]
        except KeyError:
            raise TrackerNotFoundError(tracker_id) from None

    def update_tracker(self, tracker: Tracker, *, expected_status: TrackerStatus) -> Tracker:
        with self._lock:
            current = self.find_tracker(tracker.id)
            if current.status != expected_status:
                raise StaleTrackerError(
                    f"Tracker {tracker.id!r} is {current.status}, expected {expected_status}"
                )
            self._trackers[tracker.id] = tracker
            return tracker

    def find_or_create_batch(self, tracker_id: str, batch_number: int) -> Batch:
        with self._lock:
            key = (tracker_id, batch_number)
            if key not in self._batches:
                self._batches[key] = Batch(
                    id=uuid4().hex,
                    tracker_id=tracker_id,
                    batch_number=batch_number,
                    created_at=datetime.now(timezone.utc),
                )
            return self._batches[key]

    def list_batches(self, tracker_id: str) -> list[Batch]:
        batches = [b for (tid, _), b in self._batches.items() if tid == tracker_id]
        return sorted(batches, key=lambda b: b.batch_number)

    def create_failure(
        self,
        *,
        entity_id: str,
        pipeline_class: str,
        pipeline_step: str,
        exception_class: str,
        exception_message: str,
        correlation_id: str,
    ) -> Failure:
        failure = Failure(
            id=uuid4().hex,
            entity_id=entity_id,
            pipeline_class=pipeline_class,
            pipeline_step=pipeline_step,
            exception_class=exception_class,
            exception_message=exception_message,
            correlation_id=correlation_id,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._failures.append(failure)
        return failure

    def list_failures(self, entity_id: str) -> list[Failure]:
        return [f for f in self._failures if f.entity_id == entity_id]


class MemoryLeaseStore:
    """Dict-backed ILeaseStore honouring lease expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._leases: dict[str, tuple[str, float]] = {}
        self.available = True

    def try_acquire(self, key: str, timeout: int) -> Optional[str]:
        if not self.available:
            raise LeaseError("lease store unavailable")
        with self._lock:
            now = self._clock()
            held = self._leases.get(key)
            if held is not None and held[1] > now:
                return None
            token = uuid4().hex
            self._leases[key] = (token, now + timeout)
            return token

    def release(self, key: str, token: str) -> None:
        with self._lock:
            held = self._leases.get(key)
            if held is not None and held[0] == token:
                del self._leases[key]

    def is_held(self, key: str) -> bool:
        held = self._leases.get(key)
        return held is not None and held[1] > self._clock()


class MemoryScheduler:
    """Records scheduled invocations instead of sending them."""

    def __init__(self) -> None:
        self.invocations: list[tuple[str, str, float]] = []
        self.batch_invocations: list[str] = []

    def schedule_invocation(self, tracker_id: str, entity_id: str, delay: float) -> str:
        self.invocations.append((tracker_id, entity_id, delay))
        return uuid4().hex

    def schedule_batch_invocation(self, batch_id: str) -> str:
        self.batch_invocations.append(batch_id)
        return uuid4().hex


class MemoryHealthOracle:
    """IHealthOracle reporting the configured (schema, table) pairs as loaded."""

    def __init__(self) -> None:
        self.under_load: set[tuple[str, str | None]] = set()
        self.calls: list[tuple[str, list[str]]] = []

    def is_under_load(self, schema: str, tables: list[str]) -> bool:
        self.calls.append((schema, list(tables)))
        if (schema, None) in self.under_load:
            return True
        return any((schema, table) in self.under_load for table in tables)


class MemoryExportSource:
    """Canned relation status entries keyed by relation name."""

    def __init__(self) -> None:
        self._entries: dict[str, Optional[dict[str, Any]]] = {}
        self._errors: dict[str, str] = {}
        self.calls: list[str] = []

    def set_status(self, relation: str, entry: Optional[dict[str, Any]]) -> None:
        self._entries[relation] = entry

    def set_error(self, relation: str, message: str) -> None:
        self._errors[relation] = message

    def fetch_relation_status(self, entity: Entity, relation: str) -> Optional[dict[str, Any]]:
        self.calls.append(relation)
        if relation in self._errors:
            raise ExportStatusError(self._errors[relation])
        return self._entries.get(relation)


class MemoryErrorTracker:
    def __init__(self) -> None:
        self.tracked: list[tuple[BaseException, dict[str, Any]]] = []

    def track_exception(self, exception: BaseException, extra: dict[str, Any]) -> None:
        self.tracked.append((exception, extra))
