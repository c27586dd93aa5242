"""Pipeline tracker and batch models with the tracker status state machine."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel

from bulkimport.core.exceptions import InvalidTransitionError


class TrackerStatus(StrEnum):
    CREATED = "created"
    ENQUEUED = "enqueued"
    STARTED = "started"
    FINISHED = "finished"
    FAILED = "failed"
    SKIPPED = "skipped"


class TrackerEvent(StrEnum):
    ENQUEUE = "enqueue"
    START = "start"
    FINISH = "finish"
    RETRY = "retry"
    FAIL_OP = "fail_op"
    SKIP = "skip"


TERMINAL_STATUSES = frozenset({TrackerStatus.FINISHED, TrackerStatus.FAILED, TrackerStatus.SKIPPED})
ACTIVE_STATUSES = frozenset({TrackerStatus.ENQUEUED, TrackerStatus.STARTED})

_ANY = tuple(TrackerStatus)

# event -> {from_status: to_status}
TRANSITIONS: dict[TrackerEvent, dict[TrackerStatus, TrackerStatus]] = {
    TrackerEvent.ENQUEUE: {TrackerStatus.CREATED: TrackerStatus.ENQUEUED},
    TrackerEvent.START: {
        TrackerStatus.ENQUEUED: TrackerStatus.STARTED,
        TrackerStatus.STARTED: TrackerStatus.STARTED,
    },
    TrackerEvent.FINISH: {
        TrackerStatus.STARTED: TrackerStatus.FINISHED,
        TrackerStatus.FAILED: TrackerStatus.FAILED,
        TrackerStatus.SKIPPED: TrackerStatus.SKIPPED,
    },
    TrackerEvent.RETRY: {
        TrackerStatus.STARTED: TrackerStatus.ENQUEUED,
        TrackerStatus.ENQUEUED: TrackerStatus.ENQUEUED,
    },
    TrackerEvent.FAIL_OP: {status: TrackerStatus.FAILED for status in _ANY},
    TrackerEvent.SKIP: {status: TrackerStatus.SKIPPED for status in _ANY},
}


def next_status(current: TrackerStatus, event: TrackerEvent) -> TrackerStatus:
    """Return the status ``event`` moves a tracker to from ``current``."""
    allowed = TRANSITIONS[event]
    if current not in allowed:
        raise InvalidTransitionError(event.value, current.value)
    return allowed[current]


class Tracker(BaseModel):
    """One attempt to run one pipeline for one entity."""

    id: str
    entity_id: str
    pipeline_name: str
    stage: int = 0
    status: TrackerStatus = TrackerStatus.CREATED
    batched: bool = False
    jid: Optional[str] = None
    created_at: Optional[datetime] = None

    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class BatchStatus(StrEnum):
    CREATED = "created"
    STARTED = "started"
    FINISHED = "finished"
    FAILED = "failed"
    SKIPPED = "skipped"


class Batch(BaseModel):
    """One numbered chunk of a batched export, processed independently."""

    id: str
    tracker_id: str
    batch_number: int
    status: BatchStatus = BatchStatus.CREATED
    created_at: Optional[datetime] = None
