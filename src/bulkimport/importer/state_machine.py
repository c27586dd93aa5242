"""Persisted tracker status transitions."""

from __future__ import annotations

from typing import Any, Optional

from bulkimport.core.protocols import ITrackerStore
from bulkimport.models.tracker import Tracker, TrackerEvent, next_status


class TrackerStateMachine:
    """Sole writer of a tracker's status during a worker invocation.

    Each event is applied as a conditional write against the status it was
    computed from. A transition that changes nothing is not written.
    """

    def __init__(self, store: ITrackerStore, tracker: Tracker, jid: Optional[str] = None) -> None:
        self._store = store
        self._tracker = tracker
        self._jid = jid

    @property
    def tracker(self) -> Tracker:
        return self._tracker

    def fire(self, event: TrackerEvent, **changes: Any) -> Tracker:
        current = self._tracker
        update = {"status": next_status(current.status, event), **changes}
        if self._jid is not None:
            update["jid"] = self._jid

        updated = current.model_copy(update=update)
        if updated == current:
            return current

        self._tracker = self._store.update_tracker(updated, expected_status=current.status)
        return self._tracker

    def start(self, *, batched: bool | None = None) -> Tracker:
        if batched is None:
            return self.fire(TrackerEvent.START)
        return self.fire(TrackerEvent.START, batched=batched)

    def finish(self) -> Tracker:
        return self.fire(TrackerEvent.FINISH)

    def retry(self) -> Tracker:
        return self.fire(TrackerEvent.RETRY)

    def fail_op(self) -> Tracker:
        return self.fire(TrackerEvent.FAIL_OP)

    def skip(self) -> Tracker:
        return self.fire(TrackerEvent.SKIP)
