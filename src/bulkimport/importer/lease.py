"""Per-tracker exclusive lease around a worker invocation."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import structlog

from bulkimport.core.exceptions import LeaseError
from bulkimport.core.protocols import ILeaseStore

logger = structlog.get_logger(__name__)

LEASE_NAMESPACE = "bulkimport:pipeline_worker"


class LeaseGuard:
    def __init__(self, store: ILeaseStore, timeout: int = 30,
                 namespace: str = LEASE_NAMESPACE) -> None:
        self._store = store
        self._timeout = timeout
        self._namespace = namespace

    def lease_key(self, tracker_id: str) -> str:
        return f"{self._namespace}:{tracker_id}"

    @contextmanager
    def try_obtain(self, tracker_id: str) -> Iterator[bool]:
        """Yield True while holding the tracker's lease, False if someone else does.

        An unavailable lease store counts as "not obtained". The lease is
        released on exit, including on exception; if release fails it simply
        expires after the timeout.
        """
        key = self.lease_key(tracker_id)
        try:
            token = self._store.try_acquire(key, self._timeout)
        except LeaseError as exc:
            logger.warning("Lease store unavailable", lease_key=key, error=str(exc))
            token = None

        if token is None:
            logger.info("Lease not obtained", lease_key=key)
            yield False
            return

        try:
            yield True
        finally:
            try:
                self._store.release(key, token)
            except LeaseError as exc:
                logger.warning("Lease release failed", lease_key=key, error=str(exc))
