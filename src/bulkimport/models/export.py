"""Export status snapshot returned by the source instance."""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Optional

from pydantic import BaseModel


class RelationExportStatus(IntEnum):
    FAILED = -1
    STARTED = 0
    FINISHED = 1


class ExportStatus(BaseModel):
    """Transient view of one relation's export on the source instance.

    Derived fresh on every poll and never persisted.
    """

    empty: bool = False
    started: bool = False
    failed: bool = False
    batched: bool = False
    batches_count: int = 0
    error: Optional[str] = None

    @classmethod
    def from_entry(cls, entry: Optional[dict[str, Any]]) -> "ExportStatus":
        """Build a snapshot from one relation entry of the status response."""
        if not entry:
            return cls(empty=True)

        status = entry.get("status")
        return cls(
            started=status == RelationExportStatus.STARTED,
            failed=status == RelationExportStatus.FAILED,
            batched=bool(entry.get("batched", False)),
            batches_count=int(entry.get("batches_count") or 0),
            error=entry.get("error"),
        )
