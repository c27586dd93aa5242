"""Shared test doubles — re-export memory backends plus a scriptable pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Optional

from bulkimport.models.results import PipelineOk, PipelineResult
from bulkimport.persistence.memory_backend import (
    MemoryErrorTracker,
    MemoryExportSource,
    MemoryHealthOracle,
    MemoryImportStore,
    MemoryLeaseStore,
    MemoryScheduler,
)
from bulkimport.pipelines.context import PipelineContext

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class FakePipeline:
    """IPipeline returning a canned result, or running ``side_effect`` instead."""

    def __init__(
        self,
        relation: str = "issues",
        file_extraction: bool = False,
        result: Optional[PipelineResult] = None,
        side_effect: Optional[Callable[[PipelineContext], Any]] = None,
    ) -> None:
        self.relation = relation
        self.file_extraction = file_extraction
        self.result = result or PipelineOk()
        self.side_effect = side_effect
        self.calls: list[PipelineContext] = []

    def run(self, context: PipelineContext) -> PipelineResult:
        self.calls.append(context)
        if self.side_effect is not None:
            outcome = self.side_effect(context)
            if outcome is not None:
                return outcome
        return self.result


__all__ = [
    "NOW",
    "FakePipeline",
    "MemoryErrorTracker",
    "MemoryExportSource",
    "MemoryHealthOracle",
    "MemoryImportStore",
    "MemoryLeaseStore",
    "MemoryScheduler",
]
