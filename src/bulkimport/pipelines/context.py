"""Context handed to a pipeline transformation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from bulkimport.models.entity import Entity
from bulkimport.models.tracker import Batch, Tracker


@dataclass(frozen=True)
class PipelineContext:
    tracker: Tracker
    entity: Entity
    batch: Optional[Batch] = None

    @property
    def portable_type(self) -> str:
        return self.entity.portable_type.value

    @property
    def source_full_path(self) -> str:
        return self.entity.source_full_path
