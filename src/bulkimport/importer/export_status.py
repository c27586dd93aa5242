"""Export status evaluation for file-extraction pipelines."""

from __future__ import annotations

from bulkimport.core.protocols import IExportSource
from bulkimport.models.entity import Entity
from bulkimport.models.export import ExportStatus


class ExportStatusEvaluator:
    """Reduces a poll of the source instance to an ExportStatus snapshot.

    The source is asked once per call. ``ExportStatusError`` from the
    transport propagates so the invoking runtime retries the invocation;
    only a reported ``failed`` status ends the tracker.
    """

    def __init__(self, source: IExportSource) -> None:
        self._source = source

    def evaluate(self, entity: Entity, relation: str) -> ExportStatus:
        return ExportStatus.from_entry(self._source.fetch_relation_status(entity, relation))
