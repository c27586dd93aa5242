"""Admission control based on destination database health signals."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from bulkimport.core.exceptions import HealthSignalError, UnknownPipelineError
from bulkimport.core.protocols import IHealthOracle, ISchemaResolver
from bulkimport.models.entity import Entity
from bulkimport.models.tracker import Tracker
from bulkimport.pipelines.registry import PipelineRegistry

logger = structlog.get_logger(__name__)


class SchemaCatalog(BaseModel):
    """Where each portable type stores each relation.

    ``associations`` maps portable type -> relation -> table,
    ``tables_to_schema`` maps table -> database schema.
    """

    associations: dict[str, dict[str, str]] = Field(default_factory=dict)
    tables_to_schema: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str | Path) -> "SchemaCatalog":
        return cls.model_validate(json.loads(Path(path).read_text()))


class PipelineSchemaResolver:
    """ISchemaResolver deriving (schema, table) from a pipeline's relation."""

    def __init__(self, registry: PipelineRegistry, catalog: SchemaCatalog) -> None:
        self._registry = registry
        self._catalog = catalog

    def resolve(self, pipeline_name: str, portable_type: str) -> Optional[tuple[str, str]]:
        try:
            relation = self._registry.get(pipeline_name).relation
        except UnknownPipelineError:
            return None

        table = self._catalog.associations.get(portable_type, {}).get(relation)
        if table is None:
            return None
        schema = self._catalog.tables_to_schema.get(table)
        if schema is None:
            return None
        return schema, table


class HealthDeferralPolicy:
    """Decides whether an invocation should be postponed because its
    destination schema/table is under load.
    """

    def __init__(
        self,
        resolver: ISchemaResolver,
        oracle: IHealthOracle,
        *,
        default_schema: str,
        default_tables: list[str] | None = None,
        delay: float = 300,
        enabled: bool = True,
    ) -> None:
        self._resolver = resolver
        self._oracle = oracle
        self._default_schema = default_schema
        self._default_tables = list(default_tables or [])
        self.delay = delay
        self.enabled = enabled

    def schema_and_tables(self, tracker: Tracker, entity: Entity) -> tuple[str, list[str]]:
        resolved = self._resolver.resolve(tracker.pipeline_name, entity.portable_type.value)
        if resolved is None:
            return self._default_schema, list(self._default_tables)
        schema, table = resolved
        return schema, [table]

    def should_defer(self, tracker: Tracker, entity: Entity) -> bool:
        if not self.enabled:
            return False

        schema, tables = self.schema_and_tables(tracker, entity)
        try:
            return self._oracle.is_under_load(schema, tables)
        except HealthSignalError as exc:
            logger.warning(
                "Health signal unavailable, treating destination as healthy",
                pipeline_tracker_id=tracker.id,
                db_schema=schema,
                db_tables=tables,
                error=str(exc),
            )
            return False
