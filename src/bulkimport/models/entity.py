"""Import job entity models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel


class PortableType(StrEnum):
    PROJECT = "project"
    GROUP = "group"


class EntitySourceType(StrEnum):
    PROJECT_ENTITY = "project_entity"
    GROUP_ENTITY = "group_entity"


class Entity(BaseModel):
    """One source-to-destination migration unit within a bulk import.

    The ``failed`` flag is owned by the entity lifecycle elsewhere in the
    import; the coordinator only reads it.
    """

    id: str
    bulk_import_id: str
    source_type: EntitySourceType
    source_full_path: str
    failed: bool = False
    source_version: str = ""
    created_at: Optional[datetime] = None

    @property
    def portable_type(self) -> PortableType:
        if self.source_type == EntitySourceType.GROUP_ENTITY:
            return PortableType.GROUP
        return PortableType.PROJECT
