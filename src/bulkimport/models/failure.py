"""Append-only pipeline failure record."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class Failure(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    entity_id: str
    pipeline_class: str
    pipeline_step: str
    exception_class: str
    exception_message: str
    correlation_id: str
    created_at: datetime
