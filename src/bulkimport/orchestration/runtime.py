"""Retry-budget handling shared by every runtime that invokes PipelineWorker."""

from __future__ import annotations

from typing import Optional

import structlog

from bulkimport.core.exceptions import NotFoundError
from bulkimport.importer.runner import RunOutcome
from bulkimport.importer.worker import PipelineWorker

logger = structlog.get_logger(__name__)


def run_job(
    worker: PipelineWorker,
    tracker_id: str,
    entity_id: str,
    *,
    attempt: int,
    max_retries: int,
    jid: Optional[str] = None,
) -> Optional[RunOutcome]:
    """Run one invocation; on the last allowed attempt route errors to the failure path.

    ``attempt`` is 1-based, so an invocation gets ``max_retries + 1`` attempts.
    Returns None when the tracker or entity no longer exists. Re-raises the
    error while retries remain so the runtime redelivers the invocation.
    """
    try:
        return worker.perform(tracker_id, entity_id, jid=jid)
    except NotFoundError as exc:
        logger.warning(
            "Dropping pipeline invocation for missing record",
            pipeline_tracker_id=tracker_id,
            bulk_import_entity_id=entity_id,
            error=str(exc),
        )
        return None
    except Exception as exc:
        if attempt <= max_retries:
            logger.warning(
                "Pipeline invocation raised, will retry",
                pipeline_tracker_id=tracker_id,
                attempt=attempt,
                max_retries=max_retries,
                error=str(exc),
            )
            raise
        logger.error(
            "Pipeline invocation retries exhausted",
            pipeline_tracker_id=tracker_id,
            attempt=attempt,
        )
        return worker.perform_failure(tracker_id, entity_id, exc, jid=jid)
