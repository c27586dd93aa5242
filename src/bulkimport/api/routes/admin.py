"""Admin endpoints for inspecting trackers and import failures."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from bulkimport.core.exceptions import TrackerNotFoundError

router = APIRouter(tags=["admin"])


@router.get("/trackers/{tracker_id}")
async def get_tracker(tracker_id: str, request: Request) -> dict:
    """Return a tracker with its batches."""
    store = request.app.state.store
    try:
        tracker = store.find_tracker(tracker_id)
    except TrackerNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    batches = store.list_batches(tracker_id) if tracker.batched else []
    return {
        "tracker": tracker.model_dump(mode="json"),
        "batches": [b.model_dump(mode="json") for b in batches],
    }


@router.get("/entities/{entity_id}/failures")
async def get_failures(entity_id: str, request: Request) -> dict:
    """Return failure records of an entity, oldest first."""
    failures = request.app.state.store.list_failures(entity_id)
    return {
        "entity_id": entity_id,
        "failures": [f.model_dump(mode="json") for f in failures],
    }
