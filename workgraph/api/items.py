from fastapi import APIRouter, Depends, HTTPException
from typing import Optional
import logging

from pydantic import BaseModel

from workgraph.api.deps import get_service
from workgraph.api.responses import ApiResponse, error_response, ok
from workgraph.core.identifiers import normalize_uuid
from workgraph.fetching.service import WorkspaceService

router = APIRouter(prefix="/api/items", tags=["items"])
logger = logging.getLogger(__name__)

MAX_ID_LENGTH = 50


class StatusUpdate(BaseModel):
    status: str


class ProgressUpdate(BaseModel):
    progress: float


def _validate_id(item_id: str) -> str:
    trimmed = (item_id or "").strip()
    if not trimmed or len(trimmed) > MAX_ID_LENGTH:
        raise HTTPException(status_code=400, detail="Invalid item ID: ID must be a non-empty string")
    return normalize_uuid(trimmed)


@router.get("", response_model=ApiResponse, response_model_exclude_none=True)
async def list_items(refresh: bool = False, service: WorkspaceService = Depends(get_service)):
    """All items across configured sources. Cache-first unless refresh=true."""
    outcome = await service.fetch_all(force_refresh=refresh)

    if outcome.all_failed and not outcome.stale:
        message = "; ".join(f"{f.source_tag}: {f.message}" for f in outcome.failures)
        logger.warning(f"list_items: every source failed and nothing cached: {message}")
        return error_response(502, message)

    logger.info(f"list_items: returning {len(outcome.items)} items (cached={outcome.from_cache}, stale={outcome.stale})")
    return ok(
        {
            "items": [item.model_dump(mode="json") for item in outcome.items],
            "failures": [f.model_dump() for f in outcome.failures],
            "orphan_count": outcome.orphan_count,
        },
        cached=outcome.from_cache,
        stale=outcome.stale,
    )


@router.get("/{item_id}", response_model=ApiResponse, response_model_exclude_none=True)
async def get_item(item_id: str, type: Optional[str] = None, service: WorkspaceService = Depends(get_service)):
    """One item, fetched live."""
    record_id = _validate_id(item_id)
    item = await service.fetch_one(record_id, type)
    return ok(item.model_dump(mode="json"))


@router.patch("/{item_id}/status", response_model=ApiResponse, response_model_exclude_none=True)
async def update_status(item_id: str, body: StatusUpdate, service: WorkspaceService = Depends(get_service)):
    record_id = _validate_id(item_id)
    try:
        await service.mutate_status(record_id, body.status)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ok({"id": record_id, "status": body.status.strip()})


@router.patch("/{item_id}/progress", response_model=ApiResponse, response_model_exclude_none=True)
async def update_progress(item_id: str, body: ProgressUpdate, service: WorkspaceService = Depends(get_service)):
    record_id = _validate_id(item_id)
    try:
        progress = await service.mutate_progress(record_id, body.progress)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ok({"id": record_id, "progress": progress})
