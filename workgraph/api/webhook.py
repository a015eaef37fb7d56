"""External change trigger.

The producing side (delivery, signatures, retries) lives elsewhere. Any event
that reaches this endpoint means upstream data changed, so the cache is
dropped and the next read refetches. Subscription verification payloads only
get acknowledged.
"""
from fastapi import APIRouter, Body, Depends
from typing import Any, Dict, Optional
import logging

from workgraph.api.deps import get_service
from workgraph.api.responses import ApiResponse, ok
from workgraph.fetching.service import WorkspaceService

router = APIRouter(prefix="/api", tags=["webhook"])
logger = logging.getLogger(__name__)


@router.post("/webhook", response_model=ApiResponse, response_model_exclude_none=True)
async def receive_webhook(
    payload: Optional[Dict[str, Any]] = Body(default=None),
    service: WorkspaceService = Depends(get_service),
):
    payload = payload or {}
    if isinstance(payload.get("verification_token"), str):
        logger.info("receive_webhook: verification request acknowledged")
        return ok({"verified": True})

    event_type = payload.get("type") if isinstance(payload.get("type"), str) else "unknown"
    entity = payload.get("entity") if isinstance(payload.get("entity"), dict) else {}

    await service.force_invalidate()
    logger.info(f"receive_webhook: {event_type} for {entity.get('id', 'unknown entity')}, cache invalidated")
    return ok({"invalidated": True, "event": event_type})
