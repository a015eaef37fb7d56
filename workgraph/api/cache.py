from fastapi import APIRouter, Depends
import logging

from workgraph.api.deps import get_service
from workgraph.api.responses import ApiResponse, ok
from workgraph.fetching.service import WorkspaceService

router = APIRouter(prefix="/api/cache", tags=["cache"])
logger = logging.getLogger(__name__)


@router.post("/invalidate", response_model=ApiResponse, response_model_exclude_none=True)
async def invalidate_cache(service: WorkspaceService = Depends(get_service)):
    """Clear both cache tiers; the next read goes upstream."""
    await service.force_invalidate()
    logger.info("invalidate_cache: cache cleared on request")
    return ok({"cleared": True})


@router.get("/stats", response_model=ApiResponse, response_model_exclude_none=True)
def cache_stats(service: WorkspaceService = Depends(get_service)):
    return ok(service.cache_stats())
