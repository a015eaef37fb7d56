"""HTTP surface: thin FastAPI routers over WorkspaceService."""

from .cache import router as cache_router
from .items import router as items_router
from .webhook import router as webhook_router

__all__ = ["cache_router", "items_router", "webhook_router"]
