import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from workgraph import __version__
from workgraph.api.cache import router as cache_router
from workgraph.api.items import router as items_router
from workgraph.api.responses import ok, register_error_handlers
from workgraph.api.webhook import router as webhook_router
from workgraph.config.loader import ConfigError
from workgraph.config.system_settings import system_settings
from workgraph.fetching.service import build_workspace_service

logging.basicConfig(level=logging.DEBUG if system_settings.DEBUG_MODE else system_settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.service = None
    try:
        app.state.service = await build_workspace_service()
    except ConfigError as e:
        logger.error(f"Workspace service not started: {e}")

    yield

    if app.state.service is not None:
        await app.state.service.close()


app = FastAPI(title="workgraph", version=__version__, lifespan=lifespan)
register_error_handlers(app)
app.include_router(items_router)
app.include_router(cache_router)
app.include_router(webhook_router)


@app.get("/api/health", response_model_exclude_none=True)
def health():
    service = getattr(app.state, "service", None)
    return ok({"status": "ok", "ready": service is not None, "version": __version__})
