"""Response envelope and error mapping shared by every router."""
import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from workgraph.config.loader import ConfigError
from workgraph.fetching.errors import TransportError, UpstreamError

logger = logging.getLogger(__name__)


class ApiResponse(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    cached: Optional[bool] = None
    stale: Optional[bool] = None


def ok(data: Any = None, **flags: Optional[bool]) -> ApiResponse:
    return ApiResponse(success=True, data=data, **flags)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(ApiResponse(success=False, error=message), exclude_none=True),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Map the error taxonomy onto HTTP status codes and the response envelope."""

    @app.exception_handler(UpstreamError)
    async def _upstream(request: Request, exc: UpstreamError):
        logger.warning(f"{request.method} {request.url.path}: upstream error {exc.status_code}: {exc.message}")
        status = exc.status_code if 400 <= exc.status_code < 600 else 502
        return error_response(status, exc.message)

    @app.exception_handler(TransportError)
    async def _transport(request: Request, exc: TransportError):
        logger.warning(f"{request.method} {request.url.path}: transport error: {exc.message}")
        return error_response(502, exc.message)

    @app.exception_handler(ConfigError)
    async def _config(request: Request, exc: ConfigError):
        logger.error(f"{request.method} {request.url.path}: configuration error: {exc}")
        return error_response(500, str(exc))

    @app.exception_handler(HTTPException)
    async def _http(request: Request, exc: HTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def _validation(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        where = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        return error_response(400, f"Invalid request: {where}: {message}" if where else f"Invalid request: {message}")
