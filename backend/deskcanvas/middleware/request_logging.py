from __future__ import annotations
from time import perf_counter

import structlog
from fastapi import Request

from deskcanvas.core.utils import generate_id
from deskcanvas.infrastructure.logging import get_logger

logger = get_logger(__name__)

QUIET_PATHS = {"/health"}


def _path_group(path: str, api_prefix: str) -> str:
    if api_prefix and path.startswith(api_prefix):
        path = path[len(api_prefix):]
    parts = [part for part in path.split("/") if part]
    if parts:
        return parts[0]
    return "root"


async def log_requests(request: Request, call_next):  # type: ignore[no-untyped-def]
    request_id = request.headers.get("X-Request-Id") or generate_id("req")
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    started = perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers.setdefault("X-Request-Id", request_id)
        return response
    finally:
        if request.url.path not in QUIET_PATHS:
            api_prefix = getattr(request.app.state, "api_prefix", "")
            logger.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                path_group=_path_group(request.url.path, api_prefix),
                status_code=status_code,
                duration_ms=round((perf_counter() - started) * 1000, 2),
            )
