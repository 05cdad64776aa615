from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from deskcanvas.api.routes.canvas_routes import router as canvas_router
from deskcanvas.api.routes.freshdesk_routes import router as freshdesk_router
from deskcanvas.canvas.views import initialize_error_view, unexpected_error_view
from deskcanvas.container import container, freshdesk_client, intercom_client, settings
from deskcanvas.core.errors import PreconditionViolation, UpstreamUnavailable
from deskcanvas.infrastructure.logging import get_logger
from deskcanvas.middleware import log_requests

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await container.start()
    yield
    await container.stop()


app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
app.state.api_prefix = settings.api_prefix

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(log_requests)

app.include_router(canvas_router, prefix=settings.api_prefix)
app.include_router(freshdesk_router, prefix=settings.api_prefix)


def _error(status_code: int, code: str, message: str, details: list[object] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message, "details": details or []}},
    )


@app.exception_handler(UpstreamUnavailable)
async def handle_upstream_unavailable(_request: Request, exc: UpstreamUnavailable) -> JSONResponse:
    details = [exc.detail] if exc.detail is not None else []
    return _error(502, "UPSTREAM_UNAVAILABLE", exc.user_message, details)


@app.exception_handler(PreconditionViolation)
async def handle_precondition_violation(_request: Request, exc: PreconditionViolation) -> JSONResponse:
    return _error(400, "VALIDATION_ERROR", str(exc), list(exc.missing))


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Canvas routes answer with a renderable view, never 422.
    path = request.url.path
    if path == f"{settings.api_prefix}/initialize":
        logger.warning("canvas_request_invalid", path=path, errors=len(exc.errors()))
        return JSONResponse(status_code=200, content=initialize_error_view())
    if path == f"{settings.api_prefix}/submit":
        logger.warning("canvas_request_invalid", path=path, errors=len(exc.errors()))
        return JSONResponse(status_code=200, content=unexpected_error_view("Invalid canvas request"))
    return await request_validation_exception_handler(request, exc)


@app.exception_handler(HTTPException)
async def handle_http_exception(_request: Request, exc: HTTPException) -> JSONResponse:
    code = "VALIDATION_ERROR" if exc.status_code == 400 else "HTTP_ERROR"
    return _error(exc.status_code, code, str(exc.detail))


@app.get("/health")
def health() -> dict[str, object]:
    return {
        "status": "ok",
        "services": {
            "freshdesk": "configured" if freshdesk_client.enabled else "not_configured",
            "intercom": "configured" if intercom_client.enabled else "not_configured",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("deskcanvas.main:app", host="0.0.0.0", port=3001)
