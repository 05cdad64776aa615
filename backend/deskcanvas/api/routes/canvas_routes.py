from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from deskcanvas.canvas.views import initialize_error_view, unexpected_error_view
from deskcanvas.container import context_builder, submission_orchestrator
from deskcanvas.infrastructure.logging import get_logger
from deskcanvas.models.schemas import CanvasRequest

router = APIRouter(tags=["canvas"])
logger = get_logger(__name__)


@router.post("/initialize")
async def initialize_canvas(payload: CanvasRequest) -> dict[str, Any]:
    try:
        context = context_builder.build(payload.model_dump())
        logger.info("canvas_initialize", email=context.email, conversation_id=context.conversation_id)
        return await submission_orchestrator.initialize(context)
    except Exception:
        logger.exception("canvas_initialize_failed")
        return initialize_error_view()


@router.post("/submit")
async def submit_canvas(payload: CanvasRequest) -> dict[str, Any]:
    try:
        context = context_builder.build(payload.model_dump())
        logger.info(
            "canvas_submit",
            action_id=payload.component_id,
            email=context.email,
            conversation_id=context.conversation_id,
        )
        return await submission_orchestrator.submit(payload.component_id, payload.input_values, context)
    except Exception as exc:
        logger.exception("canvas_submit_failed", action_id=payload.component_id)
        return unexpected_error_view(str(exc))
