from __future__ import annotations

import asyncio
from threading import Lock
from typing import Any, Mapping
from zoneinfo import ZoneInfo

import structlog

from deskcanvas.canvas.views import (
    home_view,
    initialize_error_view,
    metadata_error_view,
    ticket_form_view,
    unexpected_error_view,
)
from deskcanvas.core.config import Settings
from deskcanvas.core.errors import PreconditionViolation, UpstreamUnavailable, ValidationError
from deskcanvas.core.utils import generate_id
from deskcanvas.infrastructure.logging import get_logger
from deskcanvas.orchestrator.submission_form import parse_submission
from deskcanvas.orchestrator.types import ConversationContext, FormOptions, RecentTicket, SubmissionRequest
from deskcanvas.services.metadata_service import TicketMetadataService
from deskcanvas.services.notification_service import Notifier
from deskcanvas.services.operation_tracker import OperationTracker
from deskcanvas.services.ticket_service import TicketCreator

logger = get_logger(__name__)

View = dict[str, Any]

OPEN_FORM_ACTIONS = {"create_ticket", "retry_button"}
SUBMIT_ACTION = "submit_ticket_button"
CANCEL_ACTION = "cancel"


class ResponseCell:
    """Holds the single view sent back for one submission.

    The first ``offer`` wins; later offers are rejected and report ``False``.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._value: View | None = None
        self._source: str | None = None

    def offer(self, view: View, *, source: str) -> bool:
        with self._lock:
            if self._source is not None:
                return False
            self._value = view
            self._source = source
            return True

    @property
    def source(self) -> str | None:
        return self._source

    @property
    def value(self) -> View:
        if self._value is None:
            raise RuntimeError("No view has been offered")
        return self._value


class _BackgroundLaunch:
    """Starts the background ticket task for one submission at most once."""

    def __init__(self, orchestrator: "SubmissionOrchestrator", request: SubmissionRequest) -> None:
        self._orchestrator = orchestrator
        self._request = request
        self._lock = Lock()
        self._started = False

    def start(self) -> bool:
        with self._lock:
            if self._started:
                return False
            self._started = True
        self._orchestrator._launch_background(self._request)
        return True


class SubmissionOrchestrator:
    def __init__(
        self,
        *,
        settings: Settings,
        tracker: OperationTracker,
        metadata_service: TicketMetadataService,
        ticket_creator: TicketCreator,
        notifier: Notifier,
    ) -> None:
        self.settings = settings
        self.tracker = tracker
        self.metadata_service = metadata_service
        self.ticket_creator = ticket_creator
        self.notifier = notifier
        self.tz = ZoneInfo(settings.display_timezone)
        self._detached: set[asyncio.Task[Any]] = set()

    @property
    def response_budget_seconds(self) -> float:
        return max(0.0, self.settings.submit_deadline_seconds - self.settings.deadline_margin_seconds)

    async def initialize(self, context: ConversationContext) -> View:
        try:
            if context.email:
                self.tracker.clear_if_stale(
                    context.email,
                    older_than_seconds=self.settings.tracker_stale_after_seconds,
                )
            return self._home(await self._recent_tickets(context.email))
        except Exception:
            logger.exception("canvas_initialize_failed", email=context.email)
            return initialize_error_view()

    async def submit(
        self,
        action_id: str | None,
        input_values: Mapping[str, Any] | None,
        context: ConversationContext,
    ) -> View:
        input_values = input_values or {}
        try:
            if action_id in OPEN_FORM_ACTIONS:
                return await self._open_form(context)
            if action_id == SUBMIT_ACTION:
                return await self._submit_ticket(input_values, context)
            if action_id == CANCEL_ACTION:
                return self._home(await self._recent_tickets(context.email))
            logger.info("canvas_action_fallback", action_id=action_id)
            return self._home([])
        except Exception as exc:
            logger.exception("canvas_submit_failed", action_id=action_id)
            return unexpected_error_view(str(exc))

    async def _open_form(self, context: ConversationContext) -> View:
        try:
            options = await self._form_options()
        except (UpstreamUnavailable, asyncio.TimeoutError) as exc:
            logger.error("form_metadata_unavailable", error=str(exc) or type(exc).__name__)
            return metadata_error_view()
        return ticket_form_view(
            options,
            email=context.email,
            subject=context.default_subject,
            description=self.settings.default_description,
        )

    async def _form_options(self) -> FormOptions:
        """Dropdown metadata, bounded by the response budget."""
        return await asyncio.wait_for(
            self.metadata_service.load_form_options(),
            timeout=self.response_budget_seconds,
        )

    async def _submit_ticket(self, input_values: Mapping[str, Any], context: ConversationContext) -> View:
        try:
            request = parse_submission(
                input_values,
                context,
                default_description=self.settings.default_description,
                submission_id=generate_id("sub"),
            )
        except ValidationError as exc:
            logger.info("submission_invalid", fields=sorted(exc.field_errors))
            return await self._invalid_form(input_values, exc.field_errors)
        return await self._accept_within_deadline(request)

    async def _invalid_form(self, input_values: Mapping[str, Any], errors: dict[str, str]) -> View:
        try:
            options = await self._form_options()
        except (UpstreamUnavailable, asyncio.TimeoutError) as exc:
            logger.warning("form_metadata_unavailable", error=str(exc) or type(exc).__name__)
            options = FormOptions()
        description = input_values.get("description")
        return ticket_form_view(
            options,
            email=str(input_values.get("email") or "").strip(),
            subject=str(input_values.get("subject") or "").strip(),
            description=description if isinstance(description, str) and description else self.settings.default_description,
            submitted=input_values,
            errors=errors,
        )

    async def _accept_within_deadline(self, request: SubmissionRequest) -> View:
        cell = ResponseCell()
        launch = _BackgroundLaunch(self, request)
        accepted = asyncio.create_task(self._accept(request, launch, cell))
        try:
            await asyncio.wait_for(asyncio.shield(accepted), timeout=self.response_budget_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "submit_deadline_fallback",
                submission_id=request.submission_id,
                budget_seconds=self.response_budget_seconds,
            )
            # The accepted path keeps running; whatever it offers later is discarded.
            self._detach(accepted)
            launch.start()
            tickets = await self._recent_tickets_within(request.email, self.settings.deadline_margin_seconds)
            cell.offer(self._home(tickets), source="deadline")
        logger.info("submission_accepted", submission_id=request.submission_id, response=cell.source)
        return cell.value

    async def _accept(self, request: SubmissionRequest, launch: _BackgroundLaunch, cell: ResponseCell) -> None:
        launch.start()
        view = self._home(await self._recent_tickets(request.email))
        if not cell.offer(view, source="accepted"):
            logger.info("accepted_view_discarded", submission_id=request.submission_id)

    def _launch_background(self, request: SubmissionRequest) -> None:
        sequence = self.tracker.mark_in_progress(request.email)
        task = asyncio.create_task(
            self._create_ticket_in_background(request, sequence),
            name=f"ticket-{request.submission_id}",
        )
        self._detach(task)

    async def _create_ticket_in_background(self, request: SubmissionRequest, sequence: int) -> None:
        # Bound to this task's context only; upstream retry logs pick it up.
        structlog.contextvars.bind_contextvars(
            submission_id=request.submission_id,
            email=request.email,
            conversation_id=request.conversation_id,
            sequence=sequence,
        )
        try:
            transcript = await self.ticket_creator.fetch_transcript(request.conversation_id)
            payload = self.ticket_creator.build_payload(request, transcript)
            ticket_id = await self.ticket_creator.create_ticket(payload)
        except Exception as exc:
            error_message = exc.user_message if isinstance(exc, UpstreamUnavailable) else str(exc)
            if isinstance(exc, (UpstreamUnavailable, PreconditionViolation)):
                logger.error("background_ticket_failed", error=error_message)
            else:
                logger.exception("background_ticket_crashed", error=error_message)
            try:
                await self.notifier.notify_failure(
                    conversation_id=request.conversation_id,
                    error_message=error_message,
                )
            finally:
                self.tracker.mark_failed(request.email, error_message, sequence=sequence)
            return

        logger.info("background_ticket_created", ticket_id=ticket_id)
        try:
            await self.notifier.notify_success(conversation_id=request.conversation_id, ticket_id=ticket_id)
        finally:
            self.tracker.mark_completed(request.email, ticket_id, sequence=sequence)

    def _detach(self, task: asyncio.Task[Any]) -> None:
        if task in self._detached:
            return
        self._detached.add(task)
        task.add_done_callback(self._on_detached_done)

    def _on_detached_done(self, task: asyncio.Task[Any]) -> None:
        self._detached.discard(task)
        if task.cancelled():
            logger.warning("detached_task_cancelled", task=task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error("detached_task_failed", task=task.get_name(), error=str(exc), exc_info=exc)

    @property
    def pending_tasks(self) -> int:
        return sum(1 for task in self._detached if not task.done())

    async def drain(self, timeout: float | None = None) -> None:
        """Waits for detached work (background tickets, late accepted views) to finish."""
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while True:
            pending = {task for task in self._detached if not task.done()}
            if not pending:
                return
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                logger.warning("drain_timed_out", pending=len(pending))
                return
            await asyncio.wait(pending, timeout=remaining)

    async def _recent_tickets(self, email: str) -> list[RecentTicket]:
        try:
            return await self.metadata_service.recent_tickets(email)
        except UpstreamUnavailable as exc:
            logger.warning("recent_tickets_unavailable", email=email, error=str(exc))
            return []

    async def _recent_tickets_within(self, email: str, timeout: float) -> list[RecentTicket]:
        try:
            return await asyncio.wait_for(self._recent_tickets(email), timeout=max(0.0, timeout))
        except asyncio.TimeoutError:
            logger.warning("recent_tickets_timed_out", email=email, timeout_seconds=timeout)
            return []

    def _home(self, tickets: list[RecentTicket]) -> View:
        return home_view(tickets, ticket_url=self.settings.ticket_url, tz=self.tz)
