from __future__ import annotations

from deskcanvas.core.config import Settings
from deskcanvas.infrastructure.freshdesk_client import FreshdeskClient
from deskcanvas.infrastructure.intercom_client import IntercomClient
from deskcanvas.infrastructure.logging import get_logger, setup_logging
from deskcanvas.orchestrator.context_builder import ContextBuilder
from deskcanvas.orchestrator.submission_orchestrator import SubmissionOrchestrator
from deskcanvas.services.metadata_service import TicketMetadataService
from deskcanvas.services.notification_service import Notifier
from deskcanvas.services.operation_tracker import OperationTracker
from deskcanvas.services.ticket_service import TicketCreator
from deskcanvas.services.transcript_service import TranscriptFetcher

logger = get_logger(__name__)

SHUTDOWN_DRAIN_SECONDS = 30.0


class Container:
    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings.from_env()
        self.freshdesk_client = FreshdeskClient(settings=self.settings)
        self.intercom_client = IntercomClient(settings=self.settings)
        self.operation_tracker = OperationTracker()
        self.metadata_service = TicketMetadataService(
            freshdesk_client=self.freshdesk_client,
            recent_limit=self.settings.recent_tickets_limit,
        )
        self.transcript_fetcher = TranscriptFetcher(
            intercom_client=self.intercom_client,
            display_timezone=self.settings.display_timezone,
        )
        self.ticket_creator = TicketCreator(
            settings=self.settings,
            freshdesk_client=self.freshdesk_client,
            transcript_fetcher=self.transcript_fetcher,
        )
        self.notifier = Notifier(
            settings=self.settings,
            intercom_client=self.intercom_client,
        )
        self.context_builder = ContextBuilder()
        self.submission_orchestrator = SubmissionOrchestrator(
            settings=self.settings,
            tracker=self.operation_tracker,
            metadata_service=self.metadata_service,
            ticket_creator=self.ticket_creator,
            notifier=self.notifier,
        )

    async def start(self) -> None:
        setup_logging(self.settings.log_level)
        if not self.freshdesk_client.enabled:
            logger.warning("freshdesk_not_configured")
        if not self.intercom_client.enabled:
            logger.warning("intercom_not_configured")

    async def stop(self) -> None:
        await self.submission_orchestrator.drain(timeout=SHUTDOWN_DRAIN_SECONDS)
        await self.freshdesk_client.http.aclose()
        await self.intercom_client.aclose()


container = Container()

# Routers import these module-level names directly.
settings = container.settings
freshdesk_client = container.freshdesk_client
intercom_client = container.intercom_client
operation_tracker = container.operation_tracker
metadata_service = container.metadata_service
transcript_fetcher = container.transcript_fetcher
ticket_creator = container.ticket_creator
notifier = container.notifier
context_builder = container.context_builder
submission_orchestrator = container.submission_orchestrator
