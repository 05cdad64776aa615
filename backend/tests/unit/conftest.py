from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

import httpx
import pytest

from deskcanvas.core.config import Settings
from deskcanvas.infrastructure.freshdesk_client import FreshdeskClient
from deskcanvas.infrastructure.http_client import RetryingHttpClient
from deskcanvas.infrastructure.intercom_client import IntercomClient
from deskcanvas.orchestrator.submission_orchestrator import SubmissionOrchestrator
from deskcanvas.services.metadata_service import TicketMetadataService
from deskcanvas.services.notification_service import Notifier
from deskcanvas.services.operation_tracker import OperationTracker
from deskcanvas.services.ticket_service import TicketCreator
from deskcanvas.services.transcript_service import TranscriptFetcher

T = TypeVar("T")


def make_settings(**overrides: Any) -> Settings:
    data: dict[str, Any] = {
        "freshdesk_domain": "https://acme.freshdesk.com",
        "freshdesk_api_key": "fd-test-key",
        "intercom_access_token": "ic-test-token",
        "intercom_admin_id": 7,
        "http_base_delay_seconds": 0.0,
        "http_max_delay_seconds": 0.0,
        "http_jitter_ratio": 0.0,
        "display_timezone": "UTC",
    }
    data.update(overrides)
    return Settings(**data)


@dataclass
class Stack:
    settings: Settings
    freshdesk_client: FreshdeskClient
    intercom_client: IntercomClient
    tracker: OperationTracker
    metadata_service: TicketMetadataService
    ticket_creator: TicketCreator
    notifier: Notifier
    orchestrator: SubmissionOrchestrator

    def run(self, work: Callable[[], Awaitable[T]]) -> T:
        """Runs ``work`` on a fresh loop, then waits for background tickets and closes clients."""

        async def _main() -> T:
            try:
                return await work()
            finally:
                await self.orchestrator.drain(timeout=5.0)
                await self.freshdesk_client.http.aclose()
                await self.intercom_client.aclose()

        return asyncio.run(_main())


@pytest.fixture
def make_stack(fake_freshdesk: Any, fake_intercom: Any) -> Callable[..., Stack]:
    def _build(**overrides: Any) -> Stack:
        settings = make_settings(**overrides)
        freshdesk_client = FreshdeskClient(
            settings=settings,
            http=RetryingHttpClient(
                name="freshdesk",
                base_url=settings.freshdesk_api_base,
                policy=settings.retry_policy,
                transport=httpx.MockTransport(fake_freshdesk.handler),
            ),
        )
        intercom_client = IntercomClient(
            settings=settings,
            http=RetryingHttpClient(
                name="intercom",
                base_url=settings.intercom_api_url,
                policy=settings.retry_policy,
                transport=httpx.MockTransport(fake_intercom.handler),
            ),
            notes_http=RetryingHttpClient(
                name="intercom-notes",
                base_url=settings.intercom_api_url,
                policy=settings.note_retry_policy,
                transport=httpx.MockTransport(fake_intercom.handler),
            ),
        )
        tracker = OperationTracker()
        metadata_service = TicketMetadataService(
            freshdesk_client=freshdesk_client,
            recent_limit=settings.recent_tickets_limit,
        )
        ticket_creator = TicketCreator(
            settings=settings,
            freshdesk_client=freshdesk_client,
            transcript_fetcher=TranscriptFetcher(
                intercom_client=intercom_client,
                display_timezone=settings.display_timezone,
            ),
        )
        notifier = Notifier(settings=settings, intercom_client=intercom_client)
        orchestrator = SubmissionOrchestrator(
            settings=settings,
            tracker=tracker,
            metadata_service=metadata_service,
            ticket_creator=ticket_creator,
            notifier=notifier,
        )
        return Stack(
            settings=settings,
            freshdesk_client=freshdesk_client,
            intercom_client=intercom_client,
            tracker=tracker,
            metadata_service=metadata_service,
            ticket_creator=ticket_creator,
            notifier=notifier,
            orchestrator=orchestrator,
        )

    return _build
