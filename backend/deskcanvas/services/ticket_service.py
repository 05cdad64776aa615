from __future__ import annotations

import re

from deskcanvas.core.config import Settings
from deskcanvas.core.errors import PreconditionViolation, TranscriptUnavailable
from deskcanvas.infrastructure.freshdesk_client import FreshdeskClient
from deskcanvas.infrastructure.logging import get_logger
from deskcanvas.orchestrator.types import SubmissionRequest, TicketPayload
from deskcanvas.services.transcript_service import TranscriptFetcher

logger = get_logger(__name__)

BANNER_ANCHOR = "Chat Transcript Added"
BANNER_URL_LABEL = "Intercom Conversation URL:"

# The anchor plus the URL line a previous merge put after it.
_BANNER_PATTERN = re.compile(
    re.escape(BANNER_ANCHOR) + r"(?:[ \t]*\n\s*" + re.escape(BANNER_URL_LABEL) + r"[^\n]*)?"
)


def build_source_banner(conversation_url: str) -> str:
    return f"{BANNER_ANCHOR}\n\n{BANNER_URL_LABEL} {conversation_url}"


def merge_source_banner(description: str, banner: str) -> str:
    """Puts ``banner`` into ``description`` exactly once.

    An existing anchor (with or without the URL line of an earlier merge) is
    replaced in place; otherwise the banner is prepended.
    """
    description = description or ""
    if BANNER_ANCHOR in description:
        return _BANNER_PATTERN.sub(lambda _match: banner, description, count=1)
    if not description.strip():
        return banner
    return f"{banner}\n\n{description}"


class TicketCreator:
    def __init__(
        self,
        *,
        settings: Settings,
        freshdesk_client: FreshdeskClient,
        transcript_fetcher: TranscriptFetcher,
    ) -> None:
        self.settings = settings
        self.freshdesk_client = freshdesk_client
        self.transcript_fetcher = transcript_fetcher

    def build_payload(self, request: SubmissionRequest, transcript: str = "") -> TicketPayload:
        description = request.description or self.settings.default_description
        if transcript:
            description = f"{description}\n\n{transcript}"
        if request.conversation_id:
            banner = build_source_banner(self.settings.conversation_url(request.conversation_id))
            description = merge_source_banner(description, banner)
        return TicketPayload(
            email=request.email.strip(),
            subject=request.subject.strip(),
            description=description,
            source=self.settings.ticket_source,
            product_id=request.mailbox_id,
            status=request.status_id,
            priority=request.priority_id,
        )

    async def create_ticket(self, payload: TicketPayload) -> int:
        missing = [
            name
            for name, value in (
                ("email", payload.email),
                ("subject", payload.subject),
                ("product_id", payload.product_id),
            )
            if value is None or (isinstance(value, str) and not value.strip())
        ]
        if missing:
            raise PreconditionViolation(missing)

        created = await self.freshdesk_client.create_ticket(payload.to_json())
        ticket_id = int(created["id"])
        logger.info("ticket_created", ticket_id=ticket_id, email=payload.email, product_id=payload.product_id)
        return ticket_id

    async def fetch_transcript(self, conversation_id: str | None) -> str:
        if not conversation_id:
            return ""
        try:
            return await self.transcript_fetcher.fetch(conversation_id)
        except TranscriptUnavailable as exc:
            logger.warning("transcript_unavailable", conversation_id=conversation_id, error=str(exc))
            return ""

    async def create_from_request(self, request: SubmissionRequest) -> int:
        transcript = await self.fetch_transcript(request.conversation_id)
        return await self.create_ticket(self.build_payload(request, transcript))
