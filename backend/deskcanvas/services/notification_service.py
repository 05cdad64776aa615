from __future__ import annotations

from deskcanvas.core.config import Settings
from deskcanvas.core.errors import UpstreamUnavailable
from deskcanvas.infrastructure.intercom_client import IntercomClient
from deskcanvas.infrastructure.logging import get_logger

logger = get_logger(__name__)


class Notifier:
    """Posts ticket outcomes back into the originating conversation as admin notes."""

    def __init__(self, *, settings: Settings, intercom_client: IntercomClient) -> None:
        self.settings = settings
        self.intercom_client = intercom_client

    async def notify_success(self, *, conversation_id: str | None, ticket_id: int) -> bool:
        body = (
            "Freshdesk ticket creation successful.\n"
            f"Ticket URL: {self.settings.ticket_url(ticket_id)}"
        )
        return await self._post(conversation_id, body, outcome="success")

    async def notify_failure(self, *, conversation_id: str | None, error_message: str) -> bool:
        body = (
            "Freshdesk ticket creation failed. Contact Admin.\n"
            f"Error: {error_message}"
        )
        return await self._post(conversation_id, body, outcome="failure")

    async def _post(self, conversation_id: str | None, body: str, *, outcome: str) -> bool:
        if not conversation_id:
            logger.info("outcome_note_skipped", outcome=outcome, reason="no_conversation_id")
            return False
        try:
            await self.intercom_client.post_note(conversation_id, body)
        except UpstreamUnavailable as exc:
            logger.error("outcome_note_failed", conversation_id=conversation_id, outcome=outcome, error=str(exc))
            return False
        logger.info("outcome_note_posted", conversation_id=conversation_id, outcome=outcome)
        return True
