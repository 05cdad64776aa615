from __future__ import annotations

from typing import Any

from deskcanvas.core.config import Settings
from deskcanvas.core.errors import UpstreamUnavailable
from deskcanvas.infrastructure.http_client import RetryingHttpClient


class IntercomClient:
    def __init__(
        self,
        *,
        settings: Settings,
        http: RetryingHttpClient | None = None,
        notes_http: RetryingHttpClient | None = None,
    ) -> None:
        self.settings = settings
        headers = {
            "Authorization": f"Bearer {settings.intercom_access_token}",
            "Content-Type": "application/json",
        }
        self.http = http or RetryingHttpClient(
            name="intercom",
            base_url=settings.intercom_api_url,
            policy=settings.retry_policy,
            headers=headers,
        )
        # Notes are not idempotent, so they get their own (shorter) retry budget.
        self.notes_http = notes_http or RetryingHttpClient(
            name="intercom-notes",
            base_url=settings.intercom_api_url,
            policy=settings.note_retry_policy,
            headers=headers,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.settings.intercom_access_token)

    async def get_conversation(self, conversation_id: str) -> dict[str, Any]:
        payload = await self.http.get_json(f"/conversations/{conversation_id}")
        if not isinstance(payload, dict):
            raise UpstreamUnavailable(f"Unexpected conversation payload for {conversation_id}", detail=payload)
        return payload

    async def post_note(self, conversation_id: str, body: str) -> dict[str, Any]:
        payload = await self.notes_http.post_json(
            f"/conversations/{conversation_id}/reply",
            {
                "message_type": "note",
                "type": "admin",
                "admin_id": self.settings.intercom_admin_id,
                "body": body,
            },
        )
        return payload if isinstance(payload, dict) else {}

    async def aclose(self) -> None:
        await self.http.aclose()
        await self.notes_http.aclose()
