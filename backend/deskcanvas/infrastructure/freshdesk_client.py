from __future__ import annotations

from typing import Any

from deskcanvas.core.config import Settings
from deskcanvas.core.errors import UpstreamUnavailable
from deskcanvas.infrastructure.http_client import RetryingHttpClient


class FreshdeskClient:
    """Ticketing API calls. Every call goes through the retrying client."""

    def __init__(self, *, settings: Settings, http: RetryingHttpClient | None = None) -> None:
        self.settings = settings
        self.http = http or RetryingHttpClient(
            name="freshdesk",
            base_url=settings.freshdesk_api_base,
            policy=settings.retry_policy,
            auth=(settings.freshdesk_api_key, settings.freshdesk_password),
            headers={"Content-Type": "application/json"},
        )

    @property
    def enabled(self) -> bool:
        return bool(self.settings.freshdesk_domain and self.settings.freshdesk_api_key)

    async def list_recent_tickets(self, *, email: str, limit: int = 5) -> list[dict[str, Any]]:
        payload = await self.http.get_json(
            "/tickets",
            params={
                "email": email,
                "order_by": "created_at",
                "order_type": "desc",
                "per_page": limit,
            },
        )
        return _as_rows(payload, "/tickets")

    async def list_mailboxes(self) -> list[dict[str, Any]]:
        payload = await self.http.get_json("/email/mailboxes")
        return _as_rows(payload, "/email/mailboxes")

    async def list_ticket_fields(self) -> list[dict[str, Any]]:
        payload = await self.http.get_json("/admin/ticket_fields")
        return _as_rows(payload, "/admin/ticket_fields")

    async def get_ticket_field(self, field_id: int | str) -> dict[str, Any]:
        payload = await self.http.get_json(f"/admin/ticket_fields/{field_id}")
        if not isinstance(payload, dict):
            raise UpstreamUnavailable(f"Unexpected ticket field payload for {field_id}")
        return payload

    async def create_ticket(self, payload: dict[str, Any]) -> dict[str, Any]:
        created = await self.http.post_json("/tickets", payload)
        if not isinstance(created, dict) or created.get("id") is None:
            raise UpstreamUnavailable("Ticket creation response did not include a ticket id", detail=created)
        return created


def _as_rows(payload: Any, path: str) -> list[dict[str, Any]]:
    if not isinstance(payload, list):
        raise UpstreamUnavailable(f"Expected a list from {path}", detail=payload)
    return [row for row in payload if isinstance(row, dict)]
