from __future__ import annotations

import asyncio
from typing import Any

from deskcanvas.core.errors import UpstreamUnavailable
from deskcanvas.core.utils import parse_timestamp
from deskcanvas.infrastructure.freshdesk_client import FreshdeskClient
from deskcanvas.infrastructure.logging import get_logger
from deskcanvas.orchestrator.types import FieldChoice, FormOptions, Mailbox, RecentTicket

logger = get_logger(__name__)


def _to_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_mailbox(row: dict[str, Any]) -> Mailbox | None:
    mailbox_id = _to_int(row.get("id"))
    if mailbox_id is None:
        return None
    return Mailbox(
        id=mailbox_id,
        name=str(row.get("name") or ""),
        support_email=str(row.get("support_email") or ""),
        product_id=_to_int(row.get("product_id")),
        active=bool(row.get("active", True)),
        default_reply_email=bool(row.get("default_reply_email", False)),
    )


def parse_choice(row: dict[str, Any]) -> FieldChoice | None:
    choice_id = _to_int(row.get("id"))
    value = _to_int(row.get("value"))
    if choice_id is None and value is None:
        return None
    return FieldChoice(
        id=choice_id if choice_id is not None else value,  # type: ignore[arg-type]
        label=str(row.get("label") or row.get("value") or ""),
        value=value if value is not None else choice_id,  # type: ignore[arg-type]
    )


def parse_recent_ticket(row: dict[str, Any]) -> RecentTicket | None:
    ticket_id = _to_int(row.get("id"))
    if ticket_id is None:
        return None
    return RecentTicket(
        id=ticket_id,
        subject=str(row.get("subject") or ""),
        created_at=parse_timestamp(row.get("created_at")),
    )


class TicketMetadataService:
    """Stateless read-through lookups used to populate the canvas form."""

    def __init__(self, *, freshdesk_client: FreshdeskClient, recent_limit: int = 5) -> None:
        self.freshdesk_client = freshdesk_client
        self.recent_limit = recent_limit

    async def list_mailboxes(self) -> list[Mailbox]:
        rows = await self.freshdesk_client.list_mailboxes()
        return [mailbox for mailbox in (parse_mailbox(row) for row in rows) if mailbox is not None]

    async def _field_choices(self, field_name: str, fields: list[dict[str, Any]] | None = None) -> list[FieldChoice]:
        if fields is None:
            fields = await self.freshdesk_client.list_ticket_fields()
        target = next((row for row in fields if row.get("name") == field_name), None)
        if target is None or target.get("id") is None:
            raise UpstreamUnavailable(f"Ticket field '{field_name}' not found")
        detail = await self.freshdesk_client.get_ticket_field(target["id"])
        choices = detail.get("choices")
        if not isinstance(choices, list):
            return []
        return [choice for choice in (parse_choice(row) for row in choices if isinstance(row, dict)) if choice is not None]

    async def list_statuses(self) -> list[FieldChoice]:
        return await self._field_choices("status")

    async def list_priorities(self) -> list[FieldChoice]:
        return await self._field_choices("priority")

    async def load_form_options(self) -> FormOptions:
        mailboxes, fields = await asyncio.gather(
            self.list_mailboxes(),
            self.freshdesk_client.list_ticket_fields(),
        )
        names = {row.get("name") for row in fields}
        lookups = [
            self._field_choices(name, fields) if name in names else _no_choices()
            for name in ("status", "priority")
        ]
        statuses, priorities = await asyncio.gather(*lookups)
        return FormOptions(
            mailboxes=[mailbox for mailbox in mailboxes if mailbox.active and mailbox.product_id is not None],
            statuses=statuses,
            priorities=priorities,
        )

    async def recent_tickets(self, email: str) -> list[RecentTicket]:
        if not email:
            return []
        rows = await self.freshdesk_client.list_recent_tickets(email=email, limit=self.recent_limit)
        tickets = [ticket for ticket in (parse_recent_ticket(row) for row in rows) if ticket is not None]
        logger.info("recent_tickets_loaded", email=email, count=len(tickets))
        return tickets


async def _no_choices() -> list[FieldChoice]:
    return []
