from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from deskcanvas.container import metadata_service, settings, ticket_creator
from deskcanvas.core.utils import parse_prefixed_int
from deskcanvas.models.schemas import (
    ChoiceOut,
    CreateTicketRequest,
    CreateTicketResponse,
    MailboxOut,
    RecentTicketOut,
)
from deskcanvas.orchestrator.types import SubmissionRequest

router = APIRouter(prefix="/freshdesk", tags=["freshdesk"])


@router.get("/mailboxes", response_model=list[MailboxOut])
async def list_mailboxes() -> list[MailboxOut]:
    mailboxes = await metadata_service.list_mailboxes()
    return [
        MailboxOut(
            id=mailbox.id,
            name=mailbox.name,
            support_email=mailbox.support_email,
            product_id=mailbox.product_id,
        )
        for mailbox in mailboxes
    ]


@router.get("/statuses", response_model=list[ChoiceOut])
async def list_statuses() -> list[ChoiceOut]:
    choices = await metadata_service.list_statuses()
    return [ChoiceOut(id=choice.id, label=choice.label, value=choice.value) for choice in choices]


@router.get("/priorities", response_model=list[ChoiceOut])
async def list_priorities() -> list[ChoiceOut]:
    choices = await metadata_service.list_priorities()
    return [ChoiceOut(id=choice.id, label=choice.label, value=choice.value) for choice in choices]


@router.get("/recent-tickets", response_model=list[RecentTicketOut])
async def list_recent_tickets(email: str = Query(default="")) -> list[RecentTicketOut]:
    if not email.strip():
        raise HTTPException(status_code=400, detail="Customer email is required")
    tickets = await metadata_service.recent_tickets(email.strip())
    return [
        RecentTicketOut(
            id=ticket.id,
            subject=ticket.subject,
            created_at=ticket.created_at.isoformat() if ticket.created_at else None,
        )
        for ticket in tickets
    ]


@router.post("/create-ticket", response_model=CreateTicketResponse)
async def create_ticket(payload: CreateTicketRequest) -> CreateTicketResponse:
    if not payload.email.strip() or not payload.subject.strip() or payload.product_id in (None, ""):
        raise HTTPException(status_code=400, detail="Missing required fields")
    request = SubmissionRequest(
        email=payload.email.strip(),
        subject=payload.subject.strip(),
        description=payload.description or settings.default_description,
        mailbox_id=parse_prefixed_int(payload.product_id, "product_"),
        status_id=parse_prefixed_int(payload.status, "status_"),
        priority_id=parse_prefixed_int(payload.priority, "priority_"),
        conversation_id=payload.resolved_conversation_id,
    )
    ticket_id = await ticket_creator.create_from_request(request)
    return CreateTicketResponse(
        success=True,
        ticket={"id": ticket_id, "url": settings.ticket_url(ticket_id)},
    )
