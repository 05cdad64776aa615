from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class OperationState(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class OperationRecord:
    state: OperationState
    started_at: datetime
    sequence: int
    updated_at: datetime
    ticket_id: int | None = None
    error_message: str | None = None

    @property
    def in_progress(self) -> bool:
        return self.state is OperationState.IN_PROGRESS


@dataclass(frozen=True)
class ConversationContext:
    email: str = ""
    contact_name: str = ""
    conversation_id: str | None = None
    default_description: str = ""

    @property
    def default_subject(self) -> str:
        if self.contact_name:
            return f"Conversation from {self.contact_name}"
        return "New Conversation"


@dataclass(frozen=True)
class SubmissionRequest:
    email: str
    subject: str
    description: str
    mailbox_id: int | None = None
    status_id: int | None = None
    priority_id: int | None = None
    conversation_id: str | None = None
    submission_id: str = ""


@dataclass(frozen=True)
class TicketPayload:
    email: str
    subject: str
    description: str
    source: int
    product_id: int | None = None
    status: int | None = None
    priority: int | None = None

    def to_json(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "email": self.email,
            "subject": self.subject,
            "description": self.description,
            "source": self.source,
        }
        if self.product_id is not None:
            payload["product_id"] = self.product_id
        if self.status is not None:
            payload["status"] = self.status
        if self.priority is not None:
            payload["priority"] = self.priority
        return payload


@dataclass(frozen=True)
class RecentTicket:
    id: int
    subject: str
    created_at: datetime | None


@dataclass(frozen=True)
class Mailbox:
    id: int
    name: str
    support_email: str
    product_id: int | None
    active: bool = True
    default_reply_email: bool = False


@dataclass(frozen=True)
class FieldChoice:
    id: int
    label: str
    value: int


@dataclass
class FormOptions:
    mailboxes: list[Mailbox] = field(default_factory=list)
    statuses: list[FieldChoice] = field(default_factory=list)
    priorities: list[FieldChoice] = field(default_factory=list)

    @property
    def default_mailbox(self) -> Mailbox | None:
        for mailbox in self.mailboxes:
            if mailbox.default_reply_email:
                return mailbox
        return self.mailboxes[0] if self.mailboxes else None

    @property
    def default_status(self) -> FieldChoice | None:
        return _choice_labelled(self.statuses, "open")

    @property
    def default_priority(self) -> FieldChoice | None:
        return _choice_labelled(self.priorities, "medium")


def _choice_labelled(choices: list[FieldChoice], label: str) -> FieldChoice | None:
    for choice in choices:
        if choice.label.strip().lower() == label:
            return choice
    return choices[0] if choices else None
