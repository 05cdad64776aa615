from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CanvasRequest(BaseModel):
    """Initialize / submit payload posted by the inbox host. Unknown keys are kept."""

    model_config = ConfigDict(extra="allow")

    component_id: str | None = None
    input_values: dict[str, Any] = Field(default_factory=dict)
    conversation_id: str | int | None = None
    conversation: dict[str, Any] | None = None
    contact: dict[str, Any] | None = None
    customer: dict[str, Any] | None = None

    @field_validator("input_values", mode="before")
    @classmethod
    def _input_values_as_dict(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @field_validator("conversation", "contact", "customer", mode="before")
    @classmethod
    def _object_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None

    @field_validator("component_id", mode="before")
    @classmethod
    def _component_id_as_text(cls, value: Any) -> Any:
        if isinstance(value, (str, int)) and not isinstance(value, bool):
            return str(value)
        return None

    @field_validator("conversation_id", mode="before")
    @classmethod
    def _conversation_id_or_none(cls, value: Any) -> Any:
        if isinstance(value, (str, int)) and not isinstance(value, bool):
            return value
        return None


class CreateTicketRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: str = ""
    subject: str = ""
    description: str = ""
    product_id: int | str | None = None
    status: int | str | None = None
    priority: int | str | None = None
    conversation_id: str | int | None = None
    conversation: dict[str, Any] | None = None

    @property
    def resolved_conversation_id(self) -> str | None:
        value = self.conversation_id
        if value in (None, "") and self.conversation:
            value = self.conversation.get("id")
        return str(value) if value not in (None, "") else None


class MailboxOut(BaseModel):
    id: int
    name: str
    support_email: str
    product_id: int | None = None


class ChoiceOut(BaseModel):
    id: int
    label: str
    value: int


class RecentTicketOut(BaseModel):
    id: int
    subject: str
    created_at: str | None = None


class CreateTicketResponse(BaseModel):
    success: bool
    ticket: dict[str, Any]
