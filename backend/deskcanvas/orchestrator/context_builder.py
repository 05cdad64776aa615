from __future__ import annotations

from typing import Any

from deskcanvas.orchestrator.types import ConversationContext


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _first_text(*values: Any) -> str:
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


class ContextBuilder:
    """Reads the per-request conversation context out of a canvas payload.

    The context is rebuilt for every request and handed down explicitly; nothing
    from one agent's request is remembered for the next.
    """

    def build(self, payload: dict[str, Any]) -> ConversationContext:
        conversation = _dict(payload.get("conversation"))
        contact = _dict(payload.get("contact"))
        customer = _dict(payload.get("customer"))
        conversation_contact = _dict(conversation.get("contact"))
        custom_attributes = _dict(conversation.get("custom_attributes"))
        source = _dict(conversation.get("source"))

        conversation_id = payload.get("conversation_id") or conversation.get("id")
        return ConversationContext(
            email=_first_text(contact.get("email"), customer.get("email"), conversation_contact.get("email")),
            contact_name=_first_text(contact.get("name"), customer.get("name")),
            conversation_id=str(conversation_id) if conversation_id not in (None, "") else None,
            default_description=_first_text(custom_attributes.get("default_description"), source.get("body")),
        )
