from __future__ import annotations

import html
from datetime import datetime
from typing import Any, Iterator
from zoneinfo import ZoneInfo

from deskcanvas.core.errors import TranscriptUnavailable, UpstreamUnavailable
from deskcanvas.core.utils import parse_timestamp
from deskcanvas.infrastructure.intercom_client import IntercomClient
from deskcanvas.infrastructure.logging import get_logger

logger = get_logger(__name__)


def _author_name(author: Any) -> str:
    if not isinstance(author, dict):
        return "Unknown"
    for key in ("name", "email"):
        value = author.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    author_type = str(author.get("type", "")).strip()
    return author_type.capitalize() if author_type else "Unknown"


def _conversation_messages(conversation: dict[str, Any]) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []
    source = conversation.get("source")
    if isinstance(source, dict):
        messages.append(
            {
                "author": source.get("author"),
                "body": source.get("body"),
                "created_at": conversation.get("created_at"),
            }
        )
    parts = conversation.get("conversation_parts")
    if isinstance(parts, dict):
        parts = parts.get("conversation_parts")
    if isinstance(parts, list):
        messages.extend(part for part in parts if isinstance(part, dict))
    return messages


def iter_transcript_blocks(conversation: dict[str, Any], *, tz: ZoneInfo) -> Iterator[str]:
    """Yields one HTML block per message with a body, oldest first."""
    messages = [row for row in _conversation_messages(conversation) if str(row.get("body") or "").strip()]
    ordered = sorted(
        enumerate(messages),
        key=lambda pair: (parse_timestamp(pair[1].get("created_at")) or datetime.min.replace(tzinfo=tz), pair[0]),
    )
    for _, message in ordered:
        created_at = parse_timestamp(message.get("created_at"))
        stamp = created_at.astimezone(tz).strftime("%d/%m/%Y, %I:%M %p") if created_at else ""
        author = html.escape(_author_name(message.get("author")))
        body = str(message.get("body")).strip()
        if "<" not in body:
            body = html.escape(body).replace("\n", "<br>")
        yield (
            '<div class="transcript-message">'
            f"<p><strong>{author}</strong> <em>{stamp}</em></p>"
            f"<div>{body}</div>"
            "</div>"
        )


class TranscriptFetcher:
    def __init__(self, *, intercom_client: IntercomClient, display_timezone: str = "UTC") -> None:
        self.intercom_client = intercom_client
        self.tz = ZoneInfo(display_timezone)

    async def fetch(self, conversation_id: str) -> str:
        try:
            conversation = await self.intercom_client.get_conversation(conversation_id)
        except UpstreamUnavailable as exc:
            raise TranscriptUnavailable(f"Conversation {conversation_id} could not be fetched: {exc}") from exc
        try:
            blocks = list(iter_transcript_blocks(conversation, tz=self.tz))
        except (TypeError, ValueError, AttributeError) as exc:
            raise TranscriptUnavailable(f"Conversation {conversation_id} could not be rendered: {exc}") from exc
        if not blocks:
            return ""
        logger.info("transcript_rendered", conversation_id=conversation_id, messages=len(blocks))
        return "<h3>Conversation Transcript</h3>" + "".join(blocks)
