from __future__ import annotations

import asyncio
from typing import Any

import pytest

from deskcanvas.core.config import Settings
from deskcanvas.core.errors import PreconditionViolation, TranscriptUnavailable
from deskcanvas.orchestrator.types import SubmissionRequest
from deskcanvas.services.ticket_service import (
    BANNER_URL_LABEL,
    TicketCreator,
    build_source_banner,
    merge_source_banner,
)

SETTINGS = Settings(
    freshdesk_domain="https://acme.freshdesk.com",
    freshdesk_api_key="fd-test-key",
    intercom_inbox_url="https://app.intercom.com/a/inbox/abc",
)


class _FakeFreshdesk:
    def __init__(self) -> None:
        self.created: list[dict[str, Any]] = []

    async def create_ticket(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.created.append(payload)
        return {"id": 42, **payload}


class _FakeTranscripts:
    def __init__(self, transcript: str = "", error: Exception | None = None) -> None:
        self.transcript = transcript
        self.error = error
        self.calls: list[str] = []

    async def fetch(self, conversation_id: str) -> str:
        self.calls.append(conversation_id)
        if self.error is not None:
            raise self.error
        return self.transcript


def _creator(transcripts: _FakeTranscripts | None = None) -> tuple[TicketCreator, _FakeFreshdesk]:
    freshdesk = _FakeFreshdesk()
    creator = TicketCreator(
        settings=SETTINGS,
        freshdesk_client=freshdesk,  # type: ignore[arg-type]
        transcript_fetcher=transcripts or _FakeTranscripts(),  # type: ignore[arg-type]
    )
    return creator, freshdesk


def _request(**overrides: Any) -> SubmissionRequest:
    data: dict[str, Any] = {
        "email": "jane@acme.test",
        "subject": "Late order",
        "description": "Chat Transcript Added",
        "mailbox_id": 501,
        "status_id": 2,
        "priority_id": 2,
        "conversation_id": "123",
    }
    data.update(overrides)
    return SubmissionRequest(**data)


def test_banner_replaces_anchor_in_place() -> None:
    banner = build_source_banner("https://inbox.test/conversation/123")
    merged = merge_source_banner("Chat Transcript Added\n\nCustomer wants a refund", banner)

    assert merged == (
        "Chat Transcript Added\n\n"
        "Intercom Conversation URL: https://inbox.test/conversation/123\n\n"
        "Customer wants a refund"
    )


def test_banner_merge_is_idempotent() -> None:
    banner = build_source_banner("https://inbox.test/conversation/123")
    once = merge_source_banner("Chat Transcript Added", banner)
    twice = merge_source_banner(once, banner)

    assert twice == once
    assert twice.count(BANNER_URL_LABEL) == 1


def test_banner_merge_replaces_an_older_url() -> None:
    old = "Chat Transcript Added\n\nIntercom Conversation URL: https://inbox.test/conversation/1\n\nnotes"
    merged = merge_source_banner(old, build_source_banner("https://inbox.test/conversation/2"))

    assert merged.count(BANNER_URL_LABEL) == 1
    assert "conversation/2" in merged
    assert "conversation/1\n" not in merged
    assert merged.endswith("\n\nnotes")


def test_banner_is_prepended_when_anchor_missing() -> None:
    banner = build_source_banner("https://inbox.test/conversation/9")

    assert merge_source_banner("Printer is on fire", banner) == f"{banner}\n\nPrinter is on fire"
    assert merge_source_banner("", banner) == banner


def test_build_payload_appends_transcript_and_banner() -> None:
    creator, _ = _creator()
    payload = creator.build_payload(_request(), "<h3>Conversation Transcript</h3><div>hi</div>")

    assert payload.description.startswith(
        "Chat Transcript Added\n\nIntercom Conversation URL: https://app.intercom.com/a/inbox/abc/conversation/123"
    )
    assert payload.description.endswith("<h3>Conversation Transcript</h3><div>hi</div>")
    assert payload.to_json() == {
        "email": "jane@acme.test",
        "subject": "Late order",
        "description": payload.description,
        "source": 2,
        "product_id": 501,
        "status": 2,
        "priority": 2,
    }


def test_build_payload_without_conversation_has_no_banner() -> None:
    creator, _ = _creator()
    payload = creator.build_payload(_request(conversation_id=None, description="", status_id=None))

    assert payload.description == "Chat Transcript Added"
    assert BANNER_URL_LABEL not in payload.description
    assert "status" not in payload.to_json()


def test_create_ticket_requires_email_subject_and_mailbox() -> None:
    creator, freshdesk = _creator()
    payload = creator.build_payload(_request(subject="  ", mailbox_id=None))

    with pytest.raises(PreconditionViolation) as exc_info:
        asyncio.run(creator.create_ticket(payload))

    assert exc_info.value.missing == ["subject", "product_id"]
    assert freshdesk.created == []


def test_create_from_request_fetches_transcript() -> None:
    transcripts = _FakeTranscripts("<h3>Conversation Transcript</h3>")
    creator, freshdesk = _creator(transcripts)

    ticket_id = asyncio.run(creator.create_from_request(_request()))

    assert ticket_id == 42
    assert transcripts.calls == ["123"]
    assert "<h3>Conversation Transcript</h3>" in freshdesk.created[0]["description"]


def test_missing_transcript_does_not_block_ticket() -> None:
    transcripts = _FakeTranscripts(error=TranscriptUnavailable("gone"))
    creator, freshdesk = _creator(transcripts)

    assert asyncio.run(creator.create_from_request(_request())) == 42
    assert "Conversation Transcript" not in freshdesk.created[0]["description"]
