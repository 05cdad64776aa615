from __future__ import annotations

import asyncio
import json
import os
from typing import Any

import httpx
import pytest

# The app container is built at import time from the environment.
os.environ.setdefault("FRESHDESK_DOMAIN", "https://acme.freshdesk.com")
os.environ.setdefault("FRESHDESK_API_KEY", "fd-test-key")
os.environ.setdefault("INTERCOM_ACCESS_TOKEN", "ic-test-token")
os.environ.setdefault("INTERCOM_ADMIN_ID", "7")
os.environ.setdefault("DISPLAY_TIMEZONE", "UTC")

from deskcanvas.container import operation_tracker  # noqa: E402

# 2024-05-01T10:00:00Z
CONVERSATION_STARTED_AT = 1714557600


class FakeFreshdesk:
    """Answers the ticketing API calls the service makes, and records them."""

    def __init__(self) -> None:
        self.mailboxes: list[dict[str, Any]] = [
            {
                "id": 11,
                "name": "Support",
                "support_email": "support@acme.test",
                "product_id": 501,
                "active": True,
                "default_reply_email": True,
            },
            {
                "id": 12,
                "name": "Billing",
                "support_email": "billing@acme.test",
                "product_id": 502,
                "active": True,
                "default_reply_email": False,
            },
            {
                "id": 13,
                "name": "Legacy",
                "support_email": "old@acme.test",
                "product_id": None,
                "active": True,
            },
        ]
        self.ticket_fields: list[dict[str, Any]] = [
            {"id": 1, "name": "status"},
            {"id": 2, "name": "priority"},
            {"id": 3, "name": "requester"},
        ]
        self.field_choices: dict[int, list[dict[str, Any]]] = {
            1: [
                {"id": 2, "label": "Open", "value": 2},
                {"id": 3, "label": "Pending", "value": 3},
            ],
            2: [
                {"id": 1, "label": "Low", "value": 1},
                {"id": 2, "label": "Medium", "value": 2},
            ],
        }
        self.recent: list[dict[str, Any]] = [
            {"id": 7, "subject": "Order arrived damaged", "created_at": "2024-05-01T10:00:00Z"},
        ]
        self.next_ticket_id = 42
        self.fail_status: dict[str, int] = {}
        self.delay: dict[str, float] = {}
        self.requests: list[httpx.Request] = []
        self.created: list[dict[str, Any]] = []

    def count(self, method: str, path: str) -> int:
        return sum(1 for request in self.requests if _route(request, "/api/v2") == f"{method} {path}")

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = _route(request, "/api/v2")
        if route in self.delay:
            await asyncio.sleep(self.delay[route])
        if route in self.fail_status:
            return httpx.Response(self.fail_status[route], json={"description": "Upstream exploded"})

        method, path = route.split(" ", 1)
        if route == "GET /tickets":
            return httpx.Response(200, json=self.recent)
        if route == "GET /email/mailboxes":
            return httpx.Response(200, json=self.mailboxes)
        if route == "GET /admin/ticket_fields":
            return httpx.Response(200, json=self.ticket_fields)
        if method == "GET" and path.startswith("/admin/ticket_fields/"):
            field_id = int(path.rsplit("/", 1)[1])
            return httpx.Response(200, json={"id": field_id, "choices": self.field_choices.get(field_id, [])})
        if route == "POST /tickets":
            body = json.loads(request.content)
            self.created.append(body)
            return httpx.Response(201, json={"id": self.next_ticket_id, **body})
        return httpx.Response(404, json={"description": f"No route for {route}"})


class FakeIntercom:
    """Serves one conversation and records the admin notes posted to it."""

    def __init__(self) -> None:
        self.conversation: dict[str, Any] = {
            "id": "123",
            "created_at": CONVERSATION_STARTED_AT,
            "source": {
                "author": {"type": "user", "name": "Jane Doe"},
                "body": "<p>My order is late</p>",
            },
            "conversation_parts": {
                "conversation_parts": [
                    {
                        "author": {"type": "admin", "name": "Sam"},
                        "body": "Looking into it",
                        "created_at": CONVERSATION_STARTED_AT + 60,
                    },
                    {
                        "author": {"type": "bot"},
                        "body": None,
                        "created_at": CONVERSATION_STARTED_AT + 90,
                    },
                ]
            },
        }
        self.fail_status: dict[str, int] = {}
        self.requests: list[httpx.Request] = []
        self.notes: list[dict[str, Any]] = []

    def count(self, method: str, path: str) -> int:
        return sum(1 for request in self.requests if _route(request, "") == f"{method} {path}")

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = _route(request, "")
        if route in self.fail_status:
            return httpx.Response(self.fail_status[route], json={"errors": [{"message": "nope"}]})

        method, path = route.split(" ", 1)
        conversation_path = f"/conversations/{self.conversation['id']}"
        if method == "GET" and path == conversation_path:
            return httpx.Response(200, json=self.conversation)
        if method == "POST" and path.endswith("/reply"):
            body = json.loads(request.content)
            self.notes.append({"path": path, **body})
            return httpx.Response(200, json={"type": "conversation", "id": path.split("/")[2]})
        return httpx.Response(404, json={"errors": [{"message": "not found"}]})


def _route(request: httpx.Request, prefix: str) -> str:
    path = request.url.path
    if prefix and path.startswith(prefix):
        path = path[len(prefix):]
    return f"{request.method} {path}"


@pytest.fixture
def fake_freshdesk() -> FakeFreshdesk:
    return FakeFreshdesk()


@pytest.fixture
def fake_intercom() -> FakeIntercom:
    return FakeIntercom()


@pytest.fixture(autouse=True)
def reset_tracker_state() -> None:
    # Keep tests isolated even though the app container is module-global.
    for identity in operation_tracker.snapshot():
        operation_tracker.clear(identity)
