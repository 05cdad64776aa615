from __future__ import annotations

from fastapi.testclient import TestClient


def test_mailbox_status_and_priority_lookups(client: TestClient) -> None:
    mailboxes = client.get("/api/freshdesk/mailboxes")
    assert mailboxes.status_code == 200
    assert [row["product_id"] for row in mailboxes.json()] == [501, 502, None]

    statuses = client.get("/api/freshdesk/statuses")
    assert statuses.status_code == 200
    assert statuses.json() == [
        {"id": 2, "label": "Open", "value": 2},
        {"id": 3, "label": "Pending", "value": 3},
    ]

    priorities = client.get("/api/freshdesk/priorities")
    assert priorities.status_code == 200
    assert [row["label"] for row in priorities.json()] == ["Low", "Medium"]


def test_recent_tickets_requires_email(client: TestClient) -> None:
    response = client.get("/api/freshdesk/recent-tickets")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_recent_tickets(client: TestClient) -> None:
    response = client.get("/api/freshdesk/recent-tickets", params={"email": "jane@acme.test"})

    assert response.status_code == 200
    assert response.json() == [
        {"id": 7, "subject": "Order arrived damaged", "created_at": "2024-05-01T10:00:00+00:00"}
    ]


def test_create_ticket_validates_required_fields(client: TestClient, fake_freshdesk) -> None:
    response = client.post("/api/freshdesk/create-ticket", json={"email": "jane@acme.test", "subject": "Hi"})

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Missing required fields"
    assert fake_freshdesk.created == []


def test_create_ticket_returns_url(client: TestClient, fake_freshdesk) -> None:
    response = client.post(
        "/api/freshdesk/create-ticket",
        json={
            "email": "jane@acme.test",
            "subject": "Late order",
            "product_id": "product_502",
            "priority": 3,
            "conversation": {"id": "123"},
        },
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "ticket": {"id": 42, "url": "https://acme.freshdesk.com/a/tickets/42"},
    }
    created = fake_freshdesk.created[0]
    assert created["product_id"] == 502
    assert created["priority"] == 3
    assert "Intercom Conversation URL:" in created["description"]


def test_upstream_failure_maps_to_bad_gateway(client: TestClient, fake_freshdesk) -> None:
    fake_freshdesk.fail_status["GET /email/mailboxes"] = 503

    response = client.get("/api/freshdesk/mailboxes")

    assert response.status_code == 502
    error = response.json()["error"]
    assert error["code"] == "UPSTREAM_UNAVAILABLE"
    assert error["message"] == "Upstream exploded"
    assert fake_freshdesk.count("GET", "/email/mailboxes") == 4
