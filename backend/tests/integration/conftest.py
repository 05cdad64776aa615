from __future__ import annotations

from typing import Any, Iterator

import httpx
import pytest
from fastapi.testclient import TestClient

from deskcanvas.container import freshdesk_client, intercom_client
from deskcanvas.infrastructure.http_client import RetryPolicy
from deskcanvas.main import app

FAST_POLICY = RetryPolicy(retries=3, base_delay_seconds=0.0, max_delay_seconds=0.0, jitter_ratio=0.0, timeout_seconds=5.0)
FAST_NOTE_POLICY = RetryPolicy(retries=1, base_delay_seconds=0.0, max_delay_seconds=0.0, jitter_ratio=0.0, timeout_seconds=5.0)


@pytest.fixture(autouse=True)
def mock_external_clients(fake_freshdesk: Any, fake_intercom: Any) -> None:
    # The app closes its clients on shutdown, so every test gets fresh fakes.
    freshdesk_client.http.configure(
        policy=FAST_POLICY,
        transport=httpx.MockTransport(fake_freshdesk.handler),
    )
    intercom_client.http.configure(
        policy=FAST_POLICY,
        transport=httpx.MockTransport(fake_intercom.handler),
    )
    intercom_client.notes_http.configure(
        policy=FAST_NOTE_POLICY,
        transport=httpx.MockTransport(fake_intercom.handler),
    )


@pytest.fixture
def client() -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client
