"""Tests for request ID propagation through the webhook."""

from __future__ import annotations

import re
from unittest.mock import AsyncMock

import pytest
import structlog
from factories import FIXED_NOW, make_raw_email
from fastapi import FastAPI
from fastapi.testclient import TestClient
from structlog.testing import LogCapture

from mailrelay.app import create_app
from mailrelay.config import Settings
from mailrelay.observability import middleware
from mailrelay.observability.middleware import REQUEST_ID_HEADER, resolve_request_id
from mailrelay.pipeline import delivery
from mailrelay.pipeline.delivery import DeliveryPipeline
from mailrelay.ratelimit.limiter import SlidingWindowRateLimiter

UUID4_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch) -> LogCapture:
    """Route pipeline and middleware log calls into a LogCapture with contextvars merged."""
    capture = LogCapture()
    capturing = structlog.wrap_logger(
        None, processors=[structlog.contextvars.merge_contextvars, capture]
    )
    monkeypatch.setattr(delivery, "logger", capturing)
    monkeypatch.setattr(middleware, "logger", capturing)
    return capture


@pytest.fixture
def client(settings: Settings, transport: AsyncMock) -> TestClient:
    limiter = SlidingWindowRateLimiter()
    pipeline = DeliveryPipeline(settings, transport, limiter, clock=lambda: FIXED_NOW)
    app: FastAPI = create_app(
        {"pipeline": pipeline, "rate_limiter": limiter, "_settings": settings}
    )
    return TestClient(app)


class TestResolveRequestId:
    @pytest.mark.parametrize("value", ["abc-42", "req_1.2:3", "x" * 128])
    def test_safe_value_is_reused(self, value: str) -> None:
        assert resolve_request_id(value) == value

    @pytest.mark.parametrize(
        "value",
        [None, "", "x" * 129, "two words", "id\nlevel=critical", "café"],
    )
    def test_unsafe_value_is_replaced(self, value: str | None) -> None:
        assert UUID4_PATTERN.match(resolve_request_id(value))


class TestWebhookRequestId:
    def test_generated_when_absent(self, client: TestClient) -> None:
        resp = client.post("/webhooks/email", content=make_raw_email().encode())

        assert resp.status_code == 200
        assert UUID4_PATTERN.match(resp.headers[REQUEST_ID_HEADER])

    def test_client_id_echoed(self, client: TestClient) -> None:
        resp = client.post(
            "/webhooks/email",
            content=make_raw_email().encode(),
            headers={REQUEST_ID_HEADER: "mta-7781"},
        )

        assert resp.headers[REQUEST_ID_HEADER] == "mta-7781"

    def test_pipeline_logs_carry_request_id(
        self, client: TestClient, captured: LogCapture
    ) -> None:
        client.post(
            "/webhooks/email",
            content=make_raw_email().encode(),
            headers={REQUEST_ID_HEADER: "mta-7781"},
        )

        events = [entry["event"] for entry in captured.entries]
        assert "Processing email" in events
        assert "Email processed successfully" in events
        for entry in captured.entries:
            assert entry["request_id"] == "mta-7781"
            assert entry["service"] == "mailrelay"
            assert entry["path"] == "/webhooks/email"

    def test_request_outcome_logged(self, client: TestClient, captured: LogCapture) -> None:
        client.post("/webhooks/email", content=make_raw_email().encode())

        (handled,) = [e for e in captured.entries if e["event"] == "Request handled"]
        assert handled["method"] == "POST"
        assert handled["status_code"] == 200
        assert handled["duration_ms"] >= 0

    def test_each_request_gets_its_own_id(self, client: TestClient, captured: LogCapture) -> None:
        first = client.post("/webhooks/email", content=make_raw_email().encode())
        second = client.post(
            "/webhooks/email",
            content=make_raw_email(headers={"From": "bob@example.com"}).encode(),
        )

        ids = {e["request_id"] for e in captured.entries if e["event"] == "Processing email"}
        assert ids == {first.headers[REQUEST_ID_HEADER], second.headers[REQUEST_ID_HEADER]}
        assert len(ids) == 2
