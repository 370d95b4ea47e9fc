"""Tests for the /health liveness probe and the / banner."""

from __future__ import annotations

import re

from fastapi import FastAPI
from fastapi.testclient import TestClient

from mailrelay import __version__
from mailrelay.health import BANNER, register_health_routes

ISO_MILLIS = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


def _make_app() -> FastAPI:
    """Create a minimal FastAPI app with health routes."""
    app = FastAPI()
    register_health_routes(app)
    return app


class TestHealthEndpoint:
    """GET /health liveness probe."""

    def test_health_returns_200(self) -> None:
        client = TestClient(_make_app())

        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["version"] == __version__
        assert ISO_MILLIS.match(body["timestamp"]), body["timestamp"]


class TestBanner:
    def test_root_returns_plain_text_banner(self) -> None:
        client = TestClient(_make_app())

        response = client.get("/")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == BANNER
        assert f"v{__version__}" in response.text
