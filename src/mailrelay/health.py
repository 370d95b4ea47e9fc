"""Health endpoint and service banner.

- ``GET /health`` -- Liveness probe.  Always 200 with a static status, the
  service version and the current time.
- ``GET /``       -- Plain-text banner pointing operators at email routing.
"""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from mailrelay import __version__
from mailrelay.email.models import iso_timestamp

BANNER = (
    f"\U0001f4e7 Email-to-Telegram Relay v{__version__}\n\n"
    "\u2705 Service is running\n"
    "\U0001f527 Configure email routing to start forwarding emails"
)


def register_health_routes(app: FastAPI) -> None:
    """Register ``/health`` and ``/`` on *app*.

    Args:
        app: The FastAPI application instance.
    """

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness probe -- always returns 200 if the process is running."""
        return {
            "status": "healthy",
            "version": __version__,
            "timestamp": iso_timestamp(datetime.now(tz=UTC)),
        }

    @app.get("/", response_class=PlainTextResponse)
    async def banner() -> str:
        return BANNER
