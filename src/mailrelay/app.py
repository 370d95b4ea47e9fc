"""Application entry point: FastAPI webhook that feeds the delivery pipeline.

Configures:
- **structlog** with JSON rendering (production) or colored console (development)
- **Sentry** error reporting when ``SENTRY_DSN`` is set
- **Rate limiter**, **Telegram client** and **DeliveryPipeline** shared by
  every request for the lifetime of the process
- ``POST /webhooks/email`` receiving raw RFC 822 messages from the mail host
- ``/health``, ``/`` and ``/metrics``
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from email import policy
from email.parser import BytesHeaderParser
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mailrelay import __version__
from mailrelay.config import Settings, get_settings, validate_credentials
from mailrelay.email.models import InboundEmail
from mailrelay.health import register_health_routes
from mailrelay.observability.metrics import setup_metrics
from mailrelay.observability.middleware import SERVICE_NAME, RequestIdMiddleware
from mailrelay.observability.sentry import get_sentry_processor, init_sentry
from mailrelay.pipeline.delivery import (
    REJECT_CONFIGURATION,
    REJECT_RATE_LIMIT,
    DeliveryPipeline,
)
from mailrelay.ratelimit.limiter import SlidingWindowRateLimiter
from mailrelay.telegram.client import TelegramClient

logger = structlog.get_logger()

# Reject reason -> HTTP status returned to the mail host.
_REJECT_STATUS: dict[str, int] = {
    REJECT_CONFIGURATION: 503,
    REJECT_RATE_LIMIT: 429,
}
_PROCESSING_FAILURE_STATUS = 502


def configure_logging(production: bool = False, sentry_dsn: str = "") -> None:
    """Configure structlog for production (JSON) or development (console).

    Production mode (*production=True*): JSON rendering at INFO level.
    Development mode: colored console rendering at DEBUG level.  When
    *sentry_dsn* is set, ERROR events are also forwarded to Sentry.

    Args:
        production: Enable production mode if ``True``.
        sentry_dsn: Sentry DSN; empty disables Sentry.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
    ]
    if init_sentry(sentry_dsn, release=__version__):
        shared_processors.append(get_sentry_processor())
    shared_processors += [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if production:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        log_level = logging.INFO
    else:
        renderer = structlog.dev.ConsoleRenderer()
        log_level = logging.DEBUG

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service=SERVICE_NAME)


def initialize_services(settings: Settings | None = None) -> dict[str, Any]:
    """Build the process-wide services.

    Args:
        settings: Application settings.  If ``None``, ``get_settings()`` is used.

    Returns:
        A dict with ``rate_limiter``, ``telegram_client``, ``pipeline`` and
        ``_settings``.
    """
    if settings is None:
        settings = get_settings()

    rate_limiter = SlidingWindowRateLimiter(
        window_ms=settings.rate_limit_window_ms,
        max_per_window=settings.max_emails_per_window,
    )
    telegram_client = TelegramClient(
        api_base=settings.telegram_api_base,
        timeout=settings.http_timeout_seconds,
        max_attempts=settings.send_max_attempts,
    )
    pipeline = DeliveryPipeline(settings, telegram_client, rate_limiter)
    logger.info(
        "Services initialized",
        rate_limit_window_ms=settings.rate_limit_window_ms,
        max_emails_per_window=settings.max_emails_per_window,
    )

    return {
        "rate_limiter": rate_limiter,
        "telegram_client": telegram_client,
        "pipeline": pipeline,
        "_settings": settings,
    }


def parse_inbound_email(raw: bytes) -> InboundEmail:
    """Wrap a raw RFC 822 message as an ``InboundEmail`` event.

    Only the header block is parsed; the body stays untouched in ``raw``.
    """
    headers = BytesHeaderParser(policy=policy.default).parsebytes(raw)
    return InboundEmail(raw=raw, headers=headers)


def reject_status(reason: str) -> int:
    """Map a pipeline reject reason to the HTTP status returned to the sender."""
    return _REJECT_STATUS.get(reason, _PROCESSING_FAILURE_STATUS)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Log application start and stop."""
    logger.info("FastAPI application starting", version=__version__)
    yield
    logger.info("FastAPI application stopped")


def create_app(services: dict[str, Any]) -> FastAPI:
    """Create the FastAPI app with the inbound email webhook.

    Args:
        services: The initialized services dict from ``initialize_services``.

    Returns:
        The configured FastAPI application.
    """
    fastapi_app = FastAPI(title="Email to Telegram Relay", version=__version__, lifespan=lifespan)
    fastapi_app.state.services = services
    fastapi_app.add_middleware(RequestIdMiddleware)
    register_health_routes(fastapi_app)
    setup_metrics(fastapi_app)

    @fastapi_app.post("/webhooks/email")
    async def inbound_email(request: Request) -> JSONResponse:
        """Relay the raw RFC 822 message in the request body."""
        pipeline: DeliveryPipeline = request.app.state.services["pipeline"]
        raw = await request.body()
        event = parse_inbound_email(raw)

        state = await pipeline.deliver(event)

        if event.rejection is not None:
            return JSONResponse(
                content={"status": "rejected", "reason": event.rejection, "state": state},
                status_code=reject_status(event.rejection),
            )
        return JSONResponse(content={"status": "delivered", "state": state})

    return fastapi_app


def main() -> None:
    """Main entry point: configure logging, validate credentials, serve HTTP."""
    settings = get_settings()
    configure_logging(production=settings.production, sentry_dsn=settings.sentry_dsn)
    logger.info("Application starting")

    validate_credentials(settings)

    services = initialize_services(settings)
    fastapi_app = create_app(services)

    uvicorn.run(
        fastapi_app,
        host="0.0.0.0",
        port=settings.webhook_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
