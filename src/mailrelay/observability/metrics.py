"""Prometheus metrics instrumentation for the email relay.

Provides:
- ``setup_metrics(app)``: Attach prometheus-fastapi-instrumentator to a FastAPI app,
  exposing ``/metrics`` with HTTP request duration/count plus relay counters.
- ``EMAILS_DELIVERED``: Counter of emails relayed to the chat end to end.
- ``EMAILS_REJECTED``: Counter of rejected emails, labelled by reason.
- ``SEND_RETRIES``: Counter of backoff waits before another send attempt.
"""

from __future__ import annotations

from fastapi import FastAPI
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator

EMAILS_DELIVERED: Counter = Counter(
    "mailrelay_emails_delivered_total",
    "Total number of emails relayed to the chat",
)

EMAILS_REJECTED: Counter = Counter(
    "mailrelay_emails_rejected_total",
    "Total number of emails rejected, by reason",
    ["reason"],
)

SEND_RETRIES: Counter = Counter(
    "mailrelay_send_retries_total",
    "Total number of retried messaging API calls",
    ["api_name"],
)


def setup_metrics(app: FastAPI) -> None:
    """Instrument *app* with Prometheus HTTP metrics and expose ``/metrics``.

    Excludes health and metrics endpoints from instrumentation.

    Args:
        app: The FastAPI application to instrument.
    """
    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        excluded_handlers=["/health", "/metrics"],
    ).instrument(app).expose(app, include_in_schema=False, should_gzip=True)
