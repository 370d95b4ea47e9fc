"""Sentry error reporting for the relay, bridged through structlog.

``init_sentry(dsn)`` starts the SDK (a no-op for an empty DSN) and
``get_sentry_processor()`` returns the structlog processor that forwards
ERROR-level events -- failed deliveries, exhausted retries, lost error
notifications -- to Sentry.  ``configure_logging`` inserts the processor
only when a DSN is configured.
"""

from __future__ import annotations

import logging

import sentry_sdk
import structlog
from sentry_sdk.integrations.logging import LoggingIntegration
from structlog_sentry import SentryProcessor


def init_sentry(dsn: str, release: str | None = None) -> bool:
    """Initialize the Sentry SDK.

    Args:
        dsn: Sentry DSN string.  Empty string disables Sentry.
        release: Optional release identifier attached to every event.

    Returns:
        True if the SDK was initialized.
    """
    if not dsn:
        return False

    sentry_sdk.init(
        dsn=dsn,
        release=release,
        traces_sample_rate=0.1,
        # Email addresses and subjects stay out of Sentry.
        send_default_pii=False,
        integrations=[
            # structlog-sentry does the capturing; the stdlib hook would
            # report every event twice.
            LoggingIntegration(event_level=None, level=None),
        ],
    )
    return True


def get_sentry_processor() -> structlog.types.Processor:
    """Return a structlog processor that forwards ERROR events to Sentry.

    Must sit after ``add_log_level`` and before the renderer.
    """
    return SentryProcessor(event_level=logging.ERROR)
