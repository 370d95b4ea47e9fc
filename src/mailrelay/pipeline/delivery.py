"""Delivery pipeline: one inbound email in, three Telegram messages out.

For each email the pipeline:

1. validates the Telegram credentials (reject on failure, nothing else runs)
2. checks the sender against the rate limiter (reject on failure)
3. reads, extracts and normalizes the content
4. sends the metadata message, the body preview (when there is readable
   content) and the full raw payload as a document

Any failure while reading the headers or in steps 3-4 rejects the event
with the error description and triggers one best-effort error notification.
``deliver`` never raises.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import UTC, datetime

import structlog

from mailrelay.config import Settings, validate_transport_config
from mailrelay.domain.errors import ConfigurationError, NotificationError, RateLimitError
from mailrelay.domain.types import DeliveryState, RejectReason
from mailrelay.email.extractor import NO_READABLE_CONTENT, extract_content
from mailrelay.email.models import EmailEvent, EmailMetadata
from mailrelay.email.normalizer import normalize_text
from mailrelay.email.stream import read_raw
from mailrelay.observability.metrics import EMAILS_DELIVERED, EMAILS_REJECTED
from mailrelay.ratelimit.limiter import SlidingWindowRateLimiter
from mailrelay.state_machine import DeliveryEvent, DeliveryStateMachine
from mailrelay.telegram.client import TelegramClient
from mailrelay.telegram.formatting import (
    build_body_message,
    build_document_caption,
    build_error_message,
    build_metadata_message,
    safe_filename,
    truncate_subject,
)

logger = structlog.get_logger()

REJECT_CONFIGURATION = "Service configuration error"
REJECT_RATE_LIMIT = "Rate limit exceeded"
REJECT_PROCESSING_PREFIX = "Processing failed: "


class DeliveryPipeline:
    """Relays inbound emails to a single Telegram chat.

    One instance is created per process and shared by every inbound event;
    the rate limiter it holds is the only state carried between emails.
    """

    def __init__(
        self,
        settings: Settings,
        transport: TelegramClient,
        rate_limiter: SlidingWindowRateLimiter,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            settings: Credentials and content limits.
            transport: Client used for every outbound message.
            rate_limiter: Process-wide limiter keyed by sender.
            clock: Returns the current UTC time (fallback header values and
                attachment names).  Defaults to ``datetime.now(UTC)``.
        """
        self._settings = settings
        self._transport = transport
        self._rate_limiter = rate_limiter
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    @property
    def _token(self) -> str:
        return self._settings.telegram_bot_token.get_secret_value()

    @property
    def _chat_id(self) -> str:
        return self._settings.telegram_channel_id

    def _check_config(self) -> None:
        errors = validate_transport_config(self._token, self._chat_id)
        if errors:
            raise ConfigurationError(errors)

    def _check_rate(self, sender: str, now: datetime) -> None:
        if not self._rate_limiter.admit(sender, now.timestamp() * 1000):
            raise RateLimitError(sender)

    def _reject(
        self,
        event: EmailEvent,
        machine: DeliveryStateMachine,
        reason: str,
        category: RejectReason,
    ) -> DeliveryState:
        event.set_reject(reason)
        EMAILS_REJECTED.labels(reason=category).inc()
        return machine.trigger(DeliveryEvent.FAIL)

    async def deliver(self, event: EmailEvent) -> DeliveryState:
        """Relay one inbound email.

        Args:
            event: The inbound email: raw payload, header lookup and a
                ``set_reject`` outcome callback.

        Returns:
            The terminal state: ``DONE`` or ``ERROR_REPORTED``.
        """
        started = time.monotonic()
        machine = DeliveryStateMachine()
        now = self._clock()

        try:
            self._check_config()
        except ConfigurationError as exc:
            logger.error("Configuration errors", errors=exc.errors)
            return self._reject(event, machine, REJECT_CONFIGURATION, RejectReason.CONFIGURATION)
        machine.trigger(DeliveryEvent.VALIDATE_CONFIG)

        try:
            metadata = EmailMetadata.from_headers(event.headers, now=now)
        except Exception as exc:
            logger.exception("Failed to read email headers")
            self._reject(
                event, machine, f"{REJECT_PROCESSING_PREFIX}{exc}", RejectReason.PROCESSING
            )
            await self._report_failure(exc)
            return machine.state

        log = logger.bind(message_id=metadata.message_id, sender=metadata.sender)
        log.info("Processing email")

        try:
            self._check_rate(metadata.sender, now)
        except RateLimitError:
            log.warning("Rate limit exceeded")
            return self._reject(event, machine, REJECT_RATE_LIMIT, RejectReason.RATE_LIMIT)
        machine.trigger(DeliveryEvent.CHECK_RATE)

        try:
            await self._relay(event, metadata, machine)
        except Exception as exc:
            log.exception("Email processing failed", state=machine.state)
            self._reject(
                event, machine, f"{REJECT_PROCESSING_PREFIX}{exc}", RejectReason.PROCESSING
            )
            await self._report_failure(exc)
            return machine.state

        EMAILS_DELIVERED.inc()
        log.info(
            "Email processed successfully",
            processing_ms=round((time.monotonic() - started) * 1000),
        )
        return machine.state

    async def _relay(
        self,
        event: EmailEvent,
        metadata: EmailMetadata,
        machine: DeliveryStateMachine,
    ) -> None:
        raw_email = await read_raw(event.raw)
        content = extract_content(raw_email)
        body = normalize_text(content.body, self._settings.max_body_length)
        subject = truncate_subject(metadata.subject, self._settings.max_subject_length)
        machine.trigger(DeliveryEvent.EXTRACT)

        await self._transport.send_text(
            self._token,
            self._chat_id,
            build_metadata_message(metadata, subject, content.content_type),
        )
        machine.trigger(DeliveryEvent.SEND_METADATA)

        if body and body.strip() != NO_READABLE_CONTENT:
            await self._transport.send_text(
                self._token,
                self._chat_id,
                build_body_message(body, self._settings.telegram_message_limit),
            )
            machine.trigger(DeliveryEvent.SEND_BODY)

        await self._transport.send_document(
            self._token,
            self._chat_id,
            raw_email,
            safe_filename(metadata.message_id, self._clock()),
            build_document_caption(subject),
        )
        machine.trigger(DeliveryEvent.SEND_ATTACHMENT)
        machine.trigger(DeliveryEvent.COMPLETE)

    async def _send_error_notification(self, error: Exception) -> None:
        try:
            await self._transport.send_text(
                self._token, self._chat_id, build_error_message(str(error))
            )
        except Exception as exc:
            raise NotificationError(str(exc)) from exc

    async def _report_failure(self, error: Exception) -> bool:
        """Send the error alert; a failure here is logged, never raised."""
        try:
            await self._send_error_notification(error)
        except NotificationError as exc:
            logger.error("Failed to send error notification", error=str(exc))
            return False
        return True
