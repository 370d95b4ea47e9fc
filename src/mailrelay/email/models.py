"""Pydantic v2 models and the inbound event type for the email domain.

``EmailMetadata`` and ``ExtractedContent`` are frozen: they are derived once
per delivery attempt and never change afterwards.  ``InboundEmail`` is the
event handed to the delivery pipeline by whatever receives the mail.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Mapping
from datetime import UTC, datetime
from email.errors import HeaderParseError
from email.header import decode_header, make_header
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict

RawPayload = bytes | str | AsyncIterable[bytes]

# Raised by email.policy.default while parsing a malformed structured header.
_HEADER_PARSE_ERRORS = (HeaderParseError, IndexError, AttributeError, ValueError)


class ExtractedContent(BaseModel):
    """The chosen readable representation of an email."""

    model_config = ConfigDict(frozen=True)

    body: str
    content_type: str = "text/plain"


class EmailMetadata(BaseModel):
    """Header values shown in the metadata message.

    Every field has a fallback so a message with missing headers can still
    be relayed.
    """

    model_config = ConfigDict(frozen=True)

    sender: str
    recipient: str
    subject: str
    date: str
    message_id: str

    @classmethod
    def from_headers(
        cls,
        headers: Any,
        now: datetime | None = None,
    ) -> EmailMetadata:
        """Build metadata from a header lookup, applying fallbacks.

        Args:
            headers: Anything with a ``get(name)`` method -- a dict, an
                ``email.message.Message`` or a runtime headers object.
                Names are looked up case-insensitively.
            now: Reference time for the fallback date and message-id.

        Returns:
            The metadata with absent headers replaced by their defaults.
        """
        now = now or datetime.now(tz=UTC)
        return cls(
            sender=get_header_value(headers, "from") or "Unknown sender",
            recipient=get_header_value(headers, "to") or "Unknown recipient",
            subject=get_header_value(headers, "subject") or "No subject",
            date=get_header_value(headers, "date") or iso_timestamp(now),
            message_id=(
                get_header_value(headers, "message-id")
                or f"no-id-{int(now.timestamp() * 1000)}"
            ),
        )


def iso_timestamp(moment: datetime) -> str:
    """Format *moment* as ISO 8601 UTC with millisecond precision and a ``Z`` suffix."""
    return moment.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def _raw_header(headers: Any, name: str) -> str | None:
    """Return the unparsed value of *name* from an ``email.message.Message``."""
    raw_items = getattr(headers, "raw_items", None)
    if raw_items is None:
        return None
    wanted = name.lower()
    value = next((v for k, v in raw_items() if k.lower() == wanted), None)
    if value is None:
        return None
    return str(value).replace("\r\n", "").replace("\n", "")


def get_header_value(headers: Any, name: str) -> str | None:
    """Look up *name* in *headers*, ignoring case.  Empty values count as absent.

    A header the parsing policy cannot handle (``Message-ID: <``, ``To: a@[``)
    is returned as its raw text instead.
    """
    if headers is None:
        return None

    try:
        value = headers.get(name)
        value = None if value is None else str(value)
    except _HEADER_PARSE_ERRORS:
        value = _raw_header(headers, name)
    if value is None and isinstance(headers, Mapping):
        wanted = name.lower()
        value = next(
            (v for k, v in headers.items() if str(k).lower() == wanted),
            None,
        )

    if value is None:
        return None
    text = decode_encoded_words(str(value)).strip()
    return text or None


def decode_encoded_words(value: str) -> str:
    """Decode RFC 2047 encoded-words (``=?UTF-8?B?...?=``) in a header value."""
    if "=?" not in value:
        return value
    try:
        return str(make_header(decode_header(value)))
    except (HeaderParseError, LookupError, UnicodeDecodeError):
        return value


class EmailEvent(Protocol):
    """What the delivery pipeline needs from an inbound email event."""

    raw: RawPayload | None
    headers: Any

    def set_reject(self, reason: str) -> None:
        """Report that the email was not relayed, with a reason."""


class InboundEmail:
    """A concrete inbound email event.

    Records the rejection reason (if any) so the caller -- an HTTP handler
    or the CLI -- can turn it into a response or an exit status.
    """

    def __init__(self, raw: RawPayload | None, headers: Any) -> None:
        self.raw = raw
        self.headers = headers
        self.rejection: str | None = None

    @property
    def rejected(self) -> bool:
        """Return True once ``set_reject`` has been called."""
        return self.rejection is not None

    def set_reject(self, reason: str) -> None:
        """Record the rejection reason.  The first reason wins."""
        if self.rejection is None:
            self.rejection = reason
