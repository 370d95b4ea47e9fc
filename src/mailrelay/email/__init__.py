"""Email domain: payload reading, MIME extraction, decoding, and normalization."""

from mailrelay.email.decoder import decode_content
from mailrelay.email.extractor import (
    NO_BODY_CONTENT,
    NO_READABLE_CONTENT,
    extract_content,
)
from mailrelay.email.models import (
    EmailEvent,
    EmailMetadata,
    ExtractedContent,
    InboundEmail,
)
from mailrelay.email.normalizer import TRUNCATION_MARKER, normalize_text
from mailrelay.email.stream import read_raw

__all__ = [
    "NO_BODY_CONTENT",
    "NO_READABLE_CONTENT",
    "TRUNCATION_MARKER",
    "EmailEvent",
    "EmailMetadata",
    "ExtractedContent",
    "InboundEmail",
    "decode_content",
    "extract_content",
    "normalize_text",
    "read_raw",
]
