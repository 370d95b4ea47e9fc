"""Domain types and errors for the email relay."""

from mailrelay.domain.errors import (
    ConfigurationError,
    ContentExtractionError,
    InvalidTransitionError,
    NonRetryableTransportError,
    NotificationError,
    RateLimitError,
    RelayError,
    RetryableTransportError,
    TransportError,
)
from mailrelay.domain.types import DeliveryState, RejectReason

__all__ = [
    "ConfigurationError",
    "ContentExtractionError",
    "DeliveryState",
    "InvalidTransitionError",
    "NonRetryableTransportError",
    "NotificationError",
    "RateLimitError",
    "RejectReason",
    "RelayError",
    "RetryableTransportError",
    "TransportError",
]
