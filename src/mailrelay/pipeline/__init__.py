"""Delivery pipeline orchestrating extraction, rate limiting and sending."""

from mailrelay.pipeline.delivery import (
    REJECT_CONFIGURATION,
    REJECT_PROCESSING_PREFIX,
    REJECT_RATE_LIMIT,
    DeliveryPipeline,
)

__all__ = [
    "REJECT_CONFIGURATION",
    "REJECT_PROCESSING_PREFIX",
    "REJECT_RATE_LIMIT",
    "DeliveryPipeline",
]
