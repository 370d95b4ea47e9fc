"""Resilience infrastructure for messaging API calls."""

from mailrelay.resilience.retry import backoff_seconds, build_retrying

__all__ = [
    "backoff_seconds",
    "build_retrying",
]
