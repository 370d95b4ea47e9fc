"""In-memory, per-sender rate limiting."""

from mailrelay.ratelimit.limiter import SlidingWindowRateLimiter

__all__ = ["SlidingWindowRateLimiter"]
