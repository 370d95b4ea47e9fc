"""Domain-specific exception classes for the email relay."""

from mailrelay.domain.types import DeliveryState


class RelayError(Exception):
    """Base class for all domain errors in the email relay."""


class InvalidTransitionError(RelayError):
    """Raised when an invalid delivery state transition is attempted.

    Attributes:
        current_state: The state the machine was in when the transition was attempted.
        event: The event that was rejected.
    """

    def __init__(self, current_state: DeliveryState, event: str) -> None:
        self.current_state = current_state
        self.event = event
        super().__init__(
            f"Cannot apply event '{event}' in state '{current_state}'"
        )


class ConfigurationError(RelayError):
    """Raised when transport credentials are missing or malformed.

    Attributes:
        errors: Human-readable description of every problem found.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid configuration")


class RateLimitError(RelayError):
    """Raised when a sender has exhausted its quota for the current window."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Rate limit exceeded for {identifier}")


class ContentExtractionError(RelayError):
    """Raised when a MIME payload or part cannot be split into headers and body."""


class TransportError(RelayError):
    """Raised when the messaging API refuses or fails a request.

    Attributes:
        description: The API's error description (or a network error summary).
        error_code: The API ``error_code`` / HTTP status, if one was received.
    """

    def __init__(self, description: str, error_code: int | None = None) -> None:
        self.description = description
        self.error_code = error_code
        if error_code is None:
            super().__init__(description)
        else:
            super().__init__(f"{description} (code: {error_code})")


class RetryableTransportError(TransportError):
    """Timeouts, 5xx and unclassified 4xx responses -- worth another attempt."""


class NonRetryableTransportError(TransportError):
    """The destination or credential is invalid (401/403/404) -- retrying cannot help."""


class NotificationError(RelayError):
    """Raised when the best-effort error notification could not be delivered."""
