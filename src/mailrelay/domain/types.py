"""Domain enumerations for the delivery pipeline."""

from enum import StrEnum


class DeliveryState(StrEnum):
    """States a single email passes through on its way to the chat."""

    RECEIVED = "received"
    CONFIG_VALIDATED = "config_validated"
    RATE_CHECKED = "rate_checked"
    CONTENT_EXTRACTED = "content_extracted"
    METADATA_SENT = "metadata_sent"
    BODY_SENT = "body_sent"
    ATTACHMENT_SENT = "attachment_sent"
    DONE = "done"
    ERROR_REPORTED = "error_reported"


class RejectReason(StrEnum):
    """Outcome categories reported back to the inbound event source."""

    CONFIGURATION = "configuration"
    RATE_LIMIT = "rate_limit"
    PROCESSING = "processing"
