"""Transition map defining all valid (state, event) -> state mappings."""

from enum import StrEnum

from mailrelay.domain.types import DeliveryState


class DeliveryEvent(StrEnum):
    """Events that advance an email through the delivery pipeline."""

    VALIDATE_CONFIG = "validate_config"
    CHECK_RATE = "check_rate"
    EXTRACT = "extract"
    SEND_METADATA = "send_metadata"
    SEND_BODY = "send_body"
    SEND_ATTACHMENT = "send_attachment"
    COMPLETE = "complete"
    FAIL = "fail"


# States that reject all events -- no outgoing transitions allowed.
TERMINAL_STATES: frozenset[DeliveryState] = frozenset(
    {DeliveryState.DONE, DeliveryState.ERROR_REPORTED}
)

# All valid (current_state, event_string) -> next_state mappings.
# Any pair not in this dict is an invalid transition.
TRANSITIONS: dict[tuple[DeliveryState, str], DeliveryState] = {
    (DeliveryState.RECEIVED, DeliveryEvent.VALIDATE_CONFIG): DeliveryState.CONFIG_VALIDATED,
    (DeliveryState.CONFIG_VALIDATED, DeliveryEvent.CHECK_RATE): DeliveryState.RATE_CHECKED,
    (DeliveryState.RATE_CHECKED, DeliveryEvent.EXTRACT): DeliveryState.CONTENT_EXTRACTED,
    (DeliveryState.CONTENT_EXTRACTED, DeliveryEvent.SEND_METADATA): DeliveryState.METADATA_SENT,
    (DeliveryState.METADATA_SENT, DeliveryEvent.SEND_BODY): DeliveryState.BODY_SENT,
    # The body preview is optional, so the attachment may follow either message.
    (DeliveryState.METADATA_SENT, DeliveryEvent.SEND_ATTACHMENT): DeliveryState.ATTACHMENT_SENT,
    (DeliveryState.BODY_SENT, DeliveryEvent.SEND_ATTACHMENT): DeliveryState.ATTACHMENT_SENT,
    (DeliveryState.ATTACHMENT_SENT, DeliveryEvent.COMPLETE): DeliveryState.DONE,
    # Any non-terminal state may fail.
    **{
        (state, DeliveryEvent.FAIL): DeliveryState.ERROR_REPORTED
        for state in DeliveryState
        if state not in TERMINAL_STATES
    },
}
