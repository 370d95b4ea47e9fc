"""Delivery state machine with transition validation."""

from mailrelay.state_machine.machine import DeliveryStateMachine
from mailrelay.state_machine.transitions import (
    TERMINAL_STATES,
    TRANSITIONS,
    DeliveryEvent,
)

__all__ = [
    "DeliveryEvent",
    "DeliveryStateMachine",
    "TERMINAL_STATES",
    "TRANSITIONS",
]
