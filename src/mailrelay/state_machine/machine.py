"""DeliveryStateMachine class with trigger, history, and valid_events."""

from __future__ import annotations

from mailrelay.domain.errors import InvalidTransitionError
from mailrelay.domain.types import DeliveryState
from mailrelay.state_machine.transitions import TERMINAL_STATES, TRANSITIONS


class DeliveryStateMachine:
    """Finite state machine tracking one email through the delivery pipeline.

    Validates transitions against the transition map and records the
    sequence of state changes so a failed delivery can report how far it got.

    Usage::

        sm = DeliveryStateMachine()
        sm.trigger("validate_config")  # -> CONFIG_VALIDATED
        sm.trigger("check_rate")       # -> RATE_CHECKED
        sm.trigger("fail")             # -> ERROR_REPORTED (terminal)
    """

    def __init__(self, initial_state: DeliveryState = DeliveryState.RECEIVED) -> None:
        self._state: DeliveryState = initial_state
        self._history: list[tuple[DeliveryState, str, DeliveryState]] = []

    @property
    def state(self) -> DeliveryState:
        """Return the current delivery state."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        """Return True if the machine is in a terminal state (DONE or ERROR_REPORTED)."""
        return self._state in TERMINAL_STATES

    @property
    def history(self) -> list[tuple[DeliveryState, str, DeliveryState]]:
        """Return a copy of the transition history as ``(from, event, to)`` tuples."""
        return list(self._history)

    def trigger(self, event: str) -> DeliveryState:
        """Apply an event to the current state and transition.

        Args:
            event: The event string (e.g. ``"send_metadata"``).

        Returns:
            The new state after the transition.

        Raises:
            InvalidTransitionError: If the transition is not allowed from
                the current state, or if the machine is in a terminal state.
        """
        if self.is_terminal:
            raise InvalidTransitionError(self._state, event)

        key = (self._state, event)
        if key not in TRANSITIONS:
            raise InvalidTransitionError(self._state, event)

        old_state = self._state
        new_state = TRANSITIONS[key]
        self._history.append((old_state, event, new_state))
        self._state = new_state
        return new_state

    def get_valid_events(self) -> list[str]:
        """Return a sorted list of events valid from the current state."""
        if self.is_terminal:
            return []
        return sorted(event for state, event in TRANSITIONS if state == self._state)
