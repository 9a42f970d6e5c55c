from __future__ import annotations

from enum import Enum
from typing import Mapping, Sequence


class InvalidTicketTransitionError(RuntimeError):
    """Raised when a ticket cannot move from its current status to the requested one."""


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    OPEN = "open"
    CLAIMED = "claimed"
    CLOSED = "closed"


class TicketStateMachine:
    """Validate ticket lifecycle transitions."""

    _DEFAULT_TRANSITIONS: Mapping[TicketStatus, Sequence[TicketStatus]] = {
        TicketStatus.OPEN: (TicketStatus.CLAIMED, TicketStatus.CLOSED),
        TicketStatus.CLAIMED: (TicketStatus.CLOSED,),
        TicketStatus.CLOSED: (),
    }

    def __init__(self, transitions: Mapping[TicketStatus, Sequence[TicketStatus]] | None = None) -> None:
        self._transitions = transitions or self._DEFAULT_TRANSITIONS

    @staticmethod
    def initial_state() -> TicketStatus:
        return TicketStatus.OPEN

    def can_transition(self, current: TicketStatus, target: TicketStatus) -> bool:
        return target in self._transitions.get(current, ())

    def assert_transition(self, current: TicketStatus, target: TicketStatus) -> None:
        # Same-state moves are rejected too: claiming a claimed ticket is a conflict.
        if not self.can_transition(current, target):
            raise InvalidTicketTransitionError(
                f"Invalid ticket status transition: {current.value} -> {target.value}"
            )

    def is_terminal(self, status: TicketStatus) -> bool:
        return not self._transitions.get(status, ())
