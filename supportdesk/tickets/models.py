from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .state import TicketStatus


class MessageSender(str, Enum):
    """Which side of the conversation wrote a message."""

    USER = "user"
    STAFF = "staff"


@dataclass(slots=True)
class Ticket:
    """Aggregate representing a filed support request.

    Timestamps are integer milliseconds since the epoch. ``claimed_by`` is set
    when the ticket is claimed and is kept after the ticket is closed.
    """

    id: str
    ticket_number: str
    subject: str
    message: str
    status: TicketStatus
    created_at: int
    claimed_by: str | None = None


@dataclass(slots=True)
class Message:
    """One chat entry within a ticket's conversation thread."""

    id: str
    ticket_id: str
    content: str
    sender: MessageSender
    timestamp: int
