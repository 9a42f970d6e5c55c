"""Ticket desk domain models, storage and lifecycle services."""

from .models import Message, MessageSender, Ticket
from .service import (
    TicketConflictError,
    TicketNotFoundError,
    TicketService,
    TicketServiceError,
    TicketStoreError,
    TicketValidationError,
)
from .state import InvalidTicketTransitionError, TicketStateMachine, TicketStatus
from .store import TicketStore

__all__ = [
    "Message",
    "MessageSender",
    "Ticket",
    "TicketService",
    "TicketServiceError",
    "TicketNotFoundError",
    "TicketValidationError",
    "TicketConflictError",
    "TicketStoreError",
    "InvalidTicketTransitionError",
    "TicketStateMachine",
    "TicketStatus",
    "TicketStore",
]
