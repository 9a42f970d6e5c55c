from __future__ import annotations

import logging
from dataclasses import dataclass, field

from opentelemetry import trace

from .models import Message, MessageSender, Ticket
from .state import InvalidTicketTransitionError, TicketStateMachine, TicketStatus
from .store import TicketStore

logger = logging.getLogger(__name__)


class TicketServiceError(RuntimeError):
    """Base error for ticket service issues."""


class TicketNotFoundError(TicketServiceError):
    """Raised when a ticket could not be located."""


class TicketValidationError(TicketServiceError):
    """Raised when required fields are missing or malformed."""


class TicketConflictError(TicketServiceError):
    """Raised when an operation is not allowed in the ticket's current state."""


class TicketStoreError(TicketServiceError):
    """Raised when the underlying store fails unexpectedly."""


def _require_text(value: str | None, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise TicketValidationError(f"{field_name} must be a non-empty string")
    return value


def _parse_sender(value: str | MessageSender | None) -> MessageSender:
    try:
        return MessageSender(value)
    except ValueError as exc:
        raise TicketValidationError("sender must be either 'user' or 'staff'") from exc


def _parse_status(value: str | TicketStatus) -> TicketStatus:
    try:
        return TicketStatus(value)
    except ValueError as exc:
        raise TicketValidationError(f"Unknown ticket status: {value}") from exc


@dataclass(slots=True)
class TicketService:
    """High level orchestration for the ticket lifecycle and message threads."""

    store: TicketStore
    state_machine: TicketStateMachine = field(default_factory=TicketStateMachine)
    cascade_delete_messages: bool = False
    allow_messages_on_closed: bool = True
    tracer: trace.Tracer = field(default_factory=lambda: trace.get_tracer(__name__))

    async def create_ticket(self, *, subject: str, message: str) -> Ticket:
        subject = _require_text(subject, "subject")
        message = _require_text(message, "message")
        try:
            ticket = self.store.create_ticket(subject=subject, message=message)
        except RuntimeError as exc:
            raise TicketStoreError(str(exc)) from exc
        logger.info("Ticket %s created as #%s", ticket.id, ticket.ticket_number)
        return ticket

    async def get_ticket(self, ticket_id: str) -> Ticket:
        ticket = self.store.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    async def list_tickets(self, *, status: TicketStatus | None = None) -> list[Ticket]:
        tickets = self.store.list_tickets()
        if status is None:
            return tickets
        return [ticket for ticket in tickets if ticket.status == status]

    async def claim_ticket(self, ticket_id: str, *, staff: str) -> Ticket:
        staff = _require_text(staff, "claimedBy")
        return self._transition(ticket_id, TicketStatus.CLAIMED, claimed_by=staff)

    async def close_ticket(self, ticket_id: str) -> Ticket:
        return self._transition(ticket_id, TicketStatus.CLOSED)

    async def update_ticket(
        self,
        ticket_id: str,
        *,
        status: str | TicketStatus | None = None,
        claimed_by: str | None = None,
    ) -> Ticket:
        """Apply a partial update limited to ``status`` and ``claimed_by``."""

        if status is None:
            if claimed_by is None:
                raise TicketValidationError("No fields provided for update")
            raise TicketValidationError("claimedBy can only be set when claiming a ticket")

        target = _parse_status(status)
        if target is TicketStatus.CLAIMED:
            return await self.claim_ticket(ticket_id, staff=claimed_by)  # type: ignore[arg-type]
        if claimed_by is not None:
            raise TicketValidationError("claimedBy can only be set when claiming a ticket")
        if target is TicketStatus.CLOSED:
            return await self.close_ticket(ticket_id)
        return self._transition(ticket_id, target)

    async def delete_ticket(self, ticket_id: str) -> None:
        deleted = self.store.delete_ticket(ticket_id, cascade=self.cascade_delete_messages)
        if not deleted:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        logger.info("Ticket %s deleted", ticket_id)

    async def post_message(
        self,
        ticket_id: str,
        *,
        content: str | None,
        sender: str | MessageSender | None,
    ) -> Message:
        ticket = self.store.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")

        content = _require_text(content, "content")
        parsed_sender = _parse_sender(sender)
        if ticket.status is TicketStatus.CLOSED and not self.allow_messages_on_closed:
            raise TicketConflictError(f"Ticket {ticket_id} is closed")

        message = self.store.create_message(ticket_id=ticket_id, content=content, sender=parsed_sender)
        logger.info("Message %s posted to ticket %s by %s", message.id, ticket_id, parsed_sender.value)
        return message

    async def list_messages(self, ticket_id: str) -> list[Message]:
        return self.store.list_messages(ticket_id)

    def _transition(self, ticket_id: str, target: TicketStatus, *, claimed_by: str | None = None) -> Ticket:
        def guard(current: Ticket) -> None:
            self.state_machine.assert_transition(current.status, target)

        changes: dict[str, object] = {"status": target}
        if claimed_by is not None:
            changes["claimed_by"] = claimed_by

        with self.tracer.start_as_current_span("ticket.transition") as span:
            span.set_attribute("ticket.id", ticket_id)
            span.set_attribute("ticket.target_status", target.value)
            try:
                updated = self.store.update_ticket(ticket_id, changes, guard=guard)
            except InvalidTicketTransitionError as exc:
                span.set_attribute("ticket.outcome", "conflict")
                logger.warning("Rejected transition of ticket %s to %s: %s", ticket_id, target.value, exc)
                raise TicketConflictError(str(exc)) from exc

            if updated is None:
                span.set_attribute("ticket.outcome", "not_found")
                raise TicketNotFoundError(f"Ticket {ticket_id} not found")
            span.set_attribute("ticket.outcome", "applied")
        logger.info("Ticket %s moved to %s", ticket_id, target.value)
        return updated
