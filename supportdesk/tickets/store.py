from __future__ import annotations

import random
import threading
import time
import uuid
from collections import Counter
from dataclasses import replace
from typing import Any, Callable, Mapping

from .models import Message, MessageSender, Ticket
from .state import TicketStatus

TICKET_NUMBER_MIN = 10000
TICKET_NUMBER_MAX = 99999

_UPDATABLE_FIELDS = frozenset({"status", "claimed_by"})


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _new_id() -> str:
    return str(uuid.uuid4())


class TicketStore:
    """In-memory keyed storage for tickets and their messages.

    Every public method runs under a single re-entrant lock, so each operation
    is atomic with respect to all others. Entities handed out are copies.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], int] | None = None,
        id_factory: Callable[[], str] | None = None,
        rng: random.Random | None = None,
        unique_ticket_numbers: bool = False,
    ) -> None:
        self._clock = clock or _now_ms
        self._id_factory = id_factory or _new_id
        self._rng = rng or random.Random()
        self._unique_ticket_numbers = unique_ticket_numbers
        self._tickets: dict[str, Ticket] = {}
        self._messages: dict[str, Message] = {}
        # Counted because numbers may repeat when uniqueness is not enforced.
        self._ticket_numbers: Counter[str] = Counter()
        self._lock = threading.RLock()

    def create_ticket(self, *, subject: str, message: str) -> Ticket:
        with self._lock:
            ticket = Ticket(
                id=self._id_factory(),
                ticket_number=self._next_ticket_number(),
                subject=subject,
                message=message,
                status=TicketStatus.OPEN,
                created_at=self._clock(),
            )
            self._tickets[ticket.id] = ticket
            self._ticket_numbers[ticket.ticket_number] += 1
            return replace(ticket)

    def get_ticket(self, ticket_id: str) -> Ticket | None:
        with self._lock:
            ticket = self._tickets.get(ticket_id)
            return None if ticket is None else replace(ticket)

    def list_tickets(self) -> list[Ticket]:
        with self._lock:
            # sorted() is stable, so equal timestamps keep insertion order.
            ordered = sorted(self._tickets.values(), key=lambda ticket: -ticket.created_at)
            return [replace(ticket) for ticket in ordered]

    def update_ticket(
        self,
        ticket_id: str,
        changes: Mapping[str, Any],
        *,
        guard: Callable[[Ticket], None] | None = None,
    ) -> Ticket | None:
        """Merge ``changes`` onto a ticket, last write wins per field.

        ``guard`` sees the current ticket while the lock is held and may raise
        to abort the update; nothing is written in that case.
        """

        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        with self._lock:
            current = self._tickets.get(ticket_id)
            if current is None:
                return None
            if guard is not None:
                guard(replace(current))
            updated = replace(current, **dict(changes))
            self._tickets[ticket_id] = updated
            return replace(updated)

    def delete_ticket(self, ticket_id: str, *, cascade: bool = False) -> bool:
        with self._lock:
            removed = self._tickets.pop(ticket_id, None)
            if removed is None:
                return False
            self._ticket_numbers[removed.ticket_number] -= 1
            if self._ticket_numbers[removed.ticket_number] <= 0:
                del self._ticket_numbers[removed.ticket_number]
            if cascade:
                orphaned = [key for key, message in self._messages.items() if message.ticket_id == ticket_id]
                for key in orphaned:
                    del self._messages[key]
            return True

    def create_message(self, *, ticket_id: str, content: str, sender: MessageSender) -> Message:
        with self._lock:
            message = Message(
                id=self._id_factory(),
                ticket_id=ticket_id,
                content=content,
                sender=sender,
                timestamp=self._clock(),
            )
            self._messages[message.id] = message
            return replace(message)

    def list_messages(self, ticket_id: str) -> list[Message]:
        with self._lock:
            thread = [message for message in self._messages.values() if message.ticket_id == ticket_id]
            thread.sort(key=lambda message: message.timestamp)
            return [replace(message) for message in thread]

    def ticket_numbers(self) -> set[str]:
        with self._lock:
            return set(self._ticket_numbers)

    def _next_ticket_number(self) -> str:
        capacity = TICKET_NUMBER_MAX - TICKET_NUMBER_MIN + 1
        if self._unique_ticket_numbers and len(self._tickets) >= capacity:
            raise RuntimeError("Ticket number space exhausted")
        while True:
            number = str(self._rng.randint(TICKET_NUMBER_MIN, TICKET_NUMBER_MAX))
            if not self._unique_ticket_numbers or number not in self._ticket_numbers:
                return number
