"""Polling synchronization for the staff panel.

There is no push channel: the panel re-fetches the full ticket list, and the
message thread of the selected ticket, on a fixed interval and replaces its
local copies wholesale. Server lists are already ordered (tickets newest
first, messages oldest first) so snapshots are never re-sorted here.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Mapping, Sequence

from supportdesk.core.config import Settings
from supportdesk.ui.api import APIError, SupportDeskClient

logger = logging.getLogger(__name__)

TicketPayload = Mapping[str, Any]
MessagePayload = Mapping[str, Any]

DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_NEW_TICKET_WINDOW_MS = 5000

_DISPLAY_RANK = {"open": 0, "claimed": 1, "closed": 2}


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def detect_new_tickets(
    previous_count: int,
    tickets: Sequence[TicketPayload],
    *,
    now_ms: int,
    window_ms: int = DEFAULT_NEW_TICKET_WINDOW_MS,
) -> list[TicketPayload]:
    """Best-effort check for tickets that arrived since the previous poll.

    Only fires when the list grew and the previous poll had already seen
    tickets; the first poll after start-up never notifies. Two tickets landing
    in one window, or a delayed poll, can cause duplicate or missed signals.
    """

    if previous_count <= 0 or len(tickets) <= previous_count:
        return []
    threshold = now_ms - window_ms
    return [
        ticket
        for ticket in tickets
        if ticket.get("status") == "open" and int(ticket.get("createdAt", 0)) > threshold
    ]


def display_order(tickets: Sequence[TicketPayload]) -> list[TicketPayload]:
    """Order tickets for the panel: open, then claimed, then closed, newest first in each."""

    return sorted(
        tickets,
        key=lambda ticket: (_DISPLAY_RANK.get(str(ticket.get("status")), len(_DISPLAY_RANK)), -int(ticket.get("createdAt", 0))),
    )


class StaffPanelSync:
    """Keeps a staff panel's view of tickets and the active thread fresh."""

    def __init__(
        self,
        client: SupportDeskClient,
        *,
        staff_name: str = "Staff",
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        new_ticket_window_ms: int = DEFAULT_NEW_TICKET_WINDOW_MS,
        on_new_tickets: Callable[[list[TicketPayload]], None] | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._client = client
        self.staff_name = staff_name
        self.poll_interval = poll_interval
        self.new_ticket_window_ms = new_ticket_window_ms
        self.notifications_enabled = True
        self._on_new_tickets = on_new_tickets
        self._clock = clock or _now_ms
        self._previous_count = 0
        self.tickets: list[TicketPayload] = []
        self.messages: list[MessagePayload] = []
        self.selected_ticket_id: str | None = None

    @classmethod
    def from_settings(cls, client: SupportDeskClient, settings: Settings, **kwargs: Any) -> StaffPanelSync:
        return cls(
            client,
            poll_interval=settings.poll_interval_seconds,
            new_ticket_window_ms=int(settings.new_ticket_window_seconds * 1000),
            **kwargs,
        )

    @property
    def selected_ticket(self) -> TicketPayload | None:
        if self.selected_ticket_id is None:
            return None
        for ticket in self.tickets:
            if ticket.get("id") == self.selected_ticket_id:
                return ticket
        return None

    @property
    def open_count(self) -> int:
        return sum(1 for ticket in self.tickets if ticket.get("status") != "closed")

    def sorted_tickets(self) -> list[TicketPayload]:
        return display_order(self.tickets)

    def toggle_notifications(self) -> bool:
        self.notifications_enabled = not self.notifications_enabled
        return self.notifications_enabled

    def select_ticket(self, ticket_id: str | None) -> None:
        self.selected_ticket_id = ticket_id
        self.messages = []
        if ticket_id is not None:
            self.refresh_messages()

    def refresh_tickets(self) -> list[TicketPayload]:
        tickets = self._client.list_tickets()
        if self.notifications_enabled:
            arrived = detect_new_tickets(
                self._previous_count,
                tickets,
                now_ms=self._clock(),
                window_ms=self.new_ticket_window_ms,
            )
            if arrived and self._on_new_tickets is not None:
                self._on_new_tickets(arrived)
        self._previous_count = len(tickets)
        self.tickets = tickets

        if self.selected_ticket_id is not None and self.selected_ticket is None:
            logger.info("Selected ticket %s is gone; clearing selection", self.selected_ticket_id)
            self.selected_ticket_id = None
            self.messages = []
        return self.tickets

    def refresh_messages(self) -> list[MessagePayload]:
        if self.selected_ticket_id is None:
            self.messages = []
            return self.messages
        self.messages = self._client.list_messages(self.selected_ticket_id)
        return self.messages

    def poll_once(self) -> bool:
        """Run one polling tick; failures are logged and retried on the next tick."""

        try:
            self.refresh_tickets()
            self.refresh_messages()
        except APIError as exc:
            logger.warning("Staff panel poll failed: %s", exc)
            return False
        return True

    def run(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            self.poll_once()
            stop_event.wait(self.poll_interval)

    def claim(self) -> TicketPayload:
        ticket_id = self._require_selection()
        ticket = self._client.claim_ticket(ticket_id, staff=self.staff_name)
        self.refresh_tickets()
        return ticket

    def close(self) -> TicketPayload:
        ticket_id = self._require_selection()
        ticket = self._client.close_ticket(ticket_id)
        self.selected_ticket_id = None
        self.messages = []
        self.refresh_tickets()
        return ticket

    def send_message(self, content: str) -> MessagePayload | None:
        ticket_id = self._require_selection()
        if not content.strip():
            return None
        message = self._client.send_message(ticket_id, content=content, sender="staff")
        self.refresh_messages()
        return message

    def _require_selection(self) -> str:
        if self.selected_ticket_id is None:
            raise RuntimeError("No ticket selected")
        return self.selected_ticket_id
