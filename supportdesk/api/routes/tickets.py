from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from supportdesk.dependencies.tickets import TicketServiceDep, get_ticket_service
from supportdesk.tickets.models import Message, MessageSender, Ticket
from supportdesk.tickets.service import (
    TicketConflictError,
    TicketNotFoundError,
    TicketServiceError,
    TicketValidationError,
)
from supportdesk.tickets.state import TicketStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tickets", tags=["tickets"])

__all__ = ["router", "get_ticket_service"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class TicketCreateRequest(CamelModel):
    subject: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)


class TicketUpdateRequest(CamelModel):
    status: TicketStatus | None = None
    claimed_by: str | None = None


class MessageCreateRequest(CamelModel):
    # Checked by the service after the ticket lookup so a missing ticket wins over a bad body.
    content: str | None = None
    sender: str | None = None


class TicketResponse(CamelModel):
    id: str
    ticket_number: str
    subject: str
    message: str
    status: TicketStatus
    claimed_by: str | None = None
    created_at: int


class MessageResponse(CamelModel):
    id: str
    ticket_id: str
    content: str
    sender: MessageSender
    timestamp: int


def _to_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse.model_validate(ticket)


def _to_message_response(message: Message) -> MessageResponse:
    return MessageResponse.model_validate(message)


def _http_error(exc: TicketServiceError, failure: str) -> HTTPException:
    if isinstance(exc, TicketNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, TicketValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, TicketConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    logger.error("%s: %s", failure, exc, exc_info=exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=failure)


@router.get("", response_model=list[TicketResponse], response_model_exclude_none=True)
async def list_tickets(
    service: TicketServiceDep,
    status_filter: TicketStatus | None = Query(default=None, alias="status"),
) -> list[TicketResponse]:
    try:
        tickets = await service.list_tickets(status=status_filter)
    except TicketServiceError as exc:
        raise _http_error(exc, "Failed to fetch tickets") from exc
    return [_to_response(ticket) for ticket in tickets]


@router.get("/{ticket_id}", response_model=TicketResponse, response_model_exclude_none=True)
async def get_ticket(ticket_id: str, service: TicketServiceDep) -> TicketResponse:
    try:
        ticket = await service.get_ticket(ticket_id)
    except TicketServiceError as exc:
        raise _http_error(exc, "Failed to fetch ticket") from exc
    return _to_response(ticket)


@router.post(
    "",
    response_model=TicketResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_ticket(payload: TicketCreateRequest, service: TicketServiceDep) -> TicketResponse:
    try:
        ticket = await service.create_ticket(subject=payload.subject, message=payload.message)
    except TicketServiceError as exc:
        raise _http_error(exc, "Failed to create ticket") from exc
    return _to_response(ticket)


@router.patch("/{ticket_id}", response_model=TicketResponse, response_model_exclude_none=True)
async def update_ticket(
    ticket_id: str,
    payload: TicketUpdateRequest,
    service: TicketServiceDep,
) -> TicketResponse:
    try:
        ticket = await service.update_ticket(
            ticket_id,
            status=payload.status,
            claimed_by=payload.claimed_by,
        )
    except TicketServiceError as exc:
        raise _http_error(exc, "Failed to update ticket") from exc
    return _to_response(ticket)


@router.delete("/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ticket(ticket_id: str, service: TicketServiceDep) -> None:
    try:
        await service.delete_ticket(ticket_id)
    except TicketServiceError as exc:
        raise _http_error(exc, "Failed to delete ticket") from exc


@router.get("/{ticket_id}/messages", response_model=list[MessageResponse])
async def list_messages(ticket_id: str, service: TicketServiceDep) -> list[MessageResponse]:
    try:
        messages = await service.list_messages(ticket_id)
    except TicketServiceError as exc:
        raise _http_error(exc, "Failed to fetch messages") from exc
    return [_to_message_response(message) for message in messages]


@router.post(
    "/{ticket_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_message(
    ticket_id: str,
    payload: MessageCreateRequest,
    service: TicketServiceDep,
) -> MessageResponse:
    try:
        message = await service.post_message(ticket_id, content=payload.content, sender=payload.sender)
    except TicketServiceError as exc:
        raise _http_error(exc, "Failed to create message") from exc
    return _to_message_response(message)
