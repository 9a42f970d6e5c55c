import logging
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from supportdesk.api.routes import tickets as ticket_routes
from supportdesk.main import create_app
from supportdesk.tickets.service import TicketStoreError


def _create(client, subject="Cannot join server", message="Help"):
    response = client.post("/tickets", json={"subject": subject, "message": message})
    assert response.status_code == 201
    return response.json()


def test_create_ticket_endpoint_returns_created(client):
    body = _create(client)

    assert body["status"] == "open"
    assert body["subject"] == "Cannot join server"
    assert len(body["ticketNumber"]) == 5
    assert isinstance(body["createdAt"], int)
    assert "claimedBy" not in body


def test_create_ticket_ignores_server_assigned_fields(client):
    response = client.post(
        "/tickets",
        json={
            "subject": "S",
            "message": "M",
            "id": "forged",
            "ticketNumber": "00000",
            "status": "closed",
            "createdAt": 1,
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["id"] != "forged"
    assert body["ticketNumber"] != "00000"
    assert body["status"] == "open"
    assert body["createdAt"] != 1


@pytest.mark.parametrize(
    "payload",
    [{"subject": "", "message": "M"}, {"subject": "S"}, {"subject": "  ", "message": "M"}, {}],
)
def test_create_ticket_validation_failure_is_400(client, payload):
    response = client.post("/tickets", json=payload)

    assert response.status_code == 400
    assert client.get("/tickets").json() == []


def test_list_tickets_newest_first(client):
    first = _create(client, subject="first")
    second = _create(client, subject="second")

    response = client.get("/tickets")

    assert response.status_code == 200
    assert [ticket["id"] for ticket in response.json()] == [second["id"], first["id"]]


def test_list_tickets_filters_by_status(client):
    first = _create(client, subject="first")
    _create(client, subject="second")
    client.patch(f"/tickets/{first['id']}", json={"status": "closed"})

    response = client.get("/tickets", params={"status": "closed"})

    assert [ticket["id"] for ticket in response.json()] == [first["id"]]


def test_get_ticket_found_and_missing(client):
    ticket = _create(client)

    assert client.get(f"/tickets/{ticket['id']}").json()["id"] == ticket["id"]
    assert client.get("/tickets/missing").status_code == 404


def test_patch_claim_then_close(client):
    ticket = _create(client)

    claimed = client.patch(f"/tickets/{ticket['id']}", json={"status": "claimed", "claimedBy": "Staff1"})
    assert claimed.status_code == 200
    assert claimed.json()["status"] == "claimed"
    assert claimed.json()["claimedBy"] == "Staff1"

    closed = client.patch(f"/tickets/{ticket['id']}", json={"status": "closed"})
    assert closed.status_code == 200
    assert closed.json()["status"] == "closed"
    assert closed.json()["claimedBy"] == "Staff1"


def test_patch_conflicts_are_409(client):
    ticket = _create(client)
    client.patch(f"/tickets/{ticket['id']}", json={"status": "claimed", "claimedBy": "Staff1"})

    again = client.patch(f"/tickets/{ticket['id']}", json={"status": "claimed", "claimedBy": "Staff2"})

    assert again.status_code == 409
    assert client.get(f"/tickets/{ticket['id']}").json()["claimedBy"] == "Staff1"

    client.patch(f"/tickets/{ticket['id']}", json={"status": "closed"})
    assert client.patch(f"/tickets/{ticket['id']}", json={"status": "closed"}).status_code == 409


def test_patch_validation_and_missing(client):
    ticket = _create(client)

    assert client.patch(f"/tickets/{ticket['id']}", json={}).status_code == 400
    assert client.patch(f"/tickets/{ticket['id']}", json={"status": "claimed"}).status_code == 400
    assert client.patch(f"/tickets/{ticket['id']}", json={"status": "archived"}).status_code == 400
    assert client.patch("/tickets/missing", json={"status": "closed"}).status_code == 404


def test_delete_ticket(client):
    ticket = _create(client)

    assert client.delete(f"/tickets/{ticket['id']}").status_code == 204
    assert client.delete(f"/tickets/{ticket['id']}").status_code == 404
    assert client.get(f"/tickets/{ticket['id']}").status_code == 404


def test_messages_round_trip_in_chat_order(client):
    ticket = _create(client)

    first = client.post(f"/tickets/{ticket['id']}/messages", json={"content": "Hello", "sender": "user"})
    second = client.post(f"/tickets/{ticket['id']}/messages", json={"content": "On it", "sender": "staff"})

    assert first.status_code == 201
    assert second.status_code == 201
    assert second.json()["ticketId"] == ticket["id"]
    thread = client.get(f"/tickets/{ticket['id']}/messages").json()
    assert [message["content"] for message in thread] == ["Hello", "On it"]
    assert thread[0]["timestamp"] <= thread[1]["timestamp"]


def test_post_message_errors(client):
    ticket = _create(client)

    missing = client.post("/tickets/missing/messages", json={"content": "Hello", "sender": "user"})
    assert missing.status_code == 404
    assert client.post("/tickets/missing/messages", json={"content": "", "sender": "robot"}).status_code == 404

    bad_sender = client.post(f"/tickets/{ticket['id']}/messages", json={"content": "Hi", "sender": "admin"})
    empty = client.post(f"/tickets/{ticket['id']}/messages", json={"content": "", "sender": "user"})
    assert bad_sender.status_code == 400
    assert empty.status_code == 400
    assert client.get(f"/tickets/{ticket['id']}/messages").json() == []


def test_messages_of_unknown_ticket_is_empty_list(client):
    response = client.get("/tickets/missing/messages")

    assert response.status_code == 200
    assert response.json() == []


@pytest.fixture
def mocked_client(settings):
    app = create_app(settings)
    service = AsyncMock()

    async def override_service():
        return service

    app.dependency_overrides[ticket_routes.get_ticket_service] = override_service
    client = TestClient(app)
    try:
        yield client, service
    finally:
        app.dependency_overrides.clear()


def test_store_failure_maps_to_500(mocked_client):
    client, service = mocked_client
    service.list_tickets = AsyncMock(side_effect=TicketStoreError("boom"))
    service.list_messages = AsyncMock(side_effect=TicketStoreError("boom"))

    tickets = client.get("/tickets")
    messages = client.get("/tickets/abc/messages")

    assert tickets.status_code == 500
    assert tickets.json()["detail"] == "Failed to fetch tickets"
    assert messages.status_code == 500
    assert messages.json()["detail"] == "Failed to fetch messages"


def test_patch_forwards_partial_fields(mocked_client):
    client, service = mocked_client
    service.update_ticket = AsyncMock(side_effect=TicketStoreError("boom"))

    response = client.patch("/tickets/abc", json={"status": "claimed", "claimedBy": "Staff"})

    assert response.status_code == 500
    service.update_ticket.assert_awaited_once()
    args, kwargs = service.update_ticket.await_args
    assert args == ("abc",)
    assert kwargs["claimed_by"] == "Staff"
    assert kwargs["status"].value == "claimed"


def test_ping(client):
    assert client.get("/ping").json() == {"status": "ok"}


def test_message_creation_ignores_server_assigned_fields(client):
    ticket = _create(client)
    other = _create(client, subject="other")

    response = client.post(
        f"/tickets/{ticket['id']}/messages",
        json={"content": "hi", "sender": "user", "id": "forged", "timestamp": 1, "ticketId": other["id"]},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["id"] != "forged"
    assert body["timestamp"] != 1
    assert body["ticketId"] == ticket["id"]
    assert client.get(f"/tickets/{other['id']}/messages").json() == []


def test_patch_ignores_immutable_and_server_assigned_fields(client):
    ticket = _create(client, subject="Original", message="Body")

    response = client.patch(
        f"/tickets/{ticket['id']}",
        json={
            "status": "claimed",
            "claimedBy": "Staff1",
            "subject": "Rewritten",
            "ticketNumber": "00000",
            "createdAt": 1,
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["subject"] == "Original"
    assert body["ticketNumber"] == ticket["ticketNumber"]
    assert body["createdAt"] == ticket["createdAt"]
    assert body["status"] == "claimed"


def test_unexpected_failure_is_logged_with_traceback(mocked_client, caplog):
    client, service = mocked_client
    service.get_ticket = AsyncMock(side_effect=TicketStoreError("boom"))

    with caplog.at_level(logging.ERROR, logger="supportdesk.api.routes.tickets"):
        response = client.get("/tickets/abc")

    assert response.status_code == 500
    records = [record for record in caplog.records if record.name == "supportdesk.api.routes.tickets"]
    assert records
    assert records[0].exc_info is not None
    assert isinstance(records[0].exc_info[1], TicketStoreError)
