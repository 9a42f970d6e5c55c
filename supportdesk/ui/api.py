from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import httpx


class APIError(RuntimeError):
    """Error raised when the support desk API rejects or fails a request."""

    def __init__(self, message: str, *, status_code: int | None = None, response: httpx.Response | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response = response

    def __str__(self) -> str:
        prefix = f"[{self.status_code}] " if self.status_code is not None else ""
        return f"{prefix}{super().__str__()}"


def _extract_error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or "Unknown server error"

    if isinstance(data, Mapping):
        detail = data.get("detail")
        if isinstance(detail, str):
            return detail
        if isinstance(detail, list) and detail and isinstance(detail[0], Mapping) and "msg" in detail[0]:
            return str(detail[0]["msg"])
        error = data.get("error")
        if isinstance(error, str):
            return error
    return "Request failed"


@dataclass(slots=True)
class SupportDeskClient:
    """Small HTTP client for the support desk API.

    ``http`` may be a preconfigured ``httpx.Client`` (for instance a Starlette
    ``TestClient``); otherwise every call goes through ``httpx.request``.
    """

    base_url: str
    timeout: float = 10.0
    http: httpx.Client | None = None
    authenticated: bool = False

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = self._build_url(path)
        headers: dict[str, str] = {"Accept": "application/json"}
        headers.update(kwargs.pop("headers", {}))

        try:
            if self.http is not None:
                response = self.http.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
            else:
                response = httpx.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except httpx.HTTPError as exc:  # pragma: no cover - network failures are exercised manually
            raise APIError(f"API request failed: {exc}") from exc

        if response.status_code >= 400:
            message = _extract_error_message(response)
            raise APIError(message, status_code=response.status_code, response=response)

        if response.status_code == 204 or not response.content:
            return None

        content_type = response.headers.get("Content-Type", "")
        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError as exc:
                raise APIError("Invalid JSON response", status_code=response.status_code, response=response) from exc
        return response.text

    def _build_url(self, path: str) -> str:
        normalized = path if path.startswith("/") else f"/{path}"
        return f"{self.base_url.rstrip('/')}{normalized}"

    def ping(self) -> Mapping[str, Any]:
        return self._request("GET", "/ping")

    # Tickets
    def list_tickets(self) -> list[Mapping[str, Any]]:
        data = self._request("GET", "/tickets")
        return list(data or [])

    def get_ticket(self, ticket_id: str) -> Mapping[str, Any]:
        return self._request("GET", f"/tickets/{ticket_id}")

    def create_ticket(self, *, subject: str, message: str) -> Mapping[str, Any]:
        return self._request("POST", "/tickets", json={"subject": subject, "message": message})

    def update_ticket(self, ticket_id: str, changes: Mapping[str, Any]) -> Mapping[str, Any]:
        return self._request("PATCH", f"/tickets/{ticket_id}", json=dict(changes))

    def claim_ticket(self, ticket_id: str, *, staff: str) -> Mapping[str, Any]:
        return self.update_ticket(ticket_id, {"status": "claimed", "claimedBy": staff})

    def close_ticket(self, ticket_id: str) -> Mapping[str, Any]:
        return self.update_ticket(ticket_id, {"status": "closed"})

    def delete_ticket(self, ticket_id: str) -> None:
        self._request("DELETE", f"/tickets/{ticket_id}")

    # Messages
    def list_messages(self, ticket_id: str) -> list[Mapping[str, Any]]:
        data = self._request("GET", f"/tickets/{ticket_id}/messages")
        return list(data or [])

    def send_message(self, ticket_id: str, *, content: str, sender: str) -> Mapping[str, Any]:
        payload = {"content": content, "sender": sender}
        return self._request("POST", f"/tickets/{ticket_id}/messages", json=payload)

    # Staff authentication
    def authenticate_admin(self, password: str) -> bool:
        try:
            data = self._request("POST", "/auth/admin", json={"password": password})
        except APIError:
            self.authenticated = False
            return False
        self.authenticated = bool(isinstance(data, Mapping) and data.get("success"))
        return self.authenticated

    def logout(self) -> None:
        self.authenticated = False
