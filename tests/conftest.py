import random

import pytest
from fastapi.testclient import TestClient

from supportdesk.core.config import Settings
from supportdesk.main import create_app
from supportdesk.tickets.service import TicketService
from supportdesk.tickets.store import TicketStore


class FakeClock:
    """Millisecond clock that advances by ``step`` on every read."""

    def __init__(self, start: int = 1_700_000_000_000, step: int = 1) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> int:
        value = self.now
        self.now += self.step
        return value


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> TicketStore:
    return TicketStore(clock=clock, rng=random.Random(1234))


@pytest.fixture
def service(store: TicketStore) -> TicketService:
    return TicketService(store)


@pytest.fixture
def settings() -> Settings:
    return Settings(admin_password="letmein", otel_enabled=False)


@pytest.fixture
def client(settings: Settings, service: TicketService):
    app = create_app(settings, ticket_service=service)
    with TestClient(app) as test_client:
        yield test_client
