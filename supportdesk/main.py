import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from supportdesk.api.routes import auth, ping, tickets
from supportdesk.core.config import Settings, get_settings
from supportdesk.core.logging import configure_logging, init_tracer, shutdown_tracer
from supportdesk.tickets.service import TicketService
from supportdesk.tickets.store import TicketStore

logger = logging.getLogger(__name__)


def build_ticket_service(settings: Settings) -> TicketService:
    """Construct the process-lifetime store and the lifecycle service around it."""

    store = TicketStore(unique_ticket_numbers=settings.enforce_unique_ticket_numbers)
    return TicketService(
        store,
        cascade_delete_messages=settings.cascade_delete_messages,
        allow_messages_on_closed=settings.allow_messages_on_closed,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings: Settings = app.state.settings
    app.state.logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)
    app.state.tracer_provider = tracer_provider
    try:
        yield
    finally:
        shutdown_tracer(tracer_provider)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def create_app(settings: Settings | None = None, *, ticket_service: TicketService | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.ticket_service = ticket_service or build_ticket_service(settings)

    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(ping.router, prefix=settings.api_prefix)
    app.include_router(auth.router, prefix=settings.api_prefix)
    app.include_router(tickets.router, prefix=settings.api_prefix)
    return app


app = create_app()
