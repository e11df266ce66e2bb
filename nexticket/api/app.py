"""FastAPI server for NexTicket"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nexticket.api.routes.auth import router as auth_router
from nexticket.api.routes.health import router as health_router
from nexticket.api.routes.notifications import router as notifications_router
from nexticket.api.routes.records import router as records_router
from nexticket.api.routes.users import router as users_router
from nexticket.api.sessions import SessionRegistry
from nexticket.config import API_HOST, API_PORT, APP_VERSION, VARIANT
from nexticket.errors import (
    AuthenticationError,
    InactiveUserError,
    InvalidCredentialsError,
    NexTicketError,
    PermissionDeniedError,
    RecordNotFoundError,
    RemoteDeleteError,
    RemoteWriteError,
    UnsupportedOperationError,
    UserDirectoryError,
)
from nexticket.infrastructure.store import RemoteStore
from nexticket.infrastructure.supabase import get_supabase_store
from nexticket.observability.logging import get_logger
from nexticket.observability.telemetry import counter, log_event
from nexticket.records.variants import RecordVariant, get_variant
from nexticket.utils.error_sanitizer import sanitize_error_message
from nexticket.utils.redaction import redact

# Load environment variables from .env file
load_dotenv()

logger = get_logger(__name__)

# Most specific first; the first isinstance match wins
ERROR_STATUS: list[tuple[type[NexTicketError], int]] = [
    (InvalidCredentialsError, status.HTTP_401_UNAUTHORIZED),
    (InactiveUserError, status.HTTP_403_FORBIDDEN),
    (AuthenticationError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (RecordNotFoundError, status.HTTP_404_NOT_FOUND),
    (RemoteWriteError, status.HTTP_502_BAD_GATEWAY),
    (RemoteDeleteError, status.HTTP_502_BAD_GATEWAY),
    (UnsupportedOperationError, status.HTTP_400_BAD_REQUEST),
    (UserDirectoryError, status.HTTP_400_BAD_REQUEST),
]


def status_for(exc: NexTicketError) -> int:
    for exc_type, code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def domain_exception_handler(request: Request, exc: NexTicketError) -> JSONResponse:
    """Map domain errors to HTTP statuses with sanitized messages."""
    code = status_for(exc)
    counter(f"api.errors.{code}")
    logger.warning(
        "%s on %s -> %d: %s", type(exc).__name__, redact(str(request.url.path)), code, exc
    )
    return JSONResponse(
        status_code=code,
        content={"detail": sanitize_error_message(str(exc), code), "error": type(exc).__name__},
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Validation errors without leaking the validation rules."""
    logger.warning("Validation error on %s: %s", redact(str(request.url)), exc.errors())
    counter("api.validation_errors")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


def allowed_origins() -> list[str]:
    origins = [o.strip() for o in os.getenv("NEXTICKET_ALLOWED_ORIGINS", "").split(",") if o.strip()]
    if os.getenv("NEXTICKET_ENV", "development") == "development":
        origins.extend(
            [
                "http://localhost:3000",
                "http://localhost:5173",
                "http://127.0.0.1:3000",
                "http://127.0.0.1:5173",
            ]
        )
    return origins


def create_app(store: RemoteStore | None = None, variant: RecordVariant | None = None) -> FastAPI:
    """
    Build the API.

    Args:
        store: Remote store (defaults to the process-wide Supabase client)
        variant: tickets or bills (defaults to NEXTICKET_VARIANT)
    """
    store = store or get_supabase_store()
    variant = variant or get_variant(os.getenv("NEXTICKET_VARIANT") or VARIANT)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log_event("api.startup", service="nexticket", variant=variant.name, version=APP_VERSION)
        yield
        await store.aclose()
        log_event("api.shutdown", service="nexticket")

    app = FastAPI(title="NexTicket API", version=APP_VERSION, lifespan=lifespan)
    app.state.store = store
    app.state.variant = variant
    app.state.sessions = SessionRegistry()

    app.add_exception_handler(NexTicketError, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(records_router)
    app.include_router(notifications_router)
    app.include_router(users_router)

    @app.get("/")
    def root() -> dict[str, Any]:
        return {
            "service": "NexTicket API",
            "version": APP_VERSION,
            "variant": variant.name,
            "status": "running",
            "endpoints": {
                "health": "/health",
                "login": "/api/auth/login",
                "records": "/api/records",
                "stats": "/api/records/stats",
                "notifications": "/api/notifications",
                "users": "/api/users",
            },
        }

    return app


app = create_app()


def main() -> None:
    """Console entry point: run the API with uvicorn."""
    import uvicorn

    uvicorn.run("nexticket.api.app:app", host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    main()
