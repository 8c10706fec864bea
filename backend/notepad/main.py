"""
Infinite Notepad Backend — FastAPI Application Factory
========================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers, routes and the
       long-lived services (media bucket, payment client) held on app.state.
Who:   uvicorn (`notepad.main:app`, or `python -m notepad`) and the tests,
       which build their own app with storage/payment overrides.

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                     FastAPI App                      │
    │  Middleware:  RateLimit → RequestID → AccessLog      │
    │               → GZip → CORS                          │
    │  Routes:      /api/auth  /api/notes  /api/search     │
    │               /api/media /api/storage /api/payments  │
    │               /health                                │
    │  app.state:   storage (ObjectStorage)                │
    │               payments (PaymentService)              │
    └──────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config check → bucket verification → SQLite tables
    Shutdown: payment client closed → database engine disposed
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from notepad import __version__
from notepad.config import settings
from notepad.database import create_tables, dispose_engine
from notepad.exceptions import (
    AuthenticationError,
    CircuitBreakerOpenError,
    DatabaseError,
    FileStorageError,
    ForbiddenError,
    NotepadError,
    NotFoundError,
    PaymentServiceError,
    RateLimitExceededError,
    ValidationError,
    WebhookVerificationError,
)
from notepad.middleware.logging import RequestLoggingMiddleware
from notepad.middleware.rate_limit import RateLimitMiddleware
from notepad.middleware.request_id import RequestIDMiddleware, request_id_var
from notepad.routes import auth, health, media, notes, payments, search
from notepad.routes import storage as storage_routes
from notepad.services.payment_service import PaymentService
from notepad.services.storage_service import ObjectStorage

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, at startup.

    Format: <timestamp> [LEVEL] <logger>: <message>
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers are chatty at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Infinite Notepad backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Notes keep working without payments; keep serving
        logger.warning("Configuration warning: %s", str(e))

    try:
        app.state.storage.ensure_bucket()
        logger.info("Storage bucket ready: %s", app.state.storage.bucket_path)
    except FileStorageError as e:
        logger.error("Storage bucket check failed: %s", e.message)

    if settings.database_url.startswith("sqlite"):
        await create_tables()
        logger.info("SQLite schema created from model metadata")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Infinite Notepad backend shutting down...")
    await app.state.payments.aclose()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(status_code: int, error: str, message: str, details=None, headers=None) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the exception hierarchy onto HTTP responses.

        ValidationError            → 400 validation_error
        AuthenticationError        → 401 authentication_error
        WebhookVerificationError   → 401 webhook_verification_error
        ForbiddenError             → 403 forbidden
        NotFoundError              → 404 not_found
        RateLimitExceededError     → 429 rate_limit_exceeded
        FileStorageError           → 500 storage_error
        DatabaseError              → 500 server_error
        PaymentServiceError        → 503 payment_service_error
        CircuitBreakerOpenError    → 503 service_unavailable
        NotepadError / Exception   → 500 internal_server_error

    Bodies never contain stack traces, paths or SQL; those are logged.
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Malformed body or query: reported like any other validation error."""
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ())[1:]) or None
        message = first.get("msg", "Invalid request")
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), message)
        return _error_response(400, "validation_error", message, {"field": field} if field else None)

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return _error_response(
            401, "authentication_error", exc.message, headers={"WWW-Authenticate": "Bearer"}
        )

    @app.exception_handler(WebhookVerificationError)
    async def handle_webhook_error(request: Request, exc: WebhookVerificationError):
        logger.warning("[%s] Webhook rejected: %s", request_id_var.get(""), exc.message)
        return _error_response(401, "webhook_verification_error", exc.message)

    @app.exception_handler(ForbiddenError)
    async def handle_forbidden(request: Request, exc: ForbiddenError):
        return _error_response(403, "forbidden", exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return _error_response(
            429, "rate_limit_exceeded", exc.message, exc.context,
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error("[%s] File storage error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "storage_error", exc.message)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("[%s] Circuit breaker open: %s", request_id_var.get(""), exc.message)
        return _error_response(
            503, "service_unavailable", exc.message, {"recovery_time": exc.recovery_time},
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(PaymentServiceError)
    async def handle_payment_error(request: Request, exc: PaymentServiceError):
        logger.error("[%s] Payment service error: %s", request_id_var.get(""), exc.message)
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        return _error_response(503, "payment_service_error", exc.message, headers=headers)

    @app.exception_handler(NotepadError)
    async def handle_notepad_error(request: Request, exc: NotepadError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return _error_response(500, "internal_server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    storage: Optional[ObjectStorage] = None,
    payment_service: Optional[PaymentService] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        storage: Media bucket (default: configured local bucket)
        payment_service: Payment service (default: Dodo client from settings)
    """
    app = FastAPI(
        title="Infinite Notepad API",
        description="Notes with autosave, full-text search, media attachments and payments.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.storage = storage or ObjectStorage()
    app.state.payments = payment_service or PaymentService()

    # ── Middleware ────────────────────────────────────────────────────────
    # Last added runs first: RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(notes.router)
    app.include_router(search.router)
    app.include_router(media.router)
    app.include_router(storage_routes.router)
    app.include_router(payments.router)
    app.include_router(health.router)

    return app


app = create_app()
