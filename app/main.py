import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import IntegrityError

from app.core.config import settings
from app.core.exceptions import DomainException
from app.core.logging import setup_logging
from app.core.rate_limiter import limiter
from app.database import Database
from app.middleware.request_logger import RequestLoggerMiddleware
from app.schemas.common import ErrorResponse
from app.services.booking_service import BookingService
from app.services.lifecycle_service import BookingLifecycleService
from app.services.payment_service import PaymentService
from app.services.receipt_storage import ReceiptStorage

from app.api.health import router as health_router
from app.api.bookings import router as bookings_router
from app.api.payments import router as payments_router
from app.api.rooms import router as rooms_router


# -------------------------------------------------
# Logging
# -------------------------------------------------

setup_logging()
logger = logging.getLogger(__name__)


def _error_body(message: str, code: str, **extra) -> dict:
    body = ErrorResponse(message=message, code=code).model_dump()
    body.update(extra)
    return body


# -------------------------------------------------
# Exception handlers
# -------------------------------------------------


async def domain_exception_handler(request: Request, exc: DomainException):
    if exc.status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("Validation error", "ValidationException", errors=errors),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("Duplicate entry", "IntegrityError"),
    )


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    client_host = request.client.host if request.client else "-"
    logger.warning(f"Rate limit exceeded: {client_host} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=_error_body(f"Rate limit exceeded: {exc.detail}", "RateLimitExceeded"),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Internal server error", "InternalServerError"),
    )


# -------------------------------------------------
# FastAPI
# -------------------------------------------------


def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Build the API. Tests pass their own Database (temporary SQLite file);
    production uses DATABASE_URL.
    """
    database = database or Database(settings.database_url, echo=settings.database_echo)

    app = FastAPI(
        title=settings.project_name,
        description="Hotel booking lifecycle and payment reconciliation",
        version="0.1.0",
    )

    app.state.database = database
    app.state.booking_service = BookingService(database)
    app.state.lifecycle_service = BookingLifecycleService(database)
    app.state.payment_service = PaymentService(database, ReceiptStorage())

    # -------------------------------------------------
    # Rate Limiting (slowapi)
    # -------------------------------------------------
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(RequestLoggerMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.client_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health_router, prefix="/api")
    app.include_router(bookings_router, prefix="/api")
    app.include_router(payments_router, prefix="/api")
    app.include_router(rooms_router, prefix="/api")

    # -------------------------------------------------
    # Lifecycle
    # -------------------------------------------------

    @app.on_event("startup")
    async def on_startup():
        logger.info("FastAPI startup")
        await database.create_all()
        logger.info("Database ready")

    @app.on_event("shutdown")
    async def on_shutdown():
        logger.info("FastAPI shutdown")
        await database.disconnect()

    return app


app = create_app()
