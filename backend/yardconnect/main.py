# backend/yardconnect/main.py

import asyncio
import logging
import os

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.exc import TimeoutError as SA_TimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import models  # noqa: F401  registers tables on Base.metadata
from .api import api_profile, api_review, api_subscription
from .core.config import settings
from .core.observability import setup_logging
from .database import Base, engine, get_db_session
from .middleware.security_headers import SecurityHeadersMiddleware
from .services.maintenance import pending_review_purge_loop, pending_review_ttl
from .utils.errors import DependencyError, MarketplaceError

setup_logging()
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)

app = FastAPI(title="YardConnect API", default_response_class=ORJSONResponse)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials="*" not in settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.info("CORS origins set to: %s", settings.CORS_ORIGINS)
app.add_middleware(SecurityHeadersMiddleware)


@app.middleware("http")
async def catch_exceptions(request: Request, call_next):
    """Return JSON responses for unhandled errors and log them."""
    try:
        response = await call_next(request)
    except StarletteHTTPException as exc:
        logger.error(
            "HTTP error %s at %s: %s", exc.status_code, request.url.path, exc.detail
        )
        response = ORJSONResponse(
            status_code=exc.status_code, content={"detail": exc.detail}
        )
    except SA_TimeoutError as exc:  # DB pool timeout
        logger.error("DB timeout at %s: %s", request.url.path, str(exc))
        response = ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Database busy, please retry"},
        )
    except Exception as exc:  # pragma: no cover - generic handler
        logger.exception("Unhandled error: %s", exc)
        response = ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal Server Error"},
        )
    return response


@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    log = logger.error if isinstance(exc, DependencyError) else logger.warning
    log("%s at %s: %s %s", type(exc).__name__, request.url.path, exc.message, exc.field_errors)
    headers = {"Retry-After": "30"} if exc.retryable else None
    return ORJSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.to_detail()},
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Return validation errors with details and log them for debugging."""
    errors = jsonable_encoder(exc.errors())
    logger.warning("Validation error at %s: %s", request.url.path, errors)
    return ORJSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": errors},
    )


@app.get("/healthz", tags=["health"])
def healthz():
    try:
        with get_db_session() as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Health check DB ping failed: %s", exc)
        return ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "error", "db": "unavailable"},
        )
    return {"status": "ok"}


api_prefix = settings.API_PREFIX

app.include_router(api_profile.router, prefix=f"{api_prefix}/yardworkers", tags=["yardworkers"])
app.include_router(api_review.router, prefix=f"{api_prefix}/reviews", tags=["reviews"])
app.include_router(api_subscription.router, prefix=f"{api_prefix}/payments", tags=["payments"])


@app.on_event("startup")
async def start_pending_review_purge() -> None:
    if os.getenv("PYTEST_RUN") == "1" or pending_review_ttl() is None:
        return
    app.state.pending_review_purge = asyncio.create_task(pending_review_purge_loop())
    logger.info(
        "Pending review purge scheduled every %ss (TTL %sh)",
        settings.PENDING_REVIEW_PURGE_INTERVAL_SECONDS,
        settings.PENDING_REVIEW_TTL_HOURS,
    )


@app.on_event("shutdown")
async def stop_pending_review_purge() -> None:
    task = getattr(app.state, "pending_review_purge", None)
    if task is not None:
        task.cancel()
