"""
Performance Evaluation API - FastAPI Application

Startup seeds the schema and system roles, then hands the reminder and
cleanup loops to the scheduler. All errors leave through one envelope:
    {"success": false, "errors": [{"msg": ..., "code": ...}]}
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

import app.models  # noqa: F401
from app.core.config import settings
from app.core.exceptions import AppException
from app.core.init_system import init_system_data
from app.core.limiter import limiter
from app.core.logging import setup_logging
from app.core.middleware import CorrelationIdMiddleware, LoggingMiddleware
from app.database import engine, init_db
from app.routers.api_router import api_router
from app.tasks import scheduler

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} v{settings.version} ({settings.environment})")
    try:
        init_db()
        init_system_data()
    except Exception as e:
        logger.error(f"✗ Startup failed while preparing the database: {e}")
        raise
    logger.info("✓ Schema and system roles ready")

    jobs = scheduler.start_scheduler()
    if jobs:
        logger.info(f"✓ Background jobs: {', '.join(t.get_name() for t in jobs)}")

    yield

    logger.info("Stopping background jobs...")
    await scheduler.stop_scheduler()


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Weighted criteria, evaluation workflow and deadline reminders",
    docs_url="/docs",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Last added runs first: CORS -> correlation id -> request logging
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[settings.request_id_header, "X-Process-Time"],
)


def error_response(
    status_code: int, errors: List[Dict[str, Any]], headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "errors": errors}, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """422 with one entry per invalid field, e.g. `scores.0.score`."""
    errors = []
    for error in exc.errors():
        path = [str(part) for part in error["loc"] if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(path) or "request", "msg": error["msg"], "code": "INVALID_INPUT"})
    logger.warning(f"Rejected {request.method} {request.url.path}: {len(errors)} invalid field(s)")
    return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, errors)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    logger.warning(f"{exc.error_code}: {exc.message}", extra={"path": request.url.path})
    error = {"msg": exc.message, "code": exc.error_code}
    if exc.details:
        error["details"] = exc.details
    return error_response(exc.status_code, [error])


@app.exception_handler(IntegrityError)
async def integrity_exception_handler(request: Request, exc: IntegrityError):
    # Duplicate score rows, assignments or names that raced past the service checks
    logger.warning(f"IntegrityError on {request.url.path}: {exc.orig}")
    return error_response(
        status.HTTP_409_CONFLICT,
        [{"msg": "The request conflicts with existing data.", "code": "CONFLICT"}],
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    msg = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error_response(exc.status_code, [{"msg": msg}], headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled server error", extra={"path": request.url.path})
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        [{"msg": "An unexpected server error occurred.", "code": "INTERNAL_ERROR"}],
    )


app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/", tags=["Health"])
def root():
    return {
        "message": settings.app_name,
        "version": settings.version,
        "docs": "/docs",
        "api": settings.api_prefix,
    }


@app.get("/health", tags=["Health"])
def health_check():
    """Liveness: the process is up, nothing else is checked."""
    return {
        "status": "up",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.version,
        "environment": settings.environment,
    }


@app.get("/readiness", tags=["Health"])
def readiness_check():
    """Readiness: database reachable; also reports which background jobs are alive."""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database unavailable")

    return {
        "status": "ready",
        "components": {
            "database": "connected",
            "scheduler": scheduler.running_jobs() if settings.scheduler.enabled else "disabled",
        },
    }
