"""
CampusConnect — FastAPI Application Entry Point

- Async lifespan owning the session registry, connection registry, matching
  engine and chat router
- CORS, timeout, and structured-logging middleware
- Domain-error and request-validation handlers
- Health-check endpoints (liveness + deep readiness)
- Active-request tracking for graceful shutdown
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from app.config import get_settings
from app.database import async_session_factory, create_all_tables, engine
from app.exceptions import CampusConnectError
from app.services.chat_router import ChatRouter
from app.services.connection_registry import ConnectionRegistry
from app.services.matching_service import MatchingService
from app.services.session_registry import SessionRegistry

settings = get_settings()

# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(settings.LOG_LEVEL.upper())
    ),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)

logger: structlog.stdlib.BoundLogger = structlog.get_logger("campusconnect")

# ---------------------------------------------------------------------------
# Active request counter for graceful shutdown
# ---------------------------------------------------------------------------

# Only touched from the event loop, so a plain counter is enough.
_active_requests: int = 0

DRAIN_TIMEOUT_SECONDS = 15


async def _drain_active_requests() -> None:
    """Wait until all in-flight requests complete or timeout expires."""
    deadline = time.monotonic() + DRAIN_TIMEOUT_SECONDS
    while _active_requests > 0:
        if time.monotonic() >= deadline:
            logger.warning(
                "drain_timeout_exceeded",
                remaining_requests=_active_requests,
            )
            break
        await asyncio.sleep(0.25)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup and shutdown of long-lived resources."""
    settings = get_settings()

    # -- Startup --------------------------------------------------------- #
    logger.info(
        "startup_begin",
        environment=settings.ENVIRONMENT,
        log_level=settings.LOG_LEVEL,
    )

    # 1. Database: issuing a simple query warms the pool.
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("database_pool_initialised")

    if settings.AUTO_CREATE_TABLES:
        await create_all_tables()
        logger.info("database_tables_created")

    # 2. Process-lifetime components
    connections = ConnectionRegistry()
    app.state.sessions = SessionRegistry(token_bytes=settings.SESSION_TOKEN_BYTES)
    app.state.connections = connections
    app.state.matching = MatchingService(page_size=settings.POTENTIAL_MATCHES_PAGE_SIZE)
    app.state.chat_router = ChatRouter(connections, async_session_factory)
    app.state.started_at = time.monotonic()

    logger.info("startup_complete")

    yield

    # -- Shutdown -------------------------------------------------------- #
    logger.info("shutdown_begin")

    # 1. Drain in-flight requests
    await _drain_active_requests()

    # 2. Close live chat channels and forget sessions
    await app.state.connections.close_all()
    app.state.sessions.clear()

    # 3. Dispose DB engine (closes the connection pool)
    await engine.dispose()
    logger.info("database_pool_closed")

    logger.info("shutdown_complete")


# ---------------------------------------------------------------------------
# Middleware classes
# ---------------------------------------------------------------------------

class TimeoutMiddleware(BaseHTTPMiddleware):
    """Abort requests that exceed a configurable wall-clock timeout."""

    def __init__(self, app, timeout_seconds: float = 30.0) -> None:
        super().__init__(app)
        self.timeout_seconds = timeout_seconds

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await asyncio.wait_for(
                call_next(request),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "request_timeout",
                method=request.method,
                path=request.url.path,
                timeout=self.timeout_seconds,
            )
            return JSONResponse(
                status_code=504,
                content={"message": "Request timed out"},
            )


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        global _active_requests
        start = time.perf_counter()

        _active_requests += 1
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.exception(
                "request_error",
                method=request.method,
                path=request.url.path,
                duration_ms=round(duration_ms, 2),
            )
            raise
        finally:
            _active_requests -= 1

        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "request_handled",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round(duration_ms, 2),
        )
        return response


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

app = FastAPI(
    title="CampusConnect",
    description="Campus dating: discovery, matching, events and real-time chat",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

# -- Middleware (applied in reverse order; last added runs first) ---------- #

app.add_middleware(StructuredLoggingMiddleware)
app.add_middleware(TimeoutMiddleware, timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -- Error handlers -------------------------------------------------------- #


@app.exception_handler(CampusConnectError)
async def campusconnect_error_handler(request: Request, exc: CampusConnectError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("request_invalid", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request", "errors": jsonable_encoder(exc.errors())},
    )


# -- Health-check endpoints ------------------------------------------------ #


@app.get("/api/health", tags=["health"])
async def health_liveness(request: Request) -> dict:
    """Lightweight liveness check; healthy whenever the process is running."""
    started_at = getattr(request.app.state, "started_at", time.monotonic())
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - started_at, 3),
    }


@app.get("/health/deep", tags=["health"])
async def health_deep(request: Request) -> dict:
    """Deep readiness check: verifies database connectivity."""
    result: dict = {
        "status": "healthy",
        "database": "connected",
        "connections": len(request.app.state.connections),
    }

    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("health_db_failure", error=str(exc))
        result["database"] = f"error: {exc}"
        result["status"] = "degraded"

    return result


# -- Routers --------------------------------------------------------------- #

from app.api.realtime import router as realtime_router  # noqa: E402
from app.api.router import router as api_router  # noqa: E402

app.include_router(api_router, prefix="/api")
app.include_router(realtime_router)
