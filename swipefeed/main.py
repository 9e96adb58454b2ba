"""
SwipeFeed — FastAPI Application Entry Point

- Async lifespan management (SQL tables / session shutdown)
- CORS and structured-logging middleware
- Health-check endpoint
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from swipefeed.api.dependencies import get_session_registry, shutdown_session_registry
from swipefeed.config import get_settings
from swipefeed.database import dispose_engine, init_models

# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------

settings = get_settings()

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

logger: structlog.stdlib.BoundLogger = structlog.get_logger("swipefeed")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

async def _sweep_idle_sessions() -> None:
    """Periodically close sessions idle longer than SESSION_IDLE_SECONDS."""
    while True:
        await asyncio.sleep(settings.SESSION_SWEEP_SECONDS)
        try:
            await get_session_registry().evict_idle()
        except Exception:
            logger.exception("session_sweep_failed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup and shutdown of long-lived resources."""
    logger.info(
        "startup_begin",
        environment=settings.ENVIRONMENT,
        cache_backend=settings.CACHE_BACKEND,
        profile_source=settings.PROFILE_SOURCE,
        daily_swipe_limit=settings.DAILY_SWIPE_LIMIT,
    )

    if settings.CACHE_BACKEND == "sql":
        await init_models()
        logger.info("database_tables_ready")

    sweeper = None
    if settings.SESSION_IDLE_SECONDS > 0:
        sweeper = asyncio.create_task(_sweep_idle_sessions())

    logger.info("startup_complete")

    yield

    logger.info("shutdown_begin")

    if sweeper is not None:
        sweeper.cancel()

    # Cancels pending prefetches and closes the Redis client, if any.
    await shutdown_session_registry()

    if settings.CACHE_BACKEND == "sql":
        await dispose_engine()

    logger.info("shutdown_complete")


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
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
    title="SwipeFeed",
    description="Swipe-quota-gated profile feed",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

app.add_middleware(StructuredLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["health"])
async def health_liveness() -> dict:
    """Liveness probe — healthy whenever the process is running."""
    return {"status": "healthy"}


# -- API router ------------------------------------------------------------ #

from swipefeed.api.router import router as api_router  # noqa: E402

app.include_router(api_router, prefix="/api/v1")
